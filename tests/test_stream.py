"""Tests for the realtime analysis stream and its configuration."""

import threading

import numpy as np
import pytest

from vocaltract.config import AnalysisConfig
from vocaltract.core.stream import LiveFeatures, RealtimeAnalyzer


def _chunks(y, size=512):
    return [y[i : i + size] for i in range(0, len(y), size)]


class TestAnalysisConfig:
    def test_defaults(self):
        config = AnalysisConfig()
        assert config.sample_rate == 44100
        assert config.frame_size == 2048
        assert config.window_type == "blackman"

    def test_clamped(self):
        config = AnalysisConfig(frame_size=10000, hop_size=50, buffer_size=10, lpc_order=0).clamped()
        assert config.buffer_size == 2048
        # Frame is bounded by the buffer as well as by its own range
        assert config.frame_size == 2048
        assert config.hop_size == 128
        assert config.lpc_order == 1

    def test_hop_clamped_to_frame(self):
        config = AnalysisConfig(frame_size=512, hop_size=1024).clamped()
        assert config.hop_size == 512

    def test_frame_clamped_to_buffer(self):
        config = AnalysisConfig(buffer_size=2048, frame_size=4096, hop_size=3000).clamped()
        assert config.frame_size == 2048
        assert config.hop_size == 2048

    def test_large_frame_fits_large_buffer(self):
        config = AnalysisConfig(buffer_size=16384, frame_size=4096).clamped()
        assert config.frame_size == 4096

    def test_updated_skips_none(self):
        config = AnalysisConfig().updated(sample_rate=None, lpc_order=10)
        assert config.sample_rate == 44100
        assert config.lpc_order == 10

    def test_updated_rejects_unknown(self):
        with pytest.raises(TypeError):
            AnalysisConfig().updated(bogus=1)


class TestRealtimeAnalyzer:
    def test_poll_before_data(self):
        assert RealtimeAnalyzer().poll() is None

    def test_voiced_snapshot(self, pure_sine):
        y, sr = pure_sine
        analyzer = RealtimeAnalyzer(AnalysisConfig(sample_rate=sr))
        for chunk in _chunks(y[:2048]):
            analyzer.process_chunk(chunk)

        snapshot = analyzer.poll()
        assert isinstance(snapshot, LiveFeatures)
        assert snapshot.chunk_index == 4
        assert snapshot.time_sec == pytest.approx(2048 / sr)
        assert snapshot.peak == pytest.approx(0.5, abs=0.01)
        assert snapshot.features is not None
        assert snapshot.features.voice_quality == "voiced"
        assert snapshot.features.fundamental_frequency == pytest.approx(150.0, abs=2.0)

    def test_poll_does_not_consume(self, pure_sine):
        y, _ = pure_sine
        analyzer = RealtimeAnalyzer()
        analyzer.process_chunk(y[:2048])
        assert analyzer.poll() is not None
        assert analyzer.poll() is not None

    def test_quiet_frame_not_analyzed(self, make_sine):
        analyzer = RealtimeAnalyzer()
        analyzer.process_chunk(make_sine(150.0, 44100, 2048, amplitude=0.005))

        snapshot = analyzer.poll()
        assert snapshot is not None
        assert snapshot.features is None
        assert snapshot.peak < 0.01

    def test_overflow_counted(self, noise):
        analyzer = RealtimeAnalyzer(AnalysisConfig(buffer_size=2048))
        analyzer.process_chunk(noise[:3000])
        assert analyzer.overflow_count == 952

    def test_drain_windowed_frames(self, noise):
        analyzer = RealtimeAnalyzer()
        analyzer.process_chunk(noise)

        frames = analyzer.drain_windowed_frames()
        assert len(frames) == 5
        assert all(f.shape == (2048,) for f in frames)
        assert analyzer.processor.buffer.available() == 4096 - 5 * 512

    def test_frame_larger_than_buffer_still_polls(self, pure_sine):
        y, sr = pure_sine
        analyzer = RealtimeAnalyzer(AnalysisConfig(sample_rate=sr, buffer_size=2048, frame_size=4096))
        assert analyzer.processor.frame_size <= analyzer.processor.buffer.capacity

        for chunk in _chunks(y):
            analyzer.process_chunk(chunk)

        snapshot = analyzer.poll()
        assert snapshot is not None
        assert snapshot.features.voice_quality == "voiced"

    def test_reset_waits_for_analysis(self, pure_sine):
        y, _ = pure_sine
        analyzer = RealtimeAnalyzer()
        analyzer.process_chunk(y[:2048])
        analyzer.poll()

        # Simulate a poll in progress: reset must not clear state under it
        resetter = threading.Thread(target=analyzer.reset, daemon=True)
        with analyzer._analysis_lock:
            resetter.start()
            resetter.join(timeout=0.2)
            blocked = resetter.is_alive()
            history_kept = analyzer.extractor.has_history
        resetter.join()

        assert blocked
        assert history_kept
        assert not analyzer.extractor.has_history
        assert analyzer.poll() is None

    def test_reset(self, pure_sine):
        y, _ = pure_sine
        analyzer = RealtimeAnalyzer(AnalysisConfig(buffer_size=2048))
        analyzer.process_chunk(y[:4096])
        analyzer.poll()
        analyzer.reset()

        assert analyzer.chunk_index == 0
        assert analyzer.overflow_count == 0
        assert analyzer.poll() is None
        assert not analyzer.extractor.has_history

    def test_concurrent_producer(self, pure_sine):
        y, sr = pure_sine
        analyzer = RealtimeAnalyzer(AnalysisConfig(sample_rate=sr))
        chunks = _chunks(y[: 512 * 60])
        errors = []

        def produce():
            try:
                for chunk in chunks:
                    analyzer.process_chunk(chunk)
            except Exception as e:  # pragma: no cover - surfaced below
                errors.append(e)

        producer = threading.Thread(target=produce)
        producer.start()
        snapshots = []
        while producer.is_alive():
            snapshot = analyzer.poll()
            if snapshot is not None:
                snapshots.append(snapshot)
        producer.join()

        assert errors == []
        assert analyzer.chunk_index == len(chunks)
        final = analyzer.poll()
        assert final.features.voice_quality == "voiced"
        assert all(s.chunk_index <= len(chunks) for s in snapshots)
