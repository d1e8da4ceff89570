"""Tests for per-frame feature extraction."""

import numpy as np
import pytest

from vocaltract.core import features
from vocaltract.core.features import BatchFeatureExtractor, FeatureExtractor


# ---------------------------------------------------------------------------
# Time-domain measures
# ---------------------------------------------------------------------------

class TestTimeDomain:
    @pytest.mark.parametrize(
        "frame, expected",
        [
            ([1.0, -1.0, 1.0, -1.0], 1.0),
            ([0.5, 0.4, 0.3, 0.2], 0.0),
            # -0.1 -> 0.0 changes class, 0.0 -> 0.1 does not
            ([-0.1, 0.0, 0.1], 0.5),
            ([0.0, 0.0, 0.0], 0.0),
            ([1.0], 0.0),
            ([], 0.0),
        ],
    )
    def test_zero_crossing_rate(self, frame, expected):
        assert features.zero_crossing_rate(np.array(frame, dtype=np.float32)) == pytest.approx(expected)

    def test_rms(self):
        assert features.rms(np.array([3.0, -4.0])) == pytest.approx(np.sqrt(12.5))
        assert features.rms(np.zeros(0)) == 0.0

    def test_rms_of_sine(self, pure_sine):
        y, _ = pure_sine
        assert features.rms(y) == pytest.approx(0.5 / np.sqrt(2), rel=1e-3)


class TestPitch:
    def test_sine_pitch(self, pure_sine):
        y, sr = pure_sine
        f0 = features.estimate_pitch(y[:2048], sr)
        assert f0 is not None
        assert f0 == pytest.approx(150.0, abs=2.0)

    def test_low_rate_pitch(self, make_sine):
        y = make_sine(200.0, 8000, 1024, amplitude=0.8)
        f0 = features.estimate_pitch(y, 8000)
        assert f0 == pytest.approx(200.0, abs=3.0)

    def test_noise_has_no_pitch(self, noise):
        assert features.estimate_pitch(noise, 44100) is None

    def test_silence_has_no_pitch(self):
        assert features.estimate_pitch(np.zeros(2048), 44100) is None
        assert features.estimate_pitch(np.zeros(0), 44100) is None


@pytest.mark.parametrize(
    "intensity, zcr, f0, expected",
    [
        (0.01, 0.1, 150.0, "silent"),
        (0.5, 0.1, 150.0, "voiced"),
        (0.5, 0.5, 150.0, "unvoiced"),
        (0.5, 0.1, None, "unvoiced"),
        (0.025, 0.1, 150.0, "unvoiced"),
        (0.5, 0.1, 500.0, "unvoiced"),
        (0.5, 0.1, 50.0, "unvoiced"),
    ],
)
def test_classify_voice(intensity, zcr, f0, expected):
    assert features.classify_voice(intensity, zcr, f0) == expected


# ---------------------------------------------------------------------------
# Spectral descriptors
# ---------------------------------------------------------------------------

class TestSpectral:
    freqs = np.array([0.0, 100.0, 200.0, 300.0])

    def test_centroid_and_spread_single_bin(self):
        power = np.array([0.0, 1.0, 0.0, 0.0])
        centroid = features.spectral_centroid(power, self.freqs)
        assert centroid == pytest.approx(100.0)
        assert features.spectral_spread(power, self.freqs, centroid) == pytest.approx(0.0)

    def test_centroid_and_spread_two_bins(self):
        power = np.array([1.0, 0.0, 0.0, 1.0])
        centroid = features.spectral_centroid(power, self.freqs)
        assert centroid == pytest.approx(150.0)
        assert features.spectral_spread(power, self.freqs, centroid) == pytest.approx(150.0)

    def test_zero_power(self):
        power = np.zeros(4)
        assert features.spectral_centroid(power, self.freqs) == 0.0
        assert features.spectral_spread(power, self.freqs, 0.0) == 0.0

    def test_flux_counts_increases_only(self):
        assert features.spectral_flux(np.array([1.0, 2.0, 3.0]), np.array([2.0, 1.0, 3.0])) == pytest.approx(1.0)

    def test_rolloff(self):
        assert features.spectral_rolloff(np.ones(4), self.freqs) == pytest.approx(300.0)
        assert features.spectral_rolloff(np.array([10.0, 0.0, 0.0, 0.0]), self.freqs) == 0.0
        assert features.spectral_rolloff(np.array([1.0, 1.0, 8.0, 0.0]), self.freqs) == pytest.approx(200.0)
        # Target never reached: falls back to the highest bin
        assert features.spectral_rolloff(np.array([1.0, np.nan, 1.0, 1.0]), self.freqs) == pytest.approx(300.0)

    def test_rolloff_silence(self):
        assert features.spectral_rolloff(np.zeros(4), self.freqs) == 0.0


# ---------------------------------------------------------------------------
# FeatureExtractor
# ---------------------------------------------------------------------------

class TestFeatureExtractor:
    def test_silent_frame(self, make_sine):
        extractor = FeatureExtractor()
        frame = make_sine(150.0, 44100, 2048, amplitude=0.0005)
        feats = extractor.extract_features(frame)

        assert feats.voice_quality == "silent"
        assert feats.intensity < 0.001
        assert feats.lpc_coefficients.shape == (14,)
        assert feats.vocal_tract_areas.shape == (15,)
        assert feats.log_vocal_tract_areas.shape == (15,)

    def test_voiced_sine(self, pure_sine):
        y, sr = pure_sine
        feats = FeatureExtractor(sample_rate=sr).extract_features(y[:2048])

        assert feats.voice_quality == "voiced"
        assert feats.fundamental_frequency == pytest.approx(150.0, abs=2.0)
        assert feats.intensity == pytest.approx(0.354, abs=0.01)
        assert feats.zero_crossing_rate < 0.05
        assert feats.lpc_gain >= 0.0

    def test_noise_is_unvoiced(self, noise):
        feats = FeatureExtractor().extract_features(noise[:2048])
        assert feats.voice_quality == "unvoiced"
        assert feats.fundamental_frequency is None

    def test_spectral_centroid_of_tone(self, make_sine):
        sr = 16000
        feats = FeatureExtractor(sample_rate=sr).extract_features(make_sine(1000.0, sr, 2048))

        assert feats.spectral_centroid == pytest.approx(1000.0, abs=50.0)
        assert feats.spectral_rolloff == pytest.approx(1000.0, abs=50.0)
        assert feats.spectral_spread >= 0.0

    def test_flux_history(self, make_sine):
        extractor = FeatureExtractor()
        quiet = make_sine(440.0, 44100, 2048, amplitude=0.1)
        loud = make_sine(440.0, 44100, 2048, amplitude=0.8)

        assert not extractor.has_history
        assert extractor.extract_features(quiet).spectral_flux == 0.0
        assert extractor.has_history
        assert extractor.extract_features(quiet).spectral_flux == pytest.approx(0.0, abs=1e-9)
        assert extractor.extract_features(loud).spectral_flux > 0.0
        # Falling power contributes nothing
        assert extractor.extract_features(quiet).spectral_flux == pytest.approx(0.0, abs=1e-9)

        extractor.reset()
        assert not extractor.has_history
        assert extractor.extract_features(loud).spectral_flux == 0.0

    def test_flux_reseeds_on_size_change(self, make_sine):
        extractor = FeatureExtractor()
        extractor.extract_features(make_sine(440.0, 44100, 2048, amplitude=0.1))
        feats = extractor.extract_features(make_sine(440.0, 44100, 1024, amplitude=0.8))
        assert feats.spectral_flux == 0.0

    def test_update_lpc_order(self, pure_sine):
        y, sr = pure_sine
        extractor = FeatureExtractor(sample_rate=sr)
        extractor.update_parameters(lpc_order=10)

        feats = extractor.extract_features(y[:2048])
        assert feats.lpc_coefficients.shape == (10,)
        assert feats.reflection_coefficients.shape == (10,)
        assert feats.vocal_tract_areas.shape == (11,)
        assert extractor.lpc_analyzer.parameters.sample_rate == 8000

    def test_update_sample_rate(self, make_sine):
        extractor = FeatureExtractor(sample_rate=44100)
        extractor.update_parameters(sample_rate=16000)
        feats = extractor.extract_features(make_sine(1000.0, 16000, 2048))
        assert feats.spectral_centroid == pytest.approx(1000.0, abs=50.0)

    def test_non_power_of_two_frame(self, pure_sine):
        y, sr = pure_sine
        feats = FeatureExtractor(sample_rate=sr).extract_features(y[:1000])
        assert np.isfinite(feats.spectral_centroid)
        assert feats.lpc_coefficients.shape == (14,)

    def test_empty_frame_rejected(self):
        with pytest.raises(ValueError):
            FeatureExtractor().extract_features(np.zeros(0, dtype=np.float32))


# ---------------------------------------------------------------------------
# BatchFeatureExtractor
# ---------------------------------------------------------------------------

class TestBatch:
    def test_frame_count_and_times(self, make_sine):
        sr = 16000
        batch = BatchFeatureExtractor(sample_rate=sr, window_size=1024, hop_size=512)
        frames = batch.extract(make_sine(200.0, sr, sr, amplitude=0.5))

        assert len(frames) == 30
        times = batch.frame_times(len(frames))
        assert times.shape == (30,)
        assert times[1] == pytest.approx(0.032)
        assert all(f.voice_quality == "voiced" for f in frames)

    def test_non_positive_hop_is_clamped(self, noise):
        batch = BatchFeatureExtractor(sample_rate=16000, window_size=1024, hop_size=0)
        assert batch.hop_size == 1

        frames = batch.extract(noise[:1030])
        assert len(frames) == 7
        assert batch.frame_times(2)[1] == pytest.approx(1 / 16000)

    def test_short_signal(self):
        batch = BatchFeatureExtractor(window_size=2048)
        assert batch.extract(np.zeros(1000, dtype=np.float32)) == []

    def test_flux_history_cleared_per_call(self, pure_sine):
        y, sr = pure_sine
        batch = BatchFeatureExtractor(sample_rate=sr, window_size=2048, hop_size=2048)

        first = batch.extract(y[:8192])
        second = batch.extract(y[:8192])
        assert first[0].spectral_flux == 0.0
        assert second[0].spectral_flux == 0.0
        assert len(first) == len(second) == 4
