"""
Vocaltract analysis benchmark + parity validation.

Usage:
    python scripts/benchmark.py [--quick]

Modes:
    default: 3 warm-up + 20 timed runs per function
    --quick: 2 warm-up + 5 timed runs (CI-friendly)

Output: timing table + parity report printed to stdout.

Parity check: the radix-2 FFT and the LPC recursion are compared against
numpy.fft and scipy.linalg.solve_toeplitz on random input. Per-frame feature
extraction is timed against the duration of the frame it analyzes; a frame
must be analyzed faster than it plays back to keep up with a live stream.
"""

import argparse
import os
import sys
import time
from typing import List

import numpy as np
from scipy.linalg import solve_toeplitz

# Make sure the package is importable when run from repo root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from vocaltract.core import fft, lpc
from vocaltract.core.features import FeatureExtractor
from vocaltract.core.stft import STFT

_SEP = "─" * 72


def _hdr(title: str) -> None:
    print(f"\n{_SEP}")
    print(f"  {title}")
    print(_SEP)


def _timeit(fn, *args, warmup: int = 2, runs: int = 5, **kwargs) -> List[float]:
    """Run fn(*args, **kwargs), discard warmup iterations, return timed samples."""
    for _ in range(warmup):
        fn(*args, **kwargs)
    times = []
    for _ in range(runs):
        t0 = time.perf_counter()
        fn(*args, **kwargs)
        times.append(time.perf_counter() - t0)
    return times


def _stats(times: List[float]) -> str:
    arr = np.array(times)
    return f"mean={arr.mean()*1000:.3f} ms  min={arr.min()*1000:.3f} ms  max={arr.max()*1000:.3f} ms"


# ---------------------------------------------------------------------------
# Parity helpers
# ---------------------------------------------------------------------------

def _parity_fft(n: int, rng: np.random.RandomState) -> float:
    x = rng.randn(n) + 1j * rng.randn(n)
    return float(np.max(np.abs(fft.fft(x) - np.fft.fft(x))) / n)


def _parity_ifft(n: int, rng: np.random.RandomState) -> float:
    x = rng.randn(n)
    return float(np.max(np.abs(fft.ifft(fft.fft(x)) - x)))


def _parity_levinson(order: int, rng: np.random.RandomState) -> float:
    x = rng.randn(4096)
    r = lpc.autocorrelation(x, order + 1)
    ours = lpc.levinson_durbin(r, order).coefficients
    reference = solve_toeplitz(r[:order], r[1 : order + 1])
    return float(np.max(np.abs(ours - reference)))


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> None:
    parser = argparse.ArgumentParser(description="Vocaltract analysis benchmark")
    parser.add_argument(
        "--quick",
        action="store_true",
        help="Fewer timed runs for fast CI runs",
    )
    args = parser.parse_args()

    if args.quick:
        WARMUP, RUNS = 2, 5
        label = "quick mode"
    else:
        WARMUP, RUNS = 3, 20
        label = "full mode"

    sr = 44100
    frame_size = 2048

    print(f"\nVocaltract Analysis Benchmark  ({label})")
    print(f"Warm-up runs: {WARMUP}  |  Timed runs: {RUNS}")

    rng = np.random.RandomState(42)
    results = {}

    # ------------------------------------------------------------------
    # 1. FFT
    # ------------------------------------------------------------------
    _hdr("1. fft (radix-2) vs numpy.fft")
    for n in (512, 2048, 8192):
        x = rng.randn(n)
        t = _timeit(fft.fft, x, warmup=WARMUP, runs=RUNS)
        t_np = _timeit(np.fft.fft, x, warmup=WARMUP, runs=RUNS)
        results[f"fft_{n}"] = t
        print(f"  N={n:<5}  ours:  {_stats(t)}")
        print(f"  {'':<7}  numpy: {_stats(t_np)}")

    # ------------------------------------------------------------------
    # 2. STFT
    # ------------------------------------------------------------------
    _hdr("2. STFT power spectrogram (1 s @ 44.1 kHz)")
    stft = STFT(window_size=frame_size, hop_size=512)
    y = (0.5 * rng.randn(sr)).astype(np.float32)
    t = _timeit(stft.power_spectrogram_db, y, warmup=WARMUP, runs=max(RUNS // 4, 2))
    results["stft_1s"] = t
    print(f"  {_stats(t)}")

    # ------------------------------------------------------------------
    # 3. Per-frame feature extraction
    # ------------------------------------------------------------------
    _hdr(f"3. extract_features ({frame_size} samples @ {sr} Hz)")
    extractor = FeatureExtractor(sample_rate=sr, frame_size=frame_size)
    tt = np.arange(frame_size) / sr
    frame = (0.5 * np.sin(2 * np.pi * 150.0 * tt)).astype(np.float32)
    t = _timeit(extractor.extract_features, frame, warmup=WARMUP, runs=RUNS)
    results["extract_features"] = t
    budget = frame_size / sr
    print(f"  {_stats(t)}")
    print(f"  Frame duration: {budget*1000:.1f} ms  |  realtime factor: {budget / np.mean(t):.1f}×")

    # ------------------------------------------------------------------
    # Parity validation
    # ------------------------------------------------------------------
    _hdr("Parity validation")
    TOL = 1e-9

    checks = [
        ("fft_1024", _parity_fft(1024, rng)),
        ("fft_4096", _parity_fft(4096, rng)),
        ("ifft_round_trip", _parity_ifft(2048, rng)),
        ("levinson_order_14", _parity_levinson(14, rng)),
        ("levinson_order_32", _parity_levinson(32, rng)),
    ]

    print(f"  {'Check':<20}  {'max err':>10}  status")
    print(f"  {'-'*20}  {'-'*10}  ------")
    for name, err in checks:
        print(f"  {name:<20}  {err:>10.2e}  [{'PASS' if err <= TOL else 'FAIL'}]")

    if all(err <= TOL for _, err in checks):
        print("\n  All parity checks PASSED.")
    else:
        print("\n  !! PARITY FAILURES DETECTED !!")
        sys.exit(1)

    # ------------------------------------------------------------------
    # Summary table
    # ------------------------------------------------------------------
    _hdr("Summary")
    rows = [(name, f"{np.mean(times)*1000:.3f}") for name, times in results.items()]

    name_w = max(len(r[0]) for r in rows) + 2
    print(f"  {'Function':<{name_w}} Time (ms, mean)")
    print(f"  {'-'*name_w} ---------------")
    for name, val in rows:
        print(f"  {name:<{name_w}} {val}")

    print(f"\n{_SEP}\n")


if __name__ == "__main__":
    main()
