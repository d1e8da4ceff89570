"""Shared signal fixtures."""

import numpy as np
import pytest

TEST_SR = 44100
LPC_SR = 8000


def sine(freq: float, sr: int, n: int, amplitude: float = 1.0) -> np.ndarray:
    t = np.arange(n, dtype=np.float64) / sr
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


@pytest.fixture
def pure_sine():
    """150 Hz sine, amplitude 0.5, one second at 44.1 kHz."""
    return sine(150.0, TEST_SR, TEST_SR, amplitude=0.5), TEST_SR


@pytest.fixture
def vowel_signal():
    """Three-tone vowel-like signal (700 / 1220 / 2600 Hz) at 8 kHz, 100 ms."""
    n = int(LPC_SR * 0.1)
    y = (
        sine(700.0, LPC_SR, n, 0.5)
        + sine(1220.0, LPC_SR, n, 0.3)
        + sine(2600.0, LPC_SR, n, 0.2)
    )
    return y, LPC_SR


@pytest.fixture
def noise():
    rng = np.random.default_rng(1234)
    return (0.3 * rng.standard_normal(4096)).astype(np.float32)


@pytest.fixture
def make_sine():
    return sine
