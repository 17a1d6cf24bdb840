from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

from .response import ResponseFileError, read_spectra
from .sacio import read_sac, write_sac
from .signal import taper_edges

logger = logging.getLogger(__name__)

# [Hz] default low cutoff, and the relaxed one for responses flat below 0.005 Hz
CUTOFF_FREQ = 0.01
LONG_PERIOD_CUTOFF_FREQ = 1 / 360.0
LONG_PERIOD_CHECK_FREQ = 0.005


def cutoff_frequency(freq: np.ndarray, resp: np.ndarray) -> float:
    low = freq < LONG_PERIOD_CHECK_FREQ
    if np.any(resp.real[low] > 0):
        return LONG_PERIOD_CUTOFF_FREQ
    return CUTOFF_FREQ


def frequency_taper(freq: np.ndarray, min_freq: float, cutoff: float, nyquist: float) -> np.ndarray:
    """Band-pass weights: cosine ramp up from ``min_freq`` to ``cutoff``, flat
    to 90% of ``nyquist``, cosine roll-off to ``nyquist``."""
    freq = np.asarray(freq, dtype=float)
    taper = np.zeros_like(freq)

    if cutoff > min_freq:
        rise = (min_freq <= freq) & (freq < cutoff)
        taper[rise] = 0.5 * (1.0 - np.cos(np.pi * (freq[rise] - min_freq) / (cutoff - min_freq)))

    corner = 0.9 * nyquist
    taper[(cutoff <= freq) & (freq <= corner)] = 1.0

    fall = (corner < freq) & (freq < nyquist)
    taper[fall] = 0.5 * (1.0 + np.cos(np.pi * (freq[fall] - corner) / (nyquist - corner)))
    return taper


def deconvolve(
    data,
    freq: np.ndarray,
    resp: np.ndarray,
    min_freq: float,
    nyquist: float,
    taper_ratio: int = 5,
    squared: bool = False,
) -> np.ndarray:
    """Remove the instrument response from ``data``.

    ``freq``/``resp`` hold the response at the positive FFT frequencies
    starting from the first non-zero bin, so FFT bin ``i`` is divided by
    ``resp[i - 1]``. Negative frequency bins are divided by the complex
    conjugate so the output stays real.
    """
    y = np.asarray(data, dtype=float)
    n = y.size
    half = n // 2
    if len(freq) < half or len(resp) < half:
        raise ResponseFileError(f"Response has {len(resp)} points, need {half}")

    if taper_ratio:
        y = taper_edges(y, taper_ratio, squared)
    spectrum = np.fft.fft(y)

    cutoff = cutoff_frequency(np.asarray(freq[:half]), np.asarray(resp[:half]))
    weights = frequency_taper(freq[:half], min_freq, cutoff, nyquist)
    spectrum[0] = 0.0
    idx = np.arange(1, half + 1)
    spectrum[idx] *= weights
    spectrum[n - idx] *= weights

    idx = np.arange(1, half)
    r = np.asarray(resp[: half - 1], dtype=complex)
    if np.any(r == 0):
        raise ResponseFileError("Response has zero amplitude in the pass band")
    spectrum[idx] /= r
    spectrum[n - idx] /= np.conj(r)

    return np.fft.ifft(spectrum).real


def compute(source: Path, spectra: Path, output: Path, min_freq: float, nyquist: float) -> None:
    """Deconvolve the SAC file ``source`` with ``spectra`` and write ``output``.

    Raises ResponseFileError before writing anything if the spectrum is bad.
    """
    trace = read_sac(source)
    freq, resp = read_spectra(spectra)
    trace.data = deconvolve(trace.data, freq, resp, min_freq, nyquist)
    write_sac(trace, output)
    logger.debug("Deconvolved %s -> %s", source.name, output.name)
