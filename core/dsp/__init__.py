"""
core/dsp — Signal-processing primitives shared by every analyzer.

Public API:
    create_window(size, window_type)       → symmetric taper coefficients
    FFT(size) / get_fft(size)              → radix-2 transform with cached tables
    frame(samples, W, H) / FrameGrid       → framing engine and time alignment
    stft_magnitudes(frames, window_type)   → windowed, zero-padded spectra
    summarize(data)                        → SummaryStatistics
    moving_average / median_filter / exponential_moving_average / neighbor_smooth
    find_peaks(data, threshold, min_distance) → list[Peak]
"""

from core.dsp.colormap import (
    amplitude_to_db,
    apply_colormap,
    audio_color_palette,
    db_to_amplitude,
    hsl_to_rgb,
    map_range,
)
from core.dsp.fft import FFT, InvalidSizeError, get_fft, is_power_of_two, next_power_of_two
from core.dsp.filters import (
    exponential_moving_average,
    median_filter,
    moving_average,
    neighbor_smooth,
)
from core.dsp.framing import FrameGrid, frame, frame_count, frame_matrix
from core.dsp.peaks import Peak, find_peaks, strict_local_maxima
from core.dsp.stats import SummaryStatistics, mean, median, percentile, std, summarize
from core.dsp.stft import bin_frequencies, stft_magnitudes
from core.dsp.windows import create_window, modified_bessel_i0

__all__ = [
    # Windows & FFT
    "create_window",
    "modified_bessel_i0",
    "FFT",
    "InvalidSizeError",
    "get_fft",
    "is_power_of_two",
    "next_power_of_two",
    # Framing
    "FrameGrid",
    "frame",
    "frame_count",
    "frame_matrix",
    "stft_magnitudes",
    "bin_frequencies",
    # Statistics & filters
    "SummaryStatistics",
    "mean",
    "median",
    "percentile",
    "std",
    "summarize",
    "moving_average",
    "median_filter",
    "exponential_moving_average",
    "neighbor_smooth",
    "Peak",
    "find_peaks",
    "strict_local_maxima",
    # Colour
    "amplitude_to_db",
    "db_to_amplitude",
    "apply_colormap",
    "audio_color_palette",
    "hsl_to_rgb",
    "map_range",
]
