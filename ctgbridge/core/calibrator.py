#!/usr/bin/env python3
"""
Threshold Calibrator - Derive overlap thresholds from the data

When identity or overhang thresholds are not given, they are estimated from
the per-sequence best-evidence statistics with a robust location/spread
estimate (median and median absolute deviation):

    min identity = median - k * 1.4826 * MAD
    max overhang = median + k * 1.4826 * MAD

k is 6 for contig-vs-contig overlaps and 3 for read-vs-contig overlaps.
"""

import logging
from typing import Dict, List, Sequence, Tuple

import numpy as np

from ctgbridge.core.aggregator import ReadStatInfo

# Makes the MAD a consistent estimator of the standard deviation for normal data
MAD_SCALE = 1.4826

READ2CTG_K = 3
CTG2CTG_K = 6


class CalibrationError(ValueError):
    """Raised when a threshold cannot be estimated from the data"""


def compute_median_and_mad(samples: Sequence[Tuple[float, float]]) -> Tuple[float, float]:
    """
    Median and median absolute deviation of the first coordinate.

    The second coordinate of each sample is accepted but not used.
    """
    values = np.fromiter((s[0] for s in samples), dtype=float)
    if values.size == 0:
        raise CalibrationError("No samples to calibrate from")

    median = float(np.median(values))
    mad = float(np.median(np.abs(values - median)))
    if not (np.isfinite(median) and np.isfinite(mad)):
        raise CalibrationError(f"Non-finite calibration result: median={median}, mad={mad}")
    return median, mad


def identity_lower_bound(median: float, mad: float, k: float) -> float:
    return median - k * MAD_SCALE * mad


def overhang_upper_bound(median: float, mad: float, k: float) -> int:
    return int(median + k * MAD_SCALE * mad)


def identity_samples(read_infos: Dict[int, ReadStatInfo]) -> List[Tuple[float, float]]:
    # score / 1000 keeps the weight in a small range
    return [(info.identity, info.score / 1000) for info in read_infos.values()]


def overhang_samples(read_infos: Dict[int, ReadStatInfo],
                     weight: str = 'score') -> List[Tuple[float, float]]:
    """One sample per sequence; an unset overhang enters the sample as -1"""
    if weight == 'score':
        return [(float(info.overhang), info.score / 100) for info in read_infos.values()]
    if weight == 'length':
        return [(float(info.overhang), info.length / 100) for info in read_infos.values()]
    raise ValueError(f"Unknown overhang weight: {weight}")


class ThresholdCalibrator:
    """
    Selects min identity / max overhang for one kind of overlap file

    Usage:
        calibrator = ThresholdCalibrator('read2ctg')
        min_identity = calibrator.select_min_identity(read_infos)
        max_overhang = calibrator.select_max_overhang(read_infos)
    """

    KINDS = {
        'read2ctg': (READ2CTG_K, 'score'),
        'ctg2ctg': (CTG2CTG_K, 'length'),
    }

    def __init__(self, kind: str):
        if kind not in self.KINDS:
            raise ValueError(f"Unknown overlap kind: {kind} (expected one of {sorted(self.KINDS)})")
        self.kind = kind
        self.k, self.overhang_weight = self.KINDS[kind]
        self.logger = logging.getLogger(__name__)

    def select_min_identity(self, read_infos: Dict[int, ReadStatInfo]) -> float:
        try:
            median, mad = compute_median_and_mad(identity_samples(read_infos))
        except CalibrationError as e:
            raise CalibrationError(f"Cannot auto select {self.kind}_min_identity: {e}; "
                                   f"no overlap passed the calibration filter") from e

        value = identity_lower_bound(median, mad, self.k)
        self.logger.info(f"Auto Select {self.kind}_min_identity = {value:.2f}, "
                         f"median={median:.2f}, mad={mad:.2f}")
        return value

    def select_max_overhang(self, read_infos: Dict[int, ReadStatInfo]) -> int:
        try:
            median, mad = compute_median_and_mad(overhang_samples(read_infos, self.overhang_weight))
        except CalibrationError as e:
            raise CalibrationError(f"Cannot auto select {self.kind}_max_overhang: {e}; "
                                   f"no overlap passed the calibration filter") from e

        value = overhang_upper_bound(median, mad, self.k)
        self.logger.info(f"Auto Select {self.kind}_max_overhang = {value}, "
                         f"median={median:f}, mad={mad:f}")
        return value
