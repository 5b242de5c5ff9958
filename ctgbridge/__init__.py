"""
ctgbridge - Bridge assembly contigs with long reads

Usage:
    ctgbridge rawreads.fq.gz contigs.fasta read2ctg.paf bridged.fasta --graph graph.json

    # Or as library
    from ctgbridge import BridgeEngine, BridgeConfig
"""

__version__ = "1.0.0"

from ctgbridge.engines.bridge import BridgeConfig, BridgeEngine
from ctgbridge.core.aggregator import EvidenceAggregator, ReadStatInfo, stat_read_info
from ctgbridge.core.assembler import BridgeAssembler
from ctgbridge.core.calibrator import CalibrationError, ThresholdCalibrator

__all__ = [
    "BridgeConfig",
    "BridgeEngine",
    "EvidenceAggregator",
    "ReadStatInfo",
    "stat_read_info",
    "BridgeAssembler",
    "CalibrationError",
    "ThresholdCalibrator",
]
