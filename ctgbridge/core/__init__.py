"""
Core bridging modules
"""
from ctgbridge.core.aggregator import EvidenceAggregator, ReadStatInfo
from ctgbridge.core.assembler import BridgeAssembler
from ctgbridge.core.calibrator import ThresholdCalibrator

__all__ = ["EvidenceAggregator", "ReadStatInfo", "BridgeAssembler", "ThresholdCalibrator"]
