"""
Bridging engines
"""
from ctgbridge.engines.bridge import BridgeConfig, BridgeEngine

__all__ = ["BridgeConfig", "BridgeEngine"]
