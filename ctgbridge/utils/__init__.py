"""
Sequence, overlap and graph access for contig bridging
"""
from ctgbridge.utils.graph import ContigGraph, Edge, GraphFile
from ctgbridge.utils.overlaps import Overlap, OverlapLocation, OverlapStore
from ctgbridge.utils.sequences import OrientedEnd, ReadStore, SeqArea, Strand, StringPool

__all__ = [
    "ContigGraph",
    "Edge",
    "GraphFile",
    "Overlap",
    "OverlapLocation",
    "OverlapStore",
    "OrientedEnd",
    "ReadStore",
    "SeqArea",
    "Strand",
    "StringPool",
]
