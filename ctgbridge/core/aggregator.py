#!/usr/bin/env python3
"""
Evidence Aggregator - Per-sequence best-evidence statistics from overlaps

Scans an overlap stream without keeping the overlaps. Every overlap that
passes the quality filter updates both of its sequences:

- score/identity: taken from the best-scoring overlap (score = identity * aligned length)
- aligned, count: summed over all qualifying overlaps
- overhang: the largest computable overhang seen, oh_count counts those

Worker threads each own a work area and only take the lock to merge it
into the shared result, which happens when the area grows past
block_size entries and once more at the end of the scan.
"""

import logging
import threading
from dataclasses import dataclass, replace
from typing import Dict, List, Optional

from ctgbridge.utils.overlaps import Overlap, OverlapLocation, OverlapStore
from ctgbridge.utils.sequences import StringPool


class LengthMismatchError(AssertionError):
    """Raised when one sequence is seen with two different lengths"""


@dataclass
class ReadStatInfo:
    """Statistics accumulated for one sequence"""
    identity: float = 0.0
    score: int = 0
    length: int = 0
    aligned: int = 0
    count: int = 0
    overhang: int = -1  # -1 = no computable overhang seen
    oh_count: int = 0

    def absorb(self, seq_id: int, other: 'ReadStatInfo'):
        """
        Merge another accumulator for the same sequence into this one

        The identity/score pair is replaced when the other score is higher.
        Unlike a strict score comparison, an equal score with a higher
        identity also replaces it, so merge order cannot change the result.
        """
        if other.length != self.length:
            raise LengthMismatchError(
                f"Sequence {seq_id} seen with lengths {self.length} and {other.length}")

        if (other.score, other.identity) > (self.score, self.identity):
            self.score = other.score
            self.identity = other.identity

        self.aligned += other.aligned
        self.count += other.count
        if other.overhang >= 0:
            if other.overhang > self.overhang:
                self.overhang = other.overhang
            self.oh_count += other.oh_count


def merge_read_infos(target: Dict[int, ReadStatInfo], source: Dict[int, ReadStatInfo]):
    for seq_id, info in source.items():
        current = target.get(seq_id)
        if current is None:
            target[seq_id] = replace(info)
        else:
            current.absorb(seq_id, info)


class WorkArea:
    """Accumulator owned by a single worker thread"""

    def __init__(self):
        self.read_infos: Dict[int, ReadStatInfo] = {}
        self.scanned = 0
        self.accepted = 0

    def add(self, seq_id: int, length: int, span: int,
            identity: float, score: int, overhang: int):
        update = ReadStatInfo(
            identity=identity,
            score=score,
            length=length,
            aligned=span,
            count=1,
            overhang=overhang if overhang >= 0 else -1,
            oh_count=1 if overhang >= 0 else 0,
        )
        info = self.read_infos.get(seq_id)
        if info is None:
            self.read_infos[seq_id] = update
        else:
            info.absorb(seq_id, update)

    def clear(self):
        self.read_infos.clear()

    def __len__(self):
        return len(self.read_infos)


class EvidenceAggregator:
    """
    Reducer for overlap streams

    Usage:
        aggregator = EvidenceAggregator(identity_threshold=75, overhang_threshold=500)
        OverlapStore(pool).scan("read2ctg.paf", 8, aggregator.scan_overlap)
        read_infos = aggregator.finish()
    """

    BLOCK_SIZE = 50000
    MIN_ALIGNED_LENGTH = 2000

    def __init__(self,
                 identity_threshold: float,
                 overhang_threshold: int,
                 block_size: int = BLOCK_SIZE,
                 min_aligned_length: int = MIN_ALIGNED_LENGTH):
        self.identity_threshold = identity_threshold
        self.overhang_threshold = overhang_threshold
        self.block_size = block_size
        self.min_aligned_length = min_aligned_length
        self.logger = logging.getLogger(__name__)

        self.read_infos: Dict[int, ReadStatInfo] = {}
        self._lock = threading.Lock()
        # Append-only; a thread's cached work area stays valid while others are added
        self._works: List[WorkArea] = []
        self._local = threading.local()

        self.stats = {
            'scanned': 0,
            'accepted': 0,
            'merges': 0,
        }

    def accepts(self, overlap: Overlap) -> bool:
        return (overlap.identity > self.identity_threshold and
                overlap.aligned_length() >= self.min_aligned_length and
                overlap.location(self.overhang_threshold) != OverlapLocation.ABNORMAL)

    def _work_area(self) -> WorkArea:
        work = getattr(self._local, 'work', None)
        if work is None:
            work = WorkArea()
            with self._lock:
                self._works.append(work)
            self._local.work = work
        return work

    def scan_overlap(self, overlap: Overlap) -> bool:
        """Overlap store callback; never asks the store to keep the record"""
        work = self._work_area()
        work.scanned += 1

        if self.accepts(overlap):
            work.accepted += 1
            score = int(overlap.identity * overlap.aligned_length())
            oh_a, oh_b = overlap.overhang()
            work.add(overlap.a_id, overlap.a_len, overlap.a_end - overlap.a_start,
                     overlap.identity, score, oh_a)
            work.add(overlap.b_id, overlap.b_len, overlap.b_end - overlap.b_start,
                     overlap.identity, score, oh_b)

        if len(work) >= self.block_size:
            self._combine(work)
        return False

    def _combine(self, work: WorkArea):
        with self._lock:
            merge_read_infos(self.read_infos, work.read_infos)
            self.stats['merges'] += 1
        work.clear()

    def finish(self) -> Dict[int, ReadStatInfo]:
        """Merge what is left in every work area; call once the scan is over"""
        for work in self._works:
            if len(work):
                self._combine(work)
            self.stats['scanned'] += work.scanned
            self.stats['accepted'] += work.accepted
            work.scanned = work.accepted = 0

        self.logger.info(f"  Overlaps scanned: {self.stats['scanned']}, "
                         f"accepted: {self.stats['accepted']}, "
                         f"sequences: {len(self.read_infos)}")
        return self.read_infos


def stat_read_info(overlap_file,
                   identity_threshold: float,
                   overhang_threshold: int,
                   threads: int = 1,
                   pool: Optional[StringPool] = None,
                   block_size: int = EvidenceAggregator.BLOCK_SIZE) -> Dict[int, ReadStatInfo]:
    """
    Scan an overlap file and return per-sequence statistics

    Args:
        overlap_file: PAF file
        identity_threshold: Overlaps must have identity above this
        overhang_threshold: Overlaps with longer unaligned tails are ignored
        threads: Worker threads for the scan
        pool: Name pool shared with the sequence store

    Returns:
        Dict mapping sequence id to ReadStatInfo
    """
    aggregator = EvidenceAggregator(identity_threshold, overhang_threshold, block_size=block_size)
    OverlapStore(pool).scan(overlap_file, threads, aggregator.scan_overlap)
    return aggregator.finish()
