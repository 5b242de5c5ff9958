#!/usr/bin/env python3
"""
Overlap Store - Multi-threaded streaming of PAF overlaps

Reads minimap2 PAF output (plain or gzipped) in blocks of lines and hands the
blocks to a thread pool. Each worker parses its block and invokes the
caller's callback once per overlap; the callback decides whether the record
is kept in memory.

Usage:
    store = OverlapStore(pool)
    kept = store.scan("read2ctg.paf", threads=8, callback=lambda o: False)
"""

import gzip
import logging
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Tuple

from ctgbridge.utils.sequences import StringPool

PAF_MIN_COLUMNS = 12


class OverlapLocation(Enum):
    """Geometry of sequence A relative to sequence B"""
    ABNORMAL = "abnormal"      # unaligned tails longer than the threshold
    EQUAL = "equal"
    CONTAINED = "contained"    # A inside B
    CONTAINING = "containing"  # B inside A
    LEFT = "left"              # A extends to the left of B
    RIGHT = "right"            # A extends to the right of B


@dataclass
class Overlap:
    """Alignment between sequence A (PAF query) and sequence B (PAF target)"""
    a_id: int
    a_len: int
    a_start: int
    a_end: int
    b_id: int
    b_len: int
    b_start: int
    b_end: int
    identity: float
    score: int = 0
    same_strand: bool = True

    def aligned_length(self) -> int:
        return ((self.a_end - self.a_start) + (self.b_end - self.b_start)) // 2

    def _b_on_a_strand(self) -> Tuple[int, int]:
        if self.same_strand:
            return self.b_start, self.b_end
        return self.b_len - self.b_end, self.b_len - self.b_start

    def _tails(self) -> Tuple[int, int, int, int]:
        b_start, b_end = self._b_on_a_strand()
        return self.a_start, self.a_len - self.a_end, b_start, self.b_len - b_end

    def overhang(self) -> Tuple[int, int]:
        """
        Unaligned flank charged to each side.

        On each side the shorter tail is the part that should have aligned;
        it is charged to the sequence whose end comes first. A sequence that
        runs past the other on both sides contains it, so its overhang
        cannot be computed and is reported as -1.
        """
        a_left, a_right, b_left, b_right = self._tails()
        left = min(a_left, b_left)
        right = min(a_right, b_right)

        oh_a = (left if a_left <= b_left else 0) + (right if a_right <= b_right else 0)
        oh_b = (left if b_left <= a_left else 0) + (right if b_right <= a_right else 0)

        if a_left > b_left and a_right > b_right:
            oh_a = -1
        if b_left > a_left and b_right > a_right:
            oh_b = -1
        return oh_a, oh_b

    def location(self, threshold: int) -> OverlapLocation:
        a_left, a_right, b_left, b_right = self._tails()
        if min(a_left, b_left) > threshold or min(a_right, b_right) > threshold:
            return OverlapLocation.ABNORMAL

        a_inside = a_left <= threshold and a_right <= threshold
        b_inside = b_left <= threshold and b_right <= threshold
        if a_inside and b_inside:
            return OverlapLocation.EQUAL
        if a_inside:
            return OverlapLocation.CONTAINED
        if b_inside:
            return OverlapLocation.CONTAINING
        if a_left > threshold:
            return OverlapLocation.LEFT
        return OverlapLocation.RIGHT


def parse_paf_line(line: str, pool: StringPool, where: str = "") -> Overlap:
    """Parse one PAF record; names are interned into the pool"""
    fields = line.rstrip('\n').split('\t')
    if len(fields) < PAF_MIN_COLUMNS:
        raise ValueError(f"Malformed PAF record{' at ' + where if where else ''}: "
                         f"expected {PAF_MIN_COLUMNS} columns, got {len(fields)}")
    try:
        a_len, a_start, a_end = int(fields[1]), int(fields[2]), int(fields[3])
        b_len, b_start, b_end = int(fields[6]), int(fields[7]), int(fields[8])
        matches, block_length = int(fields[9]), int(fields[10])
    except ValueError as e:
        raise ValueError(f"Malformed PAF record{' at ' + where if where else ''}: {e}") from e

    if fields[4] not in ('+', '-'):
        raise ValueError(f"Malformed PAF record{' at ' + where if where else ''}: "
                         f"bad strand {fields[4]!r}")

    return Overlap(
        a_id=pool.get_id(fields[0]),
        a_len=a_len,
        a_start=a_start,
        a_end=a_end,
        b_id=pool.get_id(fields[5]),
        b_len=b_len,
        b_start=b_start,
        b_end=b_end,
        identity=100.0 * matches / block_length if block_length > 0 else 0.0,
        score=matches,
        same_strand=fields[4] == '+',
    )


def _read_blocks(handle, block_lines: int) -> Iterator[Tuple[int, List[str]]]:
    block: List[str] = []
    first = 1
    for lineno, line in enumerate(handle, 1):
        if not block:
            first = lineno
        block.append(line)
        if len(block) >= block_lines:
            yield first, block
            block = []
    if block:
        yield first, block


class OverlapStore:
    """
    Streams overlaps from a PAF file through a callback

    The callback is invoked from pool worker threads with no ordering
    guarantee; a worker thread keeps its identity for the whole scan.
    """

    BLOCK_LINES = 10000

    def __init__(self, pool: Optional[StringPool] = None, block_lines: int = BLOCK_LINES):
        self.pool = pool if pool is not None else StringPool()
        self.block_lines = block_lines
        self.logger = logging.getLogger(__name__)

    def _open(self, path: Path):
        if path.suffix == '.gz':
            return gzip.open(path, 'rt')
        return open(path)

    def scan(self, path, threads: int, callback: Callable[[Overlap], bool]) -> List[Overlap]:
        """
        Run callback over every overlap in the file

        Args:
            path: PAF file
            threads: Number of worker threads
            callback: Called per overlap; True keeps the record

        Returns:
            Overlaps the callback asked to keep
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Overlap file not found: {path}")

        def work(first: int, lines: List[str]) -> List[Overlap]:
            kept = []
            for offset, line in enumerate(lines):
                if not line.strip() or line.startswith('#'):
                    continue
                overlap = parse_paf_line(line, self.pool, where=f"{path.name}:{first + offset}")
                if callback(overlap):
                    kept.append(overlap)
            return kept

        workers = max(1, threads)
        max_pending = workers * 2
        retained: List[Overlap] = []
        scanned_blocks = 0

        with ThreadPoolExecutor(max_workers=workers) as executor, self._open(path) as handle:
            pending = set()
            for first, lines in _read_blocks(handle, self.block_lines):
                pending.add(executor.submit(work, first, lines))
                if len(pending) >= max_pending:
                    done, pending = wait(pending, return_when=FIRST_COMPLETED)
                    for future in done:
                        retained.extend(future.result())
                        scanned_blocks += 1
            for future in pending:
                retained.extend(future.result())
                scanned_blocks += 1

        self.logger.debug(f"  Scanned {scanned_blocks} blocks from {path.name} "
                          f"with {workers} threads, kept {len(retained)} overlaps")
        return retained
