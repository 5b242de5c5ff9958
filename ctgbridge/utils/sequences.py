#!/usr/bin/env python3
"""
Sequence Store - In-memory access to reads and contigs

Sequences from every loaded file share one name pool, so overlap files,
graph files and FASTA/FASTQ files all refer to a sequence by the same id.

Usage:
    store = ReadStore()
    store.load("contigs.fasta")
    contigs = store.ids_in_file("contigs.fasta")
    seq = store.sequence(store.pool.get_id("ctg1"))
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Set

import pysam
from Bio.Seq import Seq


class Strand(Enum):
    """Strand of an oriented sequence end"""
    FORWARD = "+"
    REVERSE = "-"


@dataclass(frozen=True)
class OrientedEnd:
    """One of the two strand-oriented ends of a sequence"""
    sequence_id: int
    strand: Strand = Strand.FORWARD

    @property
    def is_reverse(self) -> bool:
        return self.strand is Strand.REVERSE

    @classmethod
    def parse(cls, token: str, pool: 'StringPool') -> 'OrientedEnd':
        """Parse 'name+' or 'name-' into an end, interning the name"""
        token = token.strip()
        if len(token) < 2 or token[-1] not in "+-":
            raise ValueError(f"Invalid oriented sequence name: {token!r} (expected name+ or name-)")
        return cls(pool.get_id(token[:-1]), Strand(token[-1]))

    def format(self, pool: 'StringPool') -> str:
        return f"{pool.name(self.sequence_id)}{self.strand.value}"


def to_sequence_id(end: OrientedEnd) -> int:
    """Strip the orientation from an end"""
    return end.sequence_id


@dataclass(frozen=True)
class SeqArea:
    """Half-open sub-range [start, end) of a stored sequence"""
    id: int
    start: int
    end: int


class StringPool:
    """Thread-safe interning of sequence names to integer ids"""

    def __init__(self):
        self._ids: Dict[str, int] = {}
        self._names: List[str] = []
        self._lock = threading.Lock()

    def get_id(self, name: str) -> int:
        seq_id = self._ids.get(name)
        if seq_id is not None:
            return seq_id
        with self._lock:
            seq_id = self._ids.get(name)
            if seq_id is None:
                seq_id = len(self._names)
                self._names.append(name)
                self._ids[name] = seq_id
            return seq_id

    def query_id(self, name: str) -> Optional[int]:
        return self._ids.get(name)

    def name(self, seq_id: int) -> str:
        return self._names[seq_id]

    def __len__(self):
        return len(self._names)


class ReadStore:
    """
    Holds reads and contigs in memory, keyed by pool id

    FASTA/FASTQ files are read with pysam, plain or gzipped.
    """

    def __init__(self, pool: Optional[StringPool] = None):
        self.pool = pool if pool is not None else StringPool()
        self.logger = logging.getLogger(__name__)
        self._sequences: Dict[int, str] = {}
        self._files: Dict[str, Set[int]] = {}

    def load(self,
             path,
             filter_file: Optional[str] = None,
             min_length: int = 0,
             names: Optional[Set[str]] = None) -> Set[int]:
        """
        Load sequences from a FASTA/FASTQ file

        Args:
            path: Sequence file
            filter_file: Optional file listing the names to keep, one per line
            min_length: Sequences shorter than this are skipped
            names: Optional set of names to keep (combined with filter_file)

        Returns:
            Set of ids loaded from this file
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Sequence file not found: {path}")

        keep = set(names) if names is not None else None
        if filter_file:
            with open(filter_file) as f:
                listed = {line.strip() for line in f if line.strip()}
            keep = listed if keep is None else keep | listed

        loaded: Set[int] = set()
        skipped = 0
        with pysam.FastxFile(str(path)) as fh:
            for entry in fh:
                if keep is not None and entry.name not in keep:
                    continue
                sequence = entry.sequence or ""
                if len(sequence) < min_length:
                    skipped += 1
                    continue
                seq_id = self.pool.get_id(entry.name)
                self._sequences[seq_id] = sequence
                loaded.add(seq_id)

        self._files.setdefault(self._file_key(path), set()).update(loaded)
        self.logger.info(f"  Loaded {len(loaded)} sequences from {path.name}"
                         + (f" ({skipped} shorter than {min_length} skipped)" if skipped else ""))
        return loaded

    @staticmethod
    def _file_key(path) -> str:
        return str(Path(path).resolve())

    def ids_in_file(self, path) -> Set[int]:
        return set(self._files.get(self._file_key(path), set()))

    def length(self, seq_id: int) -> int:
        return len(self._get(seq_id))

    def sequence(self, seq_id: int) -> str:
        return self._get(seq_id)

    def sequence_area(self, area: SeqArea) -> str:
        seq = self._get(area.id)
        if not 0 <= area.start <= area.end <= len(seq):
            raise ValueError(f"Area {area.start}-{area.end} outside {self.name(area.id)} "
                             f"(length {len(seq)})")
        return seq[area.start:area.end]

    def name(self, seq_id: int) -> str:
        return self.pool.name(seq_id)

    @staticmethod
    def reverse_complement(sequence: str) -> str:
        return str(Seq(sequence).reverse_complement())

    def save_id_to_name(self, path):
        """Write 'id<TAB>name' for every loaded sequence"""
        with open(path, 'w') as f:
            for seq_id in sorted(self._sequences):
                f.write(f"{seq_id}\t{self.pool.name(seq_id)}\n")

    def _get(self, seq_id: int) -> str:
        try:
            return self._sequences[seq_id]
        except KeyError:
            raise KeyError(f"Sequence not loaded: id {seq_id}") from None

    def __contains__(self, seq_id: int) -> bool:
        return seq_id in self._sequences

    def __len__(self):
        return len(self._sequences)
