#!/usr/bin/env python3
"""
Contig Bridging Engine

One bridging run:
1. Auto select read2ctg (and ctg2ctg) thresholds that were not given
2. Load contigs
3. Build the contig graph with the final parameters (external builder)
4. Load the raw reads used as patch material
5. Write bridged contigs, longest first
6. Optionally dump intermediate files
"""

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Callable, Dict, Optional, Set

from ctgbridge.core.aggregator import stat_read_info
from ctgbridge.core.assembler import BridgeAssembler, BridgeSummary
from ctgbridge.core.calibrator import ThresholdCalibrator
from ctgbridge.utils.graph import ContigGraph
from ctgbridge.utils.sequences import ReadStore, StringPool

SELECT_BRANCH_CHOICES = ('no', 'best')


@dataclass
class BridgeConfig:
    """Parameters of a bridging run; negative thresholds are auto selected"""
    read2ctg_min_identity: float = -1
    ctg2ctg_min_identity: float = -1
    read2ctg_max_overhang: int = -1
    ctg2ctg_max_overhang: int = -1
    read_min_length: int = 10000
    ctg_min_length: int = 10000
    read2ctg_min_aligned_length: int = 5000
    ctg2ctg_min_aligned_length: int = 5000
    read2ctg_min_coverage: int = 3
    min_contig_length: int = 500
    select_branch: str = 'best'
    thread_size: int = 4
    output_directory: str = '.'
    dump: bool = False

    def __post_init__(self):
        if self.select_branch not in SELECT_BRANCH_CHOICES:
            raise ValueError(f"select_branch must be one of {SELECT_BRANCH_CHOICES}, "
                             f"got {self.select_branch!r}")
        if self.thread_size < 1:
            raise ValueError(f"thread_size must be at least 1, got {self.thread_size}")

    def graph_parameters(self) -> Dict:
        """Parameters handed to the graph builder"""
        return {
            'read2ctg_min_identity': self.read2ctg_min_identity,
            'ctg2ctg_min_identity': self.ctg2ctg_min_identity,
            'read_min_length': self.read_min_length,
            'ctg_min_length': self.ctg_min_length,
            'read2ctg_max_overhang': self.read2ctg_max_overhang,
            'ctg2ctg_max_overhang': self.ctg2ctg_max_overhang,
            'read2ctg_min_aligned_length': self.read2ctg_min_aligned_length,
            'ctg2ctg_min_aligned_length': self.ctg2ctg_min_aligned_length,
            'read2ctg_min_coverage': self.read2ctg_min_coverage,
            'select_branch': self.select_branch,
            'thread_size': self.thread_size,
        }

    def to_dict(self) -> Dict:
        return asdict(self)


GraphBuilder = Callable[[Dict, StringPool], ContigGraph]


class BridgeEngine:
    """
    Bridges contigs with raw reads
    """

    # (identity, overhang) filters for the calibration scans
    READ2CTG_STAT_THRESHOLDS = (75, 500)
    CTG2CTG_STAT_THRESHOLDS = (95, 250)

    def __init__(self,
                 read_file: str,
                 contig_file: str,
                 read2ctg_file: str,
                 bridged_contig_file: str,
                 graph_builder: GraphBuilder,
                 config: Optional[BridgeConfig] = None,
                 ctg2ctg_file: Optional[str] = None):

        self.read_file = Path(read_file)
        self.contig_file = Path(contig_file)
        self.read2ctg_file = Path(read2ctg_file)
        self.bridged_contig_file = Path(bridged_contig_file)
        self.ctg2ctg_file = Path(ctg2ctg_file) if ctg2ctg_file else None
        self.graph_builder = graph_builder
        self.config = config if config is not None else BridgeConfig()

        self.logger = logging.getLogger(__name__)
        self.output_dir = Path(self.config.output_directory)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        self.pool = StringPool()
        self.read_store = ReadStore(self.pool)
        self.contigs: Set[int] = set()
        self.graph: Optional[ContigGraph] = None

        self.print_arguments()

    def print_arguments(self):
        self.logger.info("=" * 60)
        self.logger.info("BridgeEngine initialized")
        self.logger.info(f"  Raw reads: {self.read_file}")
        self.logger.info(f"  Contigs: {self.contig_file}")
        self.logger.info(f"  read2ctg overlaps: {self.read2ctg_file}")
        self.logger.info(f"  ctg2ctg overlaps: {self.ctg2ctg_file}")
        self.logger.info(f"  Output: {self.bridged_contig_file}")
        for key, value in self.config.to_dict().items():
            self.logger.info(f"  {key}: {value}")
        self.logger.info("=" * 60)

    def output_path(self, name: str) -> Path:
        return self.output_dir / name

    def run(self) -> Path:
        """Run the whole bridging pipeline, returns the output FASTA path"""
        self.auto_select_params()

        self.logger.info(f"Load contig file {self.contig_file}")
        self.read_store.load(self.contig_file)
        self.contigs = self.read_store.ids_in_file(self.contig_file)

        self.logger.info("Create graph and identify best path")
        self.graph = self.graph_builder(self.config.graph_parameters(), self.pool)

        self.logger.info(f"Load read file {self.read_file}")
        self.read_store.load(self.read_file, names=self._patch_read_names())
        self.check_graph_sequences()

        self.logger.info(f"Save bridged contigs to {self.bridged_contig_file}")
        self.save_bridged_contigs()

        if self.config.dump:
            self.logger.info("Dump internal variables")
            self.dump()

        self.logger.info("END")
        return self.bridged_contig_file

    def auto_select_params(self):
        config = self.config
        if config.read2ctg_min_identity < 0 or config.read2ctg_max_overhang < 0:
            self.logger.info("Auto select read2ctg parameters")
            self.auto_select_read2ctg_params()

        if self.ctg2ctg_file and (config.ctg2ctg_min_identity < 0 or config.ctg2ctg_max_overhang < 0):
            self.logger.info("Auto select ctg2ctg parameters")
            self.auto_select_ctg2ctg_params()

    def auto_select_read2ctg_params(self):
        identity, overhang = self.READ2CTG_STAT_THRESHOLDS
        read_infos = stat_read_info(self.read2ctg_file, identity, overhang,
                                    threads=self.config.thread_size, pool=self.pool)
        calibrator = ThresholdCalibrator('read2ctg')

        if self.config.read2ctg_min_identity < 0:
            self.config.read2ctg_min_identity = calibrator.select_min_identity(read_infos)
        if self.config.read2ctg_max_overhang < 0:
            self.config.read2ctg_max_overhang = calibrator.select_max_overhang(read_infos)

    def auto_select_ctg2ctg_params(self):
        identity, overhang = self.CTG2CTG_STAT_THRESHOLDS
        read_infos = stat_read_info(self.ctg2ctg_file, identity, overhang,
                                    threads=self.config.thread_size, pool=self.pool)
        calibrator = ThresholdCalibrator('ctg2ctg')

        if self.config.ctg2ctg_min_identity < 0:
            self.config.ctg2ctg_min_identity = calibrator.select_min_identity(read_infos)
        if self.config.ctg2ctg_max_overhang < 0:
            self.config.ctg2ctg_max_overhang = calibrator.select_max_overhang(read_infos)

    def _patch_read_names(self) -> Set[str]:
        """Names of reads used as patch material on the selected paths"""
        names = set()
        for path in self.graph.paths():
            for prev, curr in zip(path, path[1:]):
                for area in self.graph.edge(prev, curr).get_seq_area():
                    if area.id not in self.contigs:
                        names.add(self.pool.name(area.id))
        return names

    def check_graph_sequences(self):
        """Every path anchor and patch area must name a loaded sequence"""
        for path in self.graph.paths():
            for end in path:
                if end.sequence_id not in self.contigs:
                    raise ValueError(f"Graph path uses {self.pool.name(end.sequence_id)}, "
                                     f"which is not in contig file {self.contig_file}")
            for prev, curr in zip(path, path[1:]):
                for area in self.graph.edge(prev, curr).get_seq_area():
                    if area.id not in self.read_store:
                        raise ValueError(f"Graph edge {prev.format(self.pool)} -> {curr.format(self.pool)} "
                                         f"patches with {self.pool.name(area.id)}, which is not in "
                                         f"{self.read_file} or {self.contig_file}")

    def save_bridged_contigs(self) -> BridgeSummary:
        assembler = BridgeAssembler(self.graph, self.read_store, self.contigs,
                                    min_contig_length=self.config.min_contig_length)
        return assembler.save_bridged_contigs(self.bridged_contig_file)

    def save_thresholds(self) -> Path:
        """Write the final parameters as JSON"""
        thresholds_file = self.output_path("thresholds.json")
        with open(thresholds_file, 'w') as f:
            json.dump(self.config.to_dict(), f, indent=2)
        self.logger.info(f"  Saved parameters to {thresholds_file}")
        return thresholds_file

    def dump(self):
        self.read_store.save_id_to_name(self.output_path("id2name.txt"))
        self.save_thresholds()
