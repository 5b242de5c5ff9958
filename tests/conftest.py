"""
Pytest configuration and shared fixtures.
"""

import random
import shutil
import tempfile
from pathlib import Path

import pytest


@pytest.fixture
def temp_output_dir():
    """Create temporary output directory for tests."""
    temp_dir = tempfile.mkdtemp(prefix="ctgbridge_test_")
    yield Path(temp_dir)
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def random_seq():
    """Deterministic random DNA of a given length."""
    rng = random.Random(42)

    def _make(length):
        return "".join(rng.choice("ACGT") for _ in range(length))

    return _make


@pytest.fixture
def write_fasta(temp_output_dir):
    """Write a name -> sequence dict as FASTA, returns the path."""

    def _write(records, name="seqs.fasta"):
        path = temp_output_dir / name
        with open(path, 'w') as f:
            for seq_name, seq in records.items():
                f.write(f">{seq_name}\n{seq}\n")
        return path

    return _write


def paf_line(qname, qlen, qstart, qend, strand, tname, tlen, tstart, tend, matches, block_len):
    return (f"{qname}\t{qlen}\t{qstart}\t{qend}\t{strand}\t{tname}\t{tlen}\t{tstart}\t{tend}\t"
            f"{matches}\t{block_len}\t60\ttp:A:P\n")


@pytest.fixture
def write_paf(temp_output_dir):
    """Write PAF records given as tuples of paf_line() arguments, returns the path."""

    def _write(records, name="overlaps.paf"):
        path = temp_output_dir / name
        with open(path, 'w') as f:
            for record in records:
                f.write(paf_line(*record))
        return path

    return _write


@pytest.fixture
def bridge_inputs(temp_output_dir, write_fasta, write_paf, random_seq):
    """
    Two contigs bridged by read r1, with overlaps good enough to calibrate from.

    ctgA (5000) + r1[3000:5000] -> one bridged contig of 7000 bp.
    """
    contigs = {"ctgA": random_seq(5000), "ctgB": random_seq(4000), "ctgC": random_seq(300)}
    reads = {"r1": random_seq(6000), "r2": random_seq(6000), "r3": random_seq(6000)}

    contig_file = write_fasta(contigs, "contigs.fasta")
    read_file = write_fasta(reads, "reads.fasta")
    read2ctg_file = write_paf([
        ("r1", 6000, 0, 3000, "+", "ctgA", 5000, 2000, 5000, 2940, 3000),
        ("r2", 6000, 0, 3000, "+", "ctgA", 5000, 2000, 5000, 2910, 3000),
        ("r3", 6000, 3000, 6000, "+", "ctgB", 4000, 0, 3000, 2970, 3000),
    ], "read2ctg.paf")

    graph_file = temp_output_dir / "graph.json"
    graph_file.write_text(
        '{"paths": [["ctgA+", "ctgB+"]],'
        ' "edges": [{"from": "ctgA+", "to": "ctgB+", "link_length": 7000,'
        '            "seq_areas": [{"name": "r1", "start": 3000, "end": 5000}]}],'
        ' "contained": []}'
    )

    return {
        "contigs": contigs,
        "reads": reads,
        "contig_file": contig_file,
        "read_file": read_file,
        "read2ctg_file": read2ctg_file,
        "graph_file": graph_file,
        "output_file": temp_output_dir / "bridged.fasta",
        "output_dir": temp_output_dir,
    }
