"""
Tests for the sequence store, name pool and oriented ends.
"""

import gzip

import pytest

from ctgbridge.utils.sequences import (
    OrientedEnd,
    ReadStore,
    SeqArea,
    Strand,
    StringPool,
    to_sequence_id,
)


class TestStringPool:

    def test_ids_are_stable(self):
        pool = StringPool()
        a = pool.get_id("ctg1")
        b = pool.get_id("read1")
        assert pool.get_id("ctg1") == a
        assert a != b
        assert pool.name(b) == "read1"
        assert pool.query_id("missing") is None
        assert len(pool) == 2


class TestOrientedEnd:

    def test_both_ends_map_back_to_sequence(self):
        pool = StringPool()
        forward = OrientedEnd.parse("ctg7+", pool)
        reverse = OrientedEnd.parse("ctg7-", pool)
        assert to_sequence_id(forward) == to_sequence_id(reverse) == pool.get_id("ctg7")
        assert not forward.is_reverse
        assert reverse.is_reverse
        assert reverse.strand is Strand.REVERSE
        assert forward != reverse

    def test_format_round_trip(self):
        pool = StringPool()
        end = OrientedEnd.parse("tig_01-", pool)
        assert end.format(pool) == "tig_01-"

    @pytest.mark.parametrize("token", ["ctg1", "+", "", "ctg1*"])
    def test_invalid_tokens(self, token):
        with pytest.raises(ValueError):
            OrientedEnd.parse(token, StringPool())


class TestReadStore:

    def test_load_fasta(self, write_fasta):
        path = write_fasta({"c1": "ACGTACGT", "c2": "GGGCCC"})
        store = ReadStore()
        loaded = store.load(path)

        c1 = store.pool.get_id("c1")
        assert loaded == store.ids_in_file(path)
        assert len(loaded) == 2
        assert store.sequence(c1) == "ACGTACGT"
        assert store.length(c1) == 8
        assert store.name(c1) == "c1"

    def test_load_gzipped_fastq(self, temp_output_dir):
        path = temp_output_dir / "reads.fq.gz"
        with gzip.open(path, 'wt') as f:
            f.write("@r1\nACGTT\n+\nIIIII\n@r2\nGG\n+\nII\n")
        store = ReadStore()
        store.load(path)
        assert store.sequence(store.pool.get_id("r1")) == "ACGTT"
        assert len(store) == 2

    def test_min_length(self, write_fasta):
        path = write_fasta({"long": "A" * 100, "short": "A" * 10})
        store = ReadStore()
        store.load(path, min_length=50)
        assert store.pool.get_id("long") in store
        assert store.pool.get_id("short") not in store

    def test_filter_file_and_names(self, write_fasta, temp_output_dir):
        path = write_fasta({"r1": "AAAA", "r2": "CCCC", "r3": "GGGG"})
        filter_file = temp_output_dir / "keep.txt"
        filter_file.write_text("r1\n\n")

        store = ReadStore()
        store.load(path, filter_file=str(filter_file), names={"r3"})
        assert {store.name(i) for i in store.ids_in_file(path)} == {"r1", "r3"}

    def test_ids_in_file_are_per_file(self, write_fasta):
        reads = write_fasta({"r1": "AAAA"}, "reads.fasta")
        contigs = write_fasta({"c1": "CCCC"}, "contigs.fasta")
        store = ReadStore()
        store.load(reads)
        store.load(contigs)
        assert store.ids_in_file(contigs) == {store.pool.get_id("c1")}

    def test_shared_pool(self, write_fasta):
        pool = StringPool()
        read_id = pool.get_id("r2")
        store = ReadStore(pool)
        store.load(write_fasta({"r1": "AC", "r2": "GT"}))
        assert store.sequence(read_id) == "GT"

    def test_sequence_area(self, write_fasta):
        store = ReadStore()
        store.load(write_fasta({"r1": "AACCGGTT"}))
        r1 = store.pool.get_id("r1")
        assert store.sequence_area(SeqArea(r1, 2, 6)) == "CCGG"
        assert store.sequence_area(SeqArea(r1, 3, 3)) == ""
        with pytest.raises(ValueError):
            store.sequence_area(SeqArea(r1, 4, 9))

    def test_unknown_sequence(self):
        with pytest.raises(KeyError):
            ReadStore().sequence(5)

    def test_reverse_complement(self):
        assert ReadStore.reverse_complement("AACGTN") == "NACGTT"

    def test_missing_file(self, temp_output_dir):
        with pytest.raises(FileNotFoundError):
            ReadStore().load(temp_output_dir / "nope.fa")

    def test_save_id_to_name(self, write_fasta, temp_output_dir):
        store = ReadStore()
        store.load(write_fasta({"x": "A", "y": "C"}))
        out = temp_output_dir / "id2name.txt"
        store.save_id_to_name(out)
        assert out.read_text() == "0\tx\n1\ty\n"
