"""
Tests for multi-record aggregation and barcode statistics.
"""

import itertools

import pytest

from fqcollapse.collection import (
    MultiRecordCollection,
    combine_mean_qualities,
    get_barcode_stats,
    update_mean_qualities,
)
from fqcollapse.constants import NO_MATCH, SequencingMode
from fqcollapse.models import (
    PairedEndMultiRecord,
    PairedEndRecord,
    SingleEndMultiRecord,
    SingleEndRecord,
)


def se(read_id, seq, qualities, bc_seq=""):
    return SingleEndRecord(read_id, seq, qualities, bc_seq=bc_seq)


def pe(read_id, fw_seq, rev_seq, fw_qualities, rev_qualities, bc_seq=""):
    return PairedEndRecord(read_id, fw_seq, rev_seq, fw_qualities, rev_qualities, bc_seq=bc_seq)


@pytest.fixture
def single_collection():
    return MultiRecordCollection(SequencingMode.SINGLE_END)


@pytest.fixture
def paired_collection():
    return MultiRecordCollection(SequencingMode.PAIRED_END)


@pytest.mark.unit
class TestMeanQualities:

    def test_seed(self):
        target = []
        update_mean_qualities(target, 0, [10, 20])
        assert target == [10.0, 20.0]

    def test_fold(self):
        target = [10.0, 20.0]
        update_mean_qualities(target, 1, [30, 40])
        assert target == pytest.approx([20.0, 30.0])
        update_mean_qualities(target, 2, [0, 0])
        assert target == pytest.approx([40 / 3, 20.0])

    def test_combine(self):
        target = [10.0]
        combine_mean_qualities(target, 2, [40.0], 1)
        assert target == pytest.approx([20.0])

    def test_combine_into_empty(self):
        target = []
        combine_mean_qualities(target, 0, [12.5, 7.0], 4)
        assert target == [12.5, 7.0]

    def test_combine_with_no_reads_is_noop(self):
        target = [10.0, 20.0]
        combine_mean_qualities(target, 3, [], 0)
        assert target == [10.0, 20.0]

    def test_length_mismatch_is_an_invariant_violation(self):
        with pytest.raises(AssertionError):
            update_mean_qualities([10.0, 20.0], 1, [10])
        with pytest.raises(AssertionError):
            combine_mean_qualities([10.0], 1, [10.0, 20.0], 1)


@pytest.mark.unit
class TestFindOrInsert:

    def test_lookup_without_insert(self, single_collection):
        rec = se("r1", "ACGT", [30] * 4, "AA")
        assert single_collection.find_or_insert(rec) is None
        assert single_collection.find_position(rec) == NO_MATCH
        assert len(single_collection) == 0

    def test_insert_new(self, single_collection):
        rec = se("r1", "ACGT", [10, 20, 30, 40], "AA")
        mrec = single_collection.find_or_insert(rec, insert=True)
        assert isinstance(mrec, SingleEndMultiRecord)
        assert mrec.ids == {"r1"}
        assert mrec.bc_seq == "AA"
        assert mrec.seq == "ACGT"
        assert mrec.qualities == [10.0, 20.0, 30.0, 40.0]
        assert single_collection.find_position(rec) == 0
        assert single_collection.get(0) is mrec

    def test_same_read_twice_is_idempotent(self, single_collection):
        rec = se("r1", "ACGT", [10, 20, 30, 40], "AA")
        single_collection.find_or_insert(rec, insert=True)
        mrec = single_collection.find_or_insert(rec, insert=True)
        assert mrec.size == 1
        assert mrec.qualities == [10.0, 20.0, 30.0, 40.0]
        assert len(single_collection) == 1

    def test_lookup_does_not_fold(self, single_collection):
        single_collection.find_or_insert(se("r1", "ACGT", [10] * 4), insert=True)
        mrec = single_collection.find_or_insert(se("r2", "ACGT", [40] * 4), insert=False)
        assert mrec.ids == {"r1"}
        assert mrec.qualities == [10.0] * 4

    def test_fold_new_read(self, single_collection):
        single_collection.find_or_insert(se("r1", "ACGT", [10] * 4), insert=True)
        mrec = single_collection.find_or_insert(se("r2", "ACGT", [40] * 4), insert=True)
        assert mrec.ids == {"r1", "r2"}
        assert mrec.qualities == pytest.approx([25.0] * 4)
        assert len(single_collection) == 1

    def test_mean_is_independent_of_insertion_order(self):
        reads = [
            se("r1", "ACG", [10, 20, 30]),
            se("r2", "ACG", [20, 20, 2]),
            se("r3", "ACG", [33, 11, 7]),
            se("r4", "ACG", [1, 40, 40]),
        ]
        expected = [sum(r.qualities[i] for r in reads) / len(reads) for i in range(3)]
        for ordering in itertools.permutations(reads):
            coll = MultiRecordCollection(SequencingMode.SINGLE_END)
            for rec in ordering:
                coll.find_or_insert(rec, insert=True)
            assert len(coll) == 1
            assert coll.get(0).size == 4
            assert coll.get(0).qualities == pytest.approx(expected)

    def test_single_base_difference_is_not_aggregated(self, single_collection):
        seq = "ACGTACGTAC"
        for i in range(len(seq)):
            variant = seq[:i] + ("A" if seq[i] != "A" else "C") + seq[i + 1:]
            single_collection.find_or_insert(se(f"v{i}", variant, [30] * 10), insert=True)
        single_collection.find_or_insert(se("orig", seq, [30] * 10), insert=True)
        assert len(single_collection) == len(seq) + 1
        assert all(m.size == 1 for m in single_collection)

    def test_barcode_is_part_of_key(self, single_collection):
        single_collection.find_or_insert(se("r1", "ACGT", [30] * 4, "AAAA"), insert=True)
        single_collection.find_or_insert(se("r2", "ACGT", [30] * 4, "CCCC"), insert=True)
        assert len(single_collection) == 2

    def test_paired_mates_are_part_of_key(self, paired_collection):
        a = pe("p1", "ACGT", "TTTT", [30] * 4, [30] * 4, "GG")
        b = pe("p2", "ACGT", "TTTA", [30] * 4, [30] * 4, "GG")
        c = pe("p3", "ACGT", "TTTT", [10] * 4, [20] * 4, "GG")
        paired_collection.find_or_insert(a, insert=True)
        paired_collection.find_or_insert(b, insert=True)
        mrec = paired_collection.find_or_insert(c, insert=True)
        assert len(paired_collection) == 2
        assert isinstance(mrec, PairedEndMultiRecord)
        assert mrec.ids == {"p1", "p3"}
        assert mrec.fw_qualities == pytest.approx([20.0] * 4)
        assert mrec.rev_qualities == pytest.approx([25.0] * 4)
        assert paired_collection.find_position(b) == 1

    def test_paired_with_dropped_forward_read(self, paired_collection):
        a = pe("p1", "", "TTTT", [30] * 4, [30] * 4)
        b = pe("p2", "", "TTTT", [10] * 4, [10] * 4)
        paired_collection.find_or_insert(a, insert=True)
        mrec = paired_collection.find_or_insert(b, insert=True)
        assert mrec.size == 2
        assert mrec.fw_qualities == []
        assert mrec.rev_qualities == pytest.approx([20.0] * 4)

    def test_get_out_of_range(self, single_collection):
        with pytest.raises(AssertionError):
            single_collection.get(0)


@pytest.mark.unit
class TestMerge:

    def test_merge_matching_record(self, single_collection):
        single_collection.find_or_insert(se("r1", "ACGT", [10] * 4, "AA"), insert=True)
        single_collection.find_or_insert(se("r2", "ACGT", [10] * 4, "AA"), insert=True)

        other = SingleEndMultiRecord("AA", "ACGT", ids={"r3"}, qualities=[40.0] * 4)
        merged = single_collection.merge(other)
        assert merged is single_collection.get(0)
        assert merged.ids == {"r1", "r2", "r3"}
        assert merged.qualities == pytest.approx([20.0] * 4)
        assert len(single_collection) == 1

    def test_merge_new_record(self, single_collection):
        single_collection.find_or_insert(se("r1", "ACGT", [10] * 4, "AA"), insert=True)
        other = SingleEndMultiRecord("CC", "ACGT", ids={"r2"}, qualities=[40.0] * 4)
        merged = single_collection.merge(other)
        assert merged is not other
        assert merged.ids == {"r2"}
        assert merged.qualities == [40.0] * 4
        assert len(single_collection) == 2
        assert single_collection.find_position(se("x", "ACGT", [0] * 4, "CC")) == 1

    def test_merge_collections(self, paired_collection):
        batch = MultiRecordCollection(SequencingMode.PAIRED_END)
        batch.find_or_insert(pe("p1", "AC", "GT", [10, 10], [20, 20]), insert=True)
        batch.find_or_insert(pe("p2", "AC", "GG", [10, 10], [20, 20]), insert=True)
        paired_collection.merge_collection(batch)
        batch.clear()

        batch.find_or_insert(pe("p3", "AC", "GT", [30, 30], [40, 40]), insert=True)
        paired_collection.merge_collection(batch)

        assert len(paired_collection) == 2
        mrec = paired_collection.get(0)
        assert mrec.ids == {"p1", "p3"}
        assert mrec.fw_qualities == pytest.approx([20.0, 20.0])
        assert mrec.rev_qualities == pytest.approx([30.0, 30.0])

    def test_merged_batch_is_not_shared(self, single_collection):
        batch = MultiRecordCollection(SequencingMode.SINGLE_END)
        batch.find_or_insert(se("r1", "ACGT", [10] * 4), insert=True)
        single_collection.merge_collection(batch)

        single_collection.find_or_insert(se("r2", "ACGT", [40] * 4), insert=True)
        assert single_collection.get(0).ids == {"r1", "r2"}
        assert single_collection.get(0).qualities == pytest.approx([25.0] * 4)
        assert batch.get(0).ids == {"r1"}
        assert batch.get(0).qualities == [10.0] * 4

    def test_merge_batch_into_two_collections(self, single_collection):
        batch = MultiRecordCollection(SequencingMode.SINGLE_END)
        batch.find_or_insert(se("r1", "ACGT", [10] * 4), insert=True)
        other = MultiRecordCollection(SequencingMode.SINGLE_END)
        single_collection.merge_collection(batch)
        other.merge_collection(batch)

        single_collection.merge(SingleEndMultiRecord("", "ACGT", ids={"r2"}, qualities=[30.0] * 4))
        assert other.get(0).ids == {"r1"}
        assert other.get(0).qualities == [10.0] * 4

    def test_merge_record_without_reads(self, single_collection):
        single_collection.find_or_insert(se("r1", "ACGT", [10] * 4, "AA"), insert=True)
        merged = single_collection.merge(SingleEndMultiRecord("AA", "ACGT"))
        assert merged.ids == {"r1"}
        assert merged.qualities == [10.0] * 4
        assert len(single_collection) == 1

    def test_key_cannot_be_mapped_twice(self, single_collection):
        single_collection._append(SingleEndMultiRecord("AA", "ACGT", ids={"r1"}, qualities=[10.0] * 4))
        with pytest.raises(AssertionError):
            single_collection._append(SingleEndMultiRecord("AA", "ACGT", ids={"r2"}, qualities=[20.0] * 4))


@pytest.mark.unit
class TestBarcodeStats:

    def test_counts(self, single_collection):
        reads = [
            se("r1", "ACGT", [30] * 4, "AA"),
            se("r2", "ACGT", [30] * 4, "AA"),
            se("r3", "ACGG", [30] * 4, "AA"),
            se("r4", "ACGT", [30] * 4, "CC"),
        ]
        for rec in reads:
            single_collection.find_or_insert(rec, insert=True)

        stats = get_barcode_stats(single_collection)
        assert stats.bc_seqs == ["AA", "CC"]
        assert stats.n_reads == [3, 1]
        assert stats.n_unique_reads == [2, 1]
        assert stats.n_total_reads == 4
        assert stats.n_total_unique_reads == 3
        assert stats.rows()[0] == ("AA", 3, 2)

    def test_totals_match_collection(self, paired_collection):
        for i in range(30):
            bc = "ACGT"[i % 4] * 3
            fw = "AC" * (1 + i % 3)
            rev = "GT" * (1 + i % 2)
            paired_collection.find_or_insert(pe(f"p{i}", fw, rev, [30] * len(fw), [30] * len(rev), bc),
                                             insert=True)
        stats = paired_collection.barcode_stats()
        assert sum(stats.n_reads) == stats.n_total_reads == sum(m.size for m in paired_collection)
        assert sum(stats.n_unique_reads) == len([m for m in paired_collection if m.size > 0])
        assert len(stats) == 4

    def test_barcodes_without_reads_are_omitted(self, single_collection):
        single_collection.merge(SingleEndMultiRecord("GG", "ACGT"))
        single_collection.find_or_insert(se("r1", "ACGT", [30] * 4, "AA"), insert=True)
        stats = single_collection.barcode_stats()
        assert stats.bc_seqs == ["AA"]
        assert stats.n_total_unique_reads == 1


@pytest.mark.unit
class TestRendering:

    def test_str(self, single_collection, paired_collection):
        single_collection.find_or_insert(se("r1", "ACGT", [30] * 4, "AA"), insert=True)
        single_collection.find_or_insert(se("r2", "ACGT", [30] * 4, "AA"), insert=True)
        assert str(single_collection.get(0)) == "2\tAA\tACGT"

        paired_collection.find_or_insert(pe("p1", "AC", "GT", [30] * 2, [30] * 2, "TT"), insert=True)
        assert str(paired_collection) == "1\tTT\tAC\tGT"

    def test_format_tree(self, paired_collection):
        paired_collection.find_or_insert(pe("p1", "AC", "GT", [30] * 2, [30] * 2, "TT"), insert=True)
        paired_collection.find_or_insert(pe("p2", "AC", "GT", [30] * 2, [30] * 2, "TT"), insert=True)
        assert paired_collection.format_tree().splitlines() == [
            "TT",
            "    AC",
            "        GT",
            "            p1",
            "            p2",
        ]

    def test_clear(self, single_collection):
        rec = se("r1", "ACGT", [30] * 4, "AA")
        single_collection.find_or_insert(rec, insert=True)
        single_collection.clear()
        assert len(single_collection) == 0
        assert single_collection.bc_map == {}
        assert single_collection.find_position(rec) == NO_MATCH
