"""Tests for the per-cluster accumulator and the cluster table."""

from __future__ import annotations

import itertools
from collections import OrderedDict

import pytest

from conftest import make_record, members
from sv_merge.clusters import (
    AbsorbStatus,
    Cluster,
    ClusterState,
    ClusterTable,
    round_half_up,
    variance,
)
from sv_merge.logging_utils import GroupingError
from sv_merge.settings import MergeSettings


def _cluster(pairs, sample_count=2, **settings):
    return Cluster(0, "g1", members(*pairs), sample_count, MergeSettings(**settings))


@pytest.mark.parametrize(
    "total, count, expected",
    [
        (210, 2, 105),
        (3, 2, 2),  # 1.5 rounds up
        (5, 2, 3),  # 2.5 rounds up
        (1, 3, 0),
        (2, 3, 1),
        (7, 7, 1),
    ],
)
def test_round_half_up(total, count, expected):
    assert round_half_up(total, count) == expected


def test_variance_of_two_starts():
    assert "%.6f" % variance(30, 10 * 10 + 20 * 20, 2) == "25.000000"


def test_cluster_support_vector_and_count():
    cluster = _cluster([(0, "a"), (2, "c"), (2, "d")], sample_count=4)

    assert cluster.size == 3
    assert cluster.support_vector == "1010"
    assert cluster.support_count == 2
    assert cluster.state is ClusterState.EMPTY


def test_cluster_finalizes_exactly_on_last_member():
    cluster = _cluster([(0, "a1"), (1, "b1")])

    first = cluster.absorb(make_record("a1", 100, 50), 0)
    assert first.status is AbsorbStatus.ACCUMULATED
    assert cluster.used == 1
    assert cluster.state is ClusterState.ACCUMULATING

    second = cluster.absorb(make_record("b1", 110, 60), 1)
    assert second.finalized
    assert cluster.used == cluster.size == 2
    assert cluster.state is ClusterState.FINALIZED

    again = cluster.absorb(make_record("b1", 110, 60), 1)
    assert again.status is AbsorbStatus.IGNORED
    assert again.reason == "complete"
    assert cluster.used == 2


def test_consensus_statistics_for_two_members():
    cluster = _cluster([(0, "a1"), (1, "b1")])
    cluster.absorb(make_record("a1", 100, 50), 0)
    record = cluster.absorb(make_record("b1", 110, 60), 1).record

    assert record.pos == 105
    assert record.get_info("SVLEN") == "55"
    assert record.get_info("END") == "160"
    assert record.get_info("STARTVARIANCE") == "25.000000"
    assert record.get_info("ENDVARIANCE") == "100.000000"
    assert record.get_info("SUPP_VEC") == "11"
    assert record.get_info("SUPP") == "2"
    assert record.get_info("SVMETHOD") == "JASMINE"
    assert record.get_info("IDLIST") == "a1,b1"


def test_single_member_cluster_has_zero_variance():
    cluster = _cluster([(1, "b1")])
    record = cluster.absorb(make_record("b1", 1234, 77), 1).record

    assert record.pos == 1234
    assert record.get_info("STARTVARIANCE") == "0.000000"
    assert record.get_info("ENDVARIANCE") == "0.000000"
    assert record.get_info("SUPP_VEC") == "01"


def test_emitted_id_comes_from_last_absorbed_member():
    cluster = _cluster([(0, "0_first"), (1, "1_second")])
    cluster.absorb(make_record("0_first", 100, 10), 0)
    record = cluster.absorb(make_record("1_second", 100, 10), 1).record

    assert record.id == "second"
    assert record.get_info("IDLIST") == "first,second"


def test_id_list_follows_arrival_order():
    cluster = _cluster([(0, "x"), (0, "y"), (1, "z")])
    for record_id, sample in (("y", 0), ("x", 0), ("z", 1)):
        result = cluster.absorb(make_record(record_id, 500, 20), sample)

    assert result.record.get_info("IDLIST") == "y,x,z"


def test_numeric_aggregates_do_not_depend_on_arrival_order():
    specs = [("a", 0, 100, 40), ("b", 1, 117, 45), ("c", 2, 131, 52)]
    outputs = set()
    for head in itertools.permutations(specs[:2]):
        order = list(head) + [specs[2]]
        cluster = _cluster([(s, rid) for rid, s, _, _ in specs], sample_count=3)
        for record_id, sample, pos, length in order:
            result = cluster.absorb(make_record(record_id, pos, length), sample)
        record = result.record
        outputs.add(
            (
                record.pos,
                record.get_info("END"),
                record.get_info("SVLEN"),
                record.get_info("STARTVARIANCE"),
                record.get_info("ENDVARIANCE"),
                record.id,
            )
        )

    assert len(outputs) == 1


def test_low_support_cluster_is_never_accumulated():
    cluster = _cluster([(0, "a1"), (0, "a2")], min_support=2)

    assert cluster.suppressed
    for record_id in ("a1", "a2"):
        result = cluster.absorb(make_record(record_id, 100, 50), 0)
        assert result.status is AbsorbStatus.IGNORED
        assert result.reason == "low_support"
    assert cluster.used == 0
    assert cluster.state is ClusterState.EMPTY


def test_placeholders_when_strand_and_type_not_grouped():
    cluster = _cluster([(0, "a1")])
    record = cluster.absorb(make_record("a1", 100, 50), 0).record

    assert record.get_info("STRANDS") == "??"
    assert record.get_info("SVTYPE") == "???"


def test_strand_and_type_kept_when_grouped():
    cluster = _cluster([(0, "a1")], use_strand=True, use_type=True, svmethod="TEST")
    record = cluster.absorb(make_record("a1", 100, 50), 0).record

    assert record.get_info("STRANDS") == "+-"
    assert record.get_info("SVTYPE") == "DEL"
    assert record.get_info("SVMETHOD") == "TEST"


def test_oldtype_dup_from_any_member_is_kept():
    cluster = _cluster([(0, "a1"), (1, "b1")])
    cluster.absorb(make_record("a1", 100, 50, svtype="INS"), 0)
    record = cluster.absorb(
        make_record("b1", 104, 50, svtype="INS", extra_info="OLDTYPE=DUP"), 1
    ).record

    assert record.get_info("OLDTYPE") == "DUP"


def test_seed_record_is_not_mutated():
    seed = make_record("a1", 100, 50)
    cluster = _cluster([(0, "a1"), (1, "b1")])
    cluster.absorb(seed, 0)
    cluster.absorb(make_record("b1", 110, 60), 1)

    assert seed.pos == 100
    assert seed.get_info("END") == "150"
    assert "SUPP" not in seed.info


def test_cluster_rejects_sample_outside_file_count():
    with pytest.raises(GroupingError):
        _cluster([(0, "a1"), (3, "d1")], sample_count=2)


def test_table_lookup_and_unknown_ids():
    groups = OrderedDict(
        [
            ("g1", members((0, "a1"), (1, "b1"))),
            ("g2", members((1, "b2"))),
        ]
    )
    table = ClusterTable.build(groups, 2)

    assert len(table) == 2
    assert table.lookup("0_a1") == 0
    assert table.lookup("1_b2") == 1
    assert table.lookup("0_b2") is None
    assert table.cluster_at(1).name == "g2"

    result = table.absorb("5_missing", make_record("missing", 10, 10), 0)
    assert result.status is AbsorbStatus.IGNORED
    assert result.reason == "unknown"
    assert all(cluster.used == 0 for cluster in table)


def test_table_accepts_plain_sequence_of_groups():
    table = ClusterTable.build([members((0, "a1")), members((0, "a2"))], 1)

    assert [cluster.name for cluster in table] == ["0", "1"]
    assert table.lookup("0_a2") == 1


def test_pending_lists_clusters_still_waiting_for_members():
    groups = OrderedDict(
        [
            ("g1", members((0, "a1"), (1, "b1"))),
            ("g2", members((0, "a2"))),
            ("g3", members((0, "a3"), (0, "a4"))),
        ]
    )
    table = ClusterTable.build(groups, 2, MergeSettings(min_support=2))

    table.absorb("0_a1", make_record("a1", 10, 10), 0)

    assert [cluster.name for cluster in table.pending()] == ["g1"]


@pytest.mark.parametrize("sample_index", [2, 5])
def test_record_from_sample_outside_support_vector_is_ignored(sample_index):
    cluster = _cluster([(0, "a1"), (1, "b1")], sample_count=3)

    result = cluster.absorb(make_record("c1", 100, 50), sample_index)

    assert result.status is AbsorbStatus.IGNORED
    assert result.reason == "not_member"
    assert cluster.state is ClusterState.EMPTY
    assert cluster.used == 0
