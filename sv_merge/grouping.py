"""Cluster membership input and the composite variant-id scheme.

Records from different samples may share a local ID, so cluster membership
is keyed by a composite id made of the sample index and the record ID
(``"2_sniffles.DEL.17"``). The grouping itself comes from an upstream
clustering stage as a tab-separated file with one member per line::

    # cluster   sample  record_id
    g1          0       sniffles.DEL.17
    g1          1       pbsv.DEL.3

Clusters are numbered in order of first appearance and members keep file
order.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import List, NamedTuple

from .logging_utils import GroupingError, handle_critical_error, log_message
from .records import open_vcf

SAMPLE_SEPARATOR = "_"


class Member(NamedTuple):
    """One record of one sample that belongs to a cluster."""

    sample_index: int
    record_id: str


def variant_id_of(record_id: str, sample_index: int) -> str:
    """Return the composite lookup key for *record_id* read from *sample_index*."""
    return f"{sample_index}{SAMPLE_SEPARATOR}{record_id}"


def strip_sample_prefix(record_id: str) -> str:
    """Drop everything up to and including the first ``_`` of *record_id*.

    IDs without an underscore are returned unchanged.
    """
    return record_id[record_id.find(SAMPLE_SEPARATOR) + 1:]


def load_groups(path: str, verbose: bool = False) -> "OrderedDict[str, List[Member]]":
    """Read a cluster grouping file into ``cluster -> [Member, ...]``."""
    groups: "OrderedDict[str, List[Member]]" = OrderedDict()
    try:
        handle = open_vcf(path)
    except OSError as exc:
        handle_critical_error(f"Could not open grouping file {path}: {exc}", exc_cls=GroupingError)

    with handle:
        for line_number, raw in enumerate(handle, start=1):
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            fields = line.split("\t")
            if len(fields) != 3:
                handle_critical_error(
                    f"{path}:{line_number}: expected 3 tab-separated columns "
                    f"(cluster, sample, record id), found {len(fields)}",
                    exc_cls=GroupingError,
                )
            cluster, sample, record_id = (field.strip() for field in fields)
            try:
                sample_index = int(sample)
            except ValueError:
                handle_critical_error(
                    f"{path}:{line_number}: sample index must be an integer, got {sample!r}",
                    exc_cls=GroupingError,
                )
            if sample_index < 0:
                handle_critical_error(
                    f"{path}:{line_number}: sample index must not be negative",
                    exc_cls=GroupingError,
                )
            groups.setdefault(cluster, []).append(Member(sample_index, record_id))

    member_count = sum(len(members) for members in groups.values())
    log_message(f"Loaded {len(groups)} clusters with {member_count} members from {path}", verbose)
    return groups
