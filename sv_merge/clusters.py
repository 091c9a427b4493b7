"""Per-cluster consensus accumulation.

Every cluster produced by the upstream grouping gets a :class:`Cluster`
that folds member records into running sums as they stream past. Averages
are not divided out until the last member has been seen, so that positions
stay exact integers for the whole run; the consensus record is derived from
the first member only at that point. Once written, the accumulator is
dropped so memory is bounded by the clusters that are still incomplete.

:class:`ClusterTable` owns all clusters of a run together with the reverse
index from composite variant id to cluster number.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Union

from .grouping import Member, strip_sample_prefix, variant_id_of
from .logging_utils import GroupingError, handle_critical_error, log_message
from .records import VcfRecord
from .settings import STRAND_PLACEHOLDER, TYPE_PLACEHOLDER, MergeSettings

DUP_OLDTYPE = "DUP"


def round_half_up(total: int, count: int) -> int:
    """Return ``floor(total / count + 0.5)`` using exact integer arithmetic."""
    return (2 * total + count) // (2 * count)


def variance(total: int, total_squared: int, count: int) -> float:
    """Population variance from a sum and a sum of squares."""
    return total_squared * 1.0 / count - total * total * 1.0 / count / count


def format_variance(value: float) -> str:
    return "%.6f" % value


class ClusterState(enum.Enum):
    EMPTY = "empty"
    ACCUMULATING = "accumulating"
    FINALIZED = "finalized"


class AbsorbStatus(enum.Enum):
    IGNORED = "ignored"
    ACCUMULATED = "accumulated"
    FINALIZED = "finalized"


@dataclass(frozen=True)
class AbsorbResult:
    """Outcome of handing one record to the cluster table."""

    status: AbsorbStatus
    record: Optional[VcfRecord] = None
    """The consensus record, set only when ``status`` is ``FINALIZED``."""

    reason: Optional[str] = None
    """Why a record was ignored: ``unknown``, ``low_support``, ``complete`` or ``not_member``."""

    @property
    def finalized(self) -> bool:
        return self.status is AbsorbStatus.FINALIZED


ACCUMULATED = AbsorbResult(AbsorbStatus.ACCUMULATED)
IGNORED_UNKNOWN = AbsorbResult(AbsorbStatus.IGNORED, reason="unknown")
IGNORED_LOW_SUPPORT = AbsorbResult(AbsorbStatus.IGNORED, reason="low_support")
IGNORED_NOT_MEMBER = AbsorbResult(AbsorbStatus.IGNORED, reason="not_member")
IGNORED_COMPLETE = AbsorbResult(AbsorbStatus.IGNORED, reason="complete")


@dataclass
class ConsensusAccumulator:
    """Running sums for one cluster between its first and last member."""

    seed: VcfRecord
    sum_start: int = 0
    sum_end: int = 0
    sum_squared_start: int = 0
    sum_squared_end: int = 0
    sum_length: int = 0
    id_list: List[str] = field(default_factory=list)
    has_dup_oldtype: bool = False
    last_id: str = ""

    @classmethod
    def seeded(cls, record: VcfRecord) -> "ConsensusAccumulator":
        accumulator = cls(seed=record)
        accumulator.add(record)
        return accumulator

    def add(self, record: VcfRecord) -> None:
        start = record.pos
        end = record.end
        if record.get_info("OLDTYPE") == DUP_OLDTYPE:
            self.has_dup_oldtype = True
        self.sum_start += start
        self.sum_end += end
        self.sum_squared_start += start * start
        self.sum_squared_end += end * end
        self.sum_length += record.length
        self.last_id = strip_sample_prefix(record.id)
        self.id_list.append(self.last_id)


class Cluster:
    """Accumulator state machine for one cluster of the grouping.

    A cluster starts ``EMPTY``, moves to ``ACCUMULATING`` with its first
    member and becomes ``FINALIZED`` on the call that brings ``used`` up to
    ``size``. Clusters supported by fewer than ``settings.min_support``
    samples never leave ``EMPTY``.
    """

    def __init__(
        self,
        number: int,
        name: str,
        members: Sequence[Member],
        sample_count: int,
        settings: MergeSettings,
    ):
        self.number = number
        self.name = name
        self.size = len(members)
        self.settings = settings
        support = ["0"] * sample_count
        for member in members:
            if not 0 <= member.sample_index < sample_count:
                handle_critical_error(
                    f"Cluster {name} references sample {member.sample_index} "
                    f"but only {sample_count} input file(s) were given",
                    exc_cls=GroupingError,
                )
            support[member.sample_index] = "1"
        self.support_vector = "".join(support)
        self.support_count = self.support_vector.count("1")
        self.used = 0
        self.state = ClusterState.EMPTY
        self._accumulator: Optional[ConsensusAccumulator] = None

    @property
    def suppressed(self) -> bool:
        """True when the cluster has too little support to ever be written."""
        return self.support_count < self.settings.min_support

    def absorb(self, record: VcfRecord, sample_index: int) -> AbsorbResult:
        """Fold *record*, read from *sample_index*, into the running consensus."""
        if self.suppressed:
            return IGNORED_LOW_SUPPORT
        if self.state is ClusterState.FINALIZED:
            return IGNORED_COMPLETE
        if not 0 <= sample_index < len(self.support_vector) or self.support_vector[sample_index] != "1":
            return IGNORED_NOT_MEMBER

        if self._accumulator is None:
            self._accumulator = ConsensusAccumulator.seeded(record)
            self.state = ClusterState.ACCUMULATING
        else:
            self._accumulator.add(record)
        self.used += 1

        if self.used < self.size:
            return ACCUMULATED

        consensus = self._finalize()
        return AbsorbResult(AbsorbStatus.FINALIZED, record=consensus)

    def _finalize(self) -> VcfRecord:
        acc = self._accumulator
        size = self.size
        consensus = acc.seed.copy()

        consensus.pos = round_half_up(acc.sum_start, size)
        consensus.set_info("END", round_half_up(acc.sum_end, size))
        consensus.set_info("SVLEN", round_half_up(acc.sum_length, size))
        consensus.set_info(
            "STARTVARIANCE",
            format_variance(variance(acc.sum_start, acc.sum_squared_start, size)),
        )
        consensus.set_info(
            "ENDVARIANCE",
            format_variance(variance(acc.sum_end, acc.sum_squared_end, size)),
        )

        if not self.settings.use_strand:
            consensus.set_info("STRANDS", STRAND_PLACEHOLDER)
        if not self.settings.use_type:
            consensus.set_info("SVTYPE", TYPE_PLACEHOLDER)
        if acc.has_dup_oldtype:
            consensus.set_info("OLDTYPE", DUP_OLDTYPE)

        consensus.set_info("SUPP_VEC", self.support_vector)
        consensus.set_info("SUPP", self.support_count)
        consensus.set_info("SVMETHOD", self.settings.svmethod)
        consensus.set_info("IDLIST", ",".join(acc.id_list))

        # The merged ID comes from the last member seen, not the seed.
        consensus.id = acc.last_id

        self.state = ClusterState.FINALIZED
        self._accumulator = None
        return consensus

    def __repr__(self) -> str:
        return f"Cluster({self.name!r}, {self.used}/{self.size}, {self.state.value})"


GroupsInput = Union[Mapping[str, Sequence[Member]], Sequence[Sequence[Member]]]


class ClusterTable:
    """All clusters of a run plus the ``variant id -> cluster number`` index."""

    def __init__(self, clusters: List[Cluster], index: Dict[str, int]):
        self._clusters = clusters
        self._index = index

    @classmethod
    def build(
        cls,
        groups: GroupsInput,
        sample_count: int,
        settings: Optional[MergeSettings] = None,
        verbose: bool = False,
    ) -> "ClusterTable":
        """Create a cluster per group and index every member's composite id.

        *groups* is either a mapping from cluster name to members or a plain
        sequence of member lists, which are then named by position.
        """
        settings = settings or MergeSettings()
        if isinstance(groups, Mapping):
            named = list(groups.items())
        else:
            named = [(str(position), members) for position, members in enumerate(groups)]

        clusters: List[Cluster] = []
        index: Dict[str, int] = {}
        for number, (name, members) in enumerate(named):
            clusters.append(Cluster(number, name, list(members), sample_count, settings))
            for member in members:
                index[variant_id_of(member.record_id, member.sample_index)] = number

        suppressed = sum(1 for cluster in clusters if cluster.suppressed)
        log_message(
            f"Built {len(clusters)} clusters over {sample_count} sample(s); "
            f"{suppressed} below minimum support {settings.min_support}",
            verbose,
            level=logging.DEBUG,
        )
        return cls(clusters, index)

    def lookup(self, variant_id: str) -> Optional[int]:
        return self._index.get(variant_id)

    def cluster_at(self, cluster_number: int) -> Cluster:
        return self._clusters[cluster_number]

    def absorb(self, variant_id: str, record: VcfRecord, sample_index: int) -> AbsorbResult:
        """Route *record* to the cluster owning *variant_id*."""
        number = self.lookup(variant_id)
        if number is None:
            return IGNORED_UNKNOWN
        return self._clusters[number].absorb(record, sample_index)

    def pending(self) -> List[Cluster]:
        """Clusters that can still be written but have not seen all members."""
        return [
            cluster
            for cluster in self._clusters
            if not cluster.suppressed and cluster.state is not ClusterState.FINALIZED
        ]

    def __len__(self) -> int:
        return len(self._clusters)

    def __iter__(self) -> Iterator[Cluster]:
        return iter(self._clusters)
