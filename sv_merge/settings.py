"""Run configuration for the consensus merge.

``MergeSettings`` collects the knobs that stay fixed for a whole run: the
minimum number of supporting samples a cluster needs before it is written,
whether strand and type took part in the upstream grouping (when they did
not, the consensus blanks those fields), and the method tag stamped on every
merged record.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_MIN_SUPPORT = 1
DEFAULT_SVMETHOD = "JASMINE"

STRAND_PLACEHOLDER = "??"
TYPE_PLACEHOLDER = "???"


@dataclass(frozen=True)
class MergeSettings:
    """Read-only configuration shared by the cluster table and the driver."""

    min_support: int = DEFAULT_MIN_SUPPORT
    """Minimum number of contributing samples for a cluster to be emitted."""

    use_strand: bool = False
    """Whether strands were part of the grouping key."""

    use_type: bool = False
    """Whether SV types were part of the grouping key."""

    svmethod: str = DEFAULT_SVMETHOD

    def __post_init__(self):
        if self.min_support < 1:
            raise ValueError("min_support must be a positive integer")
        if not self.svmethod:
            raise ValueError("svmethod must be a non-empty tag")

    @classmethod
    def from_namespace(cls, args) -> "MergeSettings":
        """Build settings from a parsed ``argparse`` namespace."""
        return cls(
            min_support=getattr(args, "min_support", DEFAULT_MIN_SUPPORT),
            use_strand=bool(getattr(args, "use_strand", False)),
            use_type=bool(getattr(args, "use_type", False)),
            svmethod=getattr(args, "svmethod", None) or DEFAULT_SVMETHOD,
        )
