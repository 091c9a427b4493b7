"""Streaming consensus merge for structural-variant calls from many samples.

This package folds the structural-variant records of several per-sample VCF
files into one consensus record per cluster. The clusters themselves are
computed upstream and handed over as a grouping file; the merge reads every
input exactly once, keeps running sums per cluster, and writes a consensus
record as soon as a cluster has seen all of its members.

Importing the package immediately verifies that the runtime dependencies
:mod:`vcfpy` and :mod:`pysam` are available so that later operations (output
validation and BGZF compression) can rely on them without deferred import
errors.
"""

from __future__ import annotations

__version__ = "0.3.0"


def _import_dependency(name: str):
    try:
        module = __import__(name)
    except ImportError as exc:  # pragma: no cover - exercised when dependency missing
        raise ModuleNotFoundError(
            f"The '{name}' package is required for sv_merge. "
            f"Please install it with 'pip install {name}'."
        ) from exc
    return module


vcfpy = _import_dependency("vcfpy")
pysam = _import_dependency("pysam")

VCFPY_AVAILABLE = True
PYSAM_AVAILABLE = True


__all__ = ["vcfpy", "pysam", "VCFPY_AVAILABLE", "PYSAM_AVAILABLE", "__version__"]
