"""Input checks and post-merge validation of the consensus VCF."""

from __future__ import annotations

import os
from typing import List, Sequence

from . import pysam, vcfpy
from .header import MERGE_INFO_FIELDS
from .logging_utils import (
    MergeSVError,
    ValidationError,
    handle_critical_error,
    handle_non_critical_error,
    log_message,
    logger,
)


def check_input_files(paths: Sequence[str], verbose: bool = False) -> List[str]:
    """Fail fast when any input VCF is missing or unreadable.

    The merge itself would stop at the same file, but only after having
    streamed every file before it.
    """
    if not paths:
        handle_critical_error("No input VCF files specified.", exc_cls=ValidationError)
    for path in paths:
        if not os.path.isfile(path):
            handle_critical_error(f"Input VCF {path} does not exist.", exc_cls=ValidationError)
        if not os.access(path, os.R_OK):
            handle_critical_error(f"Input VCF {path} is not readable.", exc_cls=ValidationError)
    log_message(f"Found {len(paths)} readable input VCF file(s)", verbose)
    return list(paths)


def _defined_info_ids(header) -> List[str]:
    return [
        line.id
        for line in getattr(header, "lines", [])
        if isinstance(line, vcfpy.header.InfoHeaderLine)
    ]


def validate_merged_vcf(merged_vcf: str, verbose: bool = False) -> int:
    """Re-read *merged_vcf* with vcfpy and return the number of records.

    Missing merge INFO declarations or records vcfpy cannot parse are fatal;
    INFO keys without a header declaration are reported as warnings.
    """
    log_message(f"Starting validation of merged VCF: {merged_vcf}", verbose)
    if not os.path.isfile(merged_vcf):
        handle_critical_error(f"Merged VCF file {merged_vcf} does not exist.", exc_cls=ValidationError)

    try:
        reader = vcfpy.Reader.from_path(merged_vcf)
    except Exception as exc:
        handle_critical_error(f"Could not open {merged_vcf}: {exc}.", exc_cls=ValidationError, exc_info=exc)

    count = 0
    undefined: set = set()
    try:
        defined = set(_defined_info_ids(reader.header))
        missing = [info_id for info_id, *_ in MERGE_INFO_FIELDS if info_id not in defined]
        if missing:
            handle_critical_error(
                f"Merged VCF {merged_vcf} lacks INFO declarations for: {', '.join(missing)}.",
                exc_cls=ValidationError,
            )
        for record in reader:
            count += 1
            undefined.update(key for key in record.INFO if key not in defined)
    except MergeSVError:
        raise
    except Exception as exc:
        handle_critical_error(
            f"Error while parsing records in {merged_vcf} after {count} record(s): {exc}",
            exc_cls=ValidationError,
            exc_info=exc,
        )
    finally:
        reader.close()

    if undefined:
        logger.warning(
            "Records in %s use INFO fields not present in header definitions: %s.",
            merged_vcf,
            ", ".join(sorted(undefined)),
        )
    log_message(f"Validation completed successfully for merged VCF: {merged_vcf} ({count} records)", verbose)
    return count


def compress_output(vcf_path: str, verbose: bool = False, keep_plain: bool = False) -> str:
    """BGZF-compress *vcf_path* with pysam and return the ``.gz`` path.

    Merged output is in cluster completion order, so it is compressed but not
    tabix-indexed.
    """
    gz_path = vcf_path + ".gz"
    try:
        pysam.tabix_compress(vcf_path, gz_path, force=True)
    except Exception as exc:
        handle_critical_error(f"Failed to compress {vcf_path}: {exc}", exc_cls=MergeSVError, exc_info=exc)
    if not keep_plain:
        try:
            os.remove(vcf_path)
        except OSError as exc:
            handle_non_critical_error(f"Could not remove uncompressed output {vcf_path}: {exc}")
    log_message(f"Compressed merged VCF: {gz_path}", verbose)
    return gz_path


__all__ = ["check_input_files", "validate_merged_vcf", "compress_output"]
