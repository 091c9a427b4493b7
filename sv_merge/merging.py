"""Single-pass driver that streams every input VCF into the cluster table.

Files are read strictly in the order given; a file's position in that list
is its sample index. The header of the first file becomes the merged
header, extended with the INFO fields the consensus fills in, and is
written once before the first consensus record. Consensus records are
written the moment their cluster completes, so the output is in completion
order rather than sorted.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, TextIO

from .clusters import AbsorbStatus, ClusterTable
from .grouping import variant_id_of
from .header import VcfHeader, inject_merge_fields
from .logging_utils import (
    RecordParseError,
    ValidationError,
    handle_critical_error,
    handle_non_critical_error,
    log_message,
)
from .records import VcfRecord, iter_vcf_lines
from .settings import MergeSettings


@dataclass
class MergeSummary:
    """Counters collected over one merge run."""

    files: int = 0
    records: int = 0
    unknown: int = 0
    suppressed: int = 0
    emitted: int = 0
    incomplete: int = 0


def read_file_list(path: str) -> List[str]:
    """Return the non-blank paths listed one per line in *path*."""
    try:
        with open(path, "r", encoding="utf-8") as handle:
            return [line.strip() for line in handle if line.strip()]
    except OSError as exc:
        handle_critical_error(f"Could not read file list {path}: {exc}", exc_cls=ValidationError)


class MergeDriver:
    """Feed the records of an ordered list of VCF files to a cluster table."""

    def __init__(self, table: ClusterTable, settings: Optional[MergeSettings] = None, verbose: bool = False):
        self.table = table
        self.settings = settings or MergeSettings()
        self.verbose = verbose
        self._header: Optional[VcfHeader] = None
        self._header_written = False

    def run(self, file_list: Iterable[str], output: TextIO) -> MergeSummary:
        """Merge every file of *file_list* into *output*.

        Blank entries of *file_list* are skipped and do not consume a sample
        index.
        """
        summary = MergeSummary()
        self._header = VcfHeader()
        self._header_written = False

        paths = [entry.strip() for entry in file_list if entry and entry.strip()]
        for sample_index, path in enumerate(paths):
            log_message(f"Reading sample {sample_index}: {path}", self.verbose, level=logging.DEBUG)
            self._merge_file(path, sample_index, output, summary)
            if sample_index == 0 and not self._header_written:
                self._write_header(output)
            summary.files += 1

        pending = self.table.pending()
        summary.incomplete = len(pending)
        if pending:
            names = ", ".join(cluster.name for cluster in pending[:10])
            handle_non_critical_error(
                f"{len(pending)} cluster(s) did not see all of their members and were not written"
                f" (first: {names})"
            )

        log_message(
            f"Merged {summary.records} records from {summary.files} file(s) into "
            f"{summary.emitted} consensus variants",
            self.verbose,
        )
        log_message(
            f"Skipped {summary.unknown} record(s) not found in any cluster and "
            f"{summary.suppressed} record(s) from clusters below minimum support "
            f"{self.settings.min_support}",
            self.verbose,
            level=logging.DEBUG,
        )
        return summary

    def _merge_file(self, path: str, sample_index: int, output: TextIO, summary: MergeSummary) -> None:
        if not os.path.isfile(path):
            handle_critical_error(f"Input VCF {path} does not exist.", exc_cls=ValidationError)

        for line_number, line in iter_vcf_lines(path):
            if not line:
                continue
            if line.startswith("#"):
                if sample_index == 0:
                    self._header.add_line(line)
                continue

            if sample_index == 0 and not self._header_written:
                self._write_header(output)

            try:
                record = VcfRecord.parse(line)
                result = self.table.absorb(
                    variant_id_of(record.id, sample_index), record, sample_index
                )
            except RecordParseError as exc:
                error = RecordParseError(str(exc), path=path, line_number=line_number)
                log_message(str(error), level=logging.ERROR)
                raise error from exc

            summary.records += 1
            if result.status is AbsorbStatus.FINALIZED:
                output.write(result.record.serialize() + "\n")
                summary.emitted += 1
            elif result.reason == "unknown":
                summary.unknown += 1
            elif result.reason == "low_support":
                summary.suppressed += 1
    def _write_header(self, output: TextIO) -> None:
        inject_merge_fields(self._header)
        self._header.write(output)
        self._header_written = True


def merge_sv_files(
    file_list: Sequence[str],
    table: ClusterTable,
    output_path: str,
    settings: Optional[MergeSettings] = None,
    verbose: bool = False,
) -> MergeSummary:
    """Merge *file_list* into the VCF at *output_path* and return the run summary."""
    try:
        output = open(output_path, "w", encoding="utf-8")
    except OSError as exc:
        handle_critical_error(
            f"Could not open output {output_path} for writing: {exc}", exc_cls=ValidationError, exc_info=exc
        )
    with output:
        summary = MergeDriver(table, settings, verbose=verbose).run(file_list, output)
    log_message(f"Merged VCF written: {output_path}", verbose)
    return summary
