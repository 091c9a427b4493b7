"""Turn insertions that started out as duplications back into duplications.

Duplications are merged as insertions upstream and marked ``OLDTYPE=DUP``.
After the merge, :func:`convert_insertions_to_duplications` rewrites those
calls as ``<DUP>`` records spanning the duplicated interval and keeps the
refined insertion sequence in ``REFINEDALT``.
"""

from __future__ import annotations

import os
from typing import List, Tuple

from .header import VcfHeader
from .logging_utils import RecordParseError, ValidationError, handle_critical_error, log_message
from .records import VcfRecord, iter_vcf_lines

DUP_STRANDS = "-+"


def restore_duplication(record: VcfRecord) -> bool:
    """Rewrite *record* in place when it is a former duplication.

    Returns True when the record was converted.
    """
    if record.get_info("OLDTYPE") != "DUP" or record.sv_type != "INS":
        record.set_info("REFINEDALT", ".")
        return False

    length = record.length
    start = record.pos - length + 1
    refined_alt = record.alt
    record.pos = start
    record.set_info("END", start + length)
    record.sv_type = "DUP"
    record.set_info("REFINEDALT", refined_alt)
    record.set_info("STRANDS", DUP_STRANDS)
    record.ref = "."
    record.alt = "<DUP>"
    return True


def convert_insertions_to_duplications(
    input_path: str, output_path: str, verbose: bool = False
) -> Tuple[int, int]:
    """Rewrite *input_path* into *output_path*; return ``(converted, total)``."""
    header = VcfHeader()
    records: List[VcfRecord] = []
    converted = 0

    if not os.path.isfile(input_path):
        handle_critical_error(f"Input VCF {input_path} does not exist.", exc_cls=ValidationError)

    for line_number, line in iter_vcf_lines(input_path):
        if not line:
            continue
        if line.startswith("#"):
            header.add_line(line)
            continue
        try:
            record = VcfRecord.parse(line)
            if restore_duplication(record):
                converted += 1
        except RecordParseError as exc:
            raise RecordParseError(str(exc), path=input_path, line_number=line_number) from exc
        records.append(record)

    log_message(
        f"Number of insertions converted back to duplications: {converted} "
        f"out of {len(records)} total variants",
        verbose,
    )

    header.add_info_field(
        "REFINEDALT",
        "1",
        "String",
        "For duplications which were changed to insertions and refined, the refined ALT sequence",
    )
    header.add_info_field("STRANDS", "1", "String", "")

    try:
        out = open(output_path, "w", encoding="utf-8")
    except OSError as exc:
        handle_critical_error(
            f"Could not open output {output_path} for writing: {exc}", exc_cls=ValidationError, exc_info=exc
        )
    with out:
        header.write(out)
        for record in records:
            out.write(record.serialize() + "\n")
    return converted, len(records)
