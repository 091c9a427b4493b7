"""Header bookkeeping for the merged VCF.

The merged output reuses the header of the first input file verbatim and adds
INFO declarations for the fields the consensus merge fills in. Headers are
handled as raw text so that lines the merge does not understand survive
unchanged.
"""

from __future__ import annotations

import re
from typing import List, Mapping, Optional, Sequence, TextIO, Tuple

INFO_HEADER_PATTERN = re.compile(r"^##INFO=<ID=([^,>]+)")
COLUMN_HEADER_PREFIX = "#CHROM"

MERGE_INFO_FIELDS: Tuple[Tuple[str, str, str, str], ...] = (
    ("SUPP_VEC", "1", "String", "Vector of supporting samples"),
    ("SUPP", "1", "String", "Number of samples supporting the variant"),
    ("IDLIST", ".", "String", "Variant IDs of variants merged to make this call"),
    ("SVMETHOD", "1", "String", ""),
    ("STARTVARIANCE", "1", "String", "Variance of start position for variants merged into this one"),
    ("ENDVARIANCE", "1", "String", "Variance of end position for variants merged into this one"),
    ("END", "1", "String", "The end position of the variant"),
    ("SVLEN", "1", "String", "The length (in bp) of the variant"),
)
"""INFO declarations added to every merged header, in output order."""


def format_info_definition(info_id: str, definition_mapping: Mapping[str, object]) -> str:
    parts = [f"ID={info_id}"]
    for key, value in definition_mapping.items():
        if value is None:
            continue
        if key == "Description":
            escaped_value = str(value).replace('"', '\\"')
            parts.append(f'Description="{escaped_value}"')
            continue
        parts.append(f"{key}={value}")
    return "##INFO=<" + ",".join(parts) + ">"


def _info_id(line: str) -> Optional[str]:
    match = INFO_HEADER_PATTERN.match(line.strip())
    return match.group(1) if match else None


class VcfHeader:
    """Ordered collection of meta-information lines plus the column header."""

    def __init__(self, lines: Sequence[str] = ()):
        self._lines: List[str] = []
        for line in lines:
            self.add_line(line)

    def add_line(self, line: str) -> None:
        self._lines.append(line.rstrip("\r\n"))

    def add_info_field(self, info_id: str, number: str, type_: str, description: str) -> None:
        """Declare an INFO field, replacing an existing declaration with the same ID.

        New declarations go after the last INFO line, or before the column
        header when the header has no INFO lines yet.
        """
        formatted = format_info_definition(
            info_id, {"Number": number, "Type": type_, "Description": description}
        )
        last_info = None
        column_index = None
        for index, line in enumerate(self._lines):
            line_id = _info_id(line)
            if line_id == info_id:
                self._lines[index] = formatted
                return
            if line_id is not None:
                last_info = index
            elif line.startswith(COLUMN_HEADER_PREFIX) and column_index is None:
                column_index = index
        if last_info is not None:
            self._lines.insert(last_info + 1, formatted)
        elif column_index is not None:
            self._lines.insert(column_index, formatted)
        else:
            self._lines.append(formatted)

    def info_ids(self) -> List[str]:
        return [line_id for line_id in map(_info_id, self._lines) if line_id]

    def lines(self) -> List[str]:
        return list(self._lines)

    def write(self, stream: TextIO) -> None:
        for line in self._lines:
            stream.write(line + "\n")

    def __len__(self) -> int:
        return len(self._lines)


def inject_merge_fields(header: VcfHeader) -> VcfHeader:
    """Add the consensus INFO declarations to *header* and return it."""
    for info_id, number, type_, description in MERGE_INFO_FIELDS:
        header.add_info_field(info_id, number, type_, description)
    return header
