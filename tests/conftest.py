"""Shared pytest fixtures for the sv_merge test suite."""

from __future__ import annotations

import gzip
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

import pytest

from sv_merge.grouping import Member
from sv_merge.records import VcfRecord

HEADER_LINES = [
    "##fileformat=VCFv4.2",
    "##source=svcaller",
    "##contig=<ID=chr1,length=248956422>",
    '##INFO=<ID=SVTYPE,Number=1,Type=String,Description="Type of structural variant">',
    '##INFO=<ID=STRANDS,Number=1,Type=String,Description="Strand orientation">',
    '##INFO=<ID=OLDTYPE,Number=1,Type=String,Description="Type before conversion">',
    "#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO",
]


def sv_line(
    record_id: str,
    pos: int,
    length: int,
    svtype: str = "DEL",
    chrom: str = "chr1",
    end: Optional[int] = None,
    extra_info: str = "",
) -> str:
    """Return a tab-separated SV record line."""
    if end is None:
        end = pos if svtype == "INS" else pos + length
    svlen = -length if svtype == "DEL" else length
    info = f"SVTYPE={svtype};SVLEN={svlen};END={end};STRANDS=+-"
    if extra_info:
        info += ";" + extra_info
    return "\t".join([chrom, str(pos), record_id, "N", f"<{svtype}>", ".", "PASS", info])


def make_record(record_id: str, pos: int, length: int, **kwargs) -> VcfRecord:
    return VcfRecord.parse(sv_line(record_id, pos, length, **kwargs))


def members(*pairs) -> list:
    return [Member(sample, record_id) for sample, record_id in pairs]


@pytest.fixture
def write_vcf(tmp_path: Path) -> Callable[..., str]:
    """Write a VCF made of *records* below the standard header and return its path."""

    def _write(
        name: str,
        records: Iterable[str],
        header: Sequence[str] = HEADER_LINES,
        compress: bool = False,
    ) -> str:
        path = tmp_path / name
        text = "\n".join(list(header) + list(records)) + "\n"
        if compress:
            with gzip.open(path, "wt", encoding="utf-8") as handle:
                handle.write(text)
        else:
            path.write_text(text, encoding="utf-8")
        return str(path)

    return _write


@pytest.fixture
def write_groups(tmp_path: Path) -> Callable[..., str]:
    """Write a grouping file from ``(cluster, sample, record_id)`` rows."""

    def _write(rows, name: str = "groups.tsv") -> str:
        path = tmp_path / name
        lines = ["# cluster\tsample\trecord_id"]
        lines.extend(f"{cluster}\t{sample}\t{record_id}" for cluster, sample, record_id in rows)
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return str(path)

    return _write


def data_lines(text: str) -> list:
    return [line for line in text.splitlines() if line and not line.startswith("#")]


def header_lines(text: str) -> list:
    return [line for line in text.splitlines() if line.startswith("#")]
