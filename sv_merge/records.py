"""Text-level model of a single VCF variant line.

The merge only ever touches a handful of columns (ID, POS and a few INFO
keys), so records are kept close to their text form: INFO values stay
strings, unknown columns such as FORMAT and the sample columns are carried
through untouched, and :meth:`VcfRecord.serialize` reproduces the line with
only the edited fields changed.
"""

from __future__ import annotations

import gzip
from collections import OrderedDict
from typing import Iterator, List, Optional, Tuple

from .logging_utils import RecordParseError, ValidationError, handle_critical_error
from .settings import TYPE_PLACEHOLDER

MISSING = "."
MIN_COLUMNS = 8


def open_vcf(path: str):
    """Open a plain or gzip-compressed VCF for text reading."""
    return (
        gzip.open(path, "rt", encoding="utf-8")
        if str(path).endswith(".gz")
        else open(path, "r", encoding="utf-8")
    )


def iter_vcf_lines(path: str) -> Iterator[Tuple[int, str]]:
    """Yield ``(line_number, line)`` for every line of *path*, newline stripped.

    Lines are decoded one at a time so that undecodable bytes and corrupt
    gzip streams are reported as a :class:`ValidationError` naming the file
    and line.
    """
    line_number = 0
    try:
        with gzip.open(path, "rb") if str(path).endswith(".gz") else open(path, "rb") as handle:
            for line_number, raw in enumerate(handle, start=1):
                yield line_number, raw.decode("utf-8").rstrip("\r\n")
    except UnicodeDecodeError as exc:
        handle_critical_error(
            f"{path}:{line_number}: line is not valid UTF-8 ({exc.reason})",
            exc_cls=ValidationError,
            exc_info=exc,
        )
    except (OSError, EOFError) as exc:
        handle_critical_error(
            f"{path}:{line_number + 1}: could not read input: {exc}",
            exc_cls=ValidationError,
            exc_info=exc,
        )


def _parse_info(field: str) -> "OrderedDict[str, Optional[str]]":
    info: "OrderedDict[str, Optional[str]]" = OrderedDict()
    if field in {"", MISSING}:
        return info
    for entry in field.split(";"):
        if not entry:
            continue
        if "=" in entry:
            key, value = entry.split("=", 1)
            info[key] = value
        else:
            info[entry] = None  # flag
    return info


def _serialize_info(info: "OrderedDict[str, Optional[str]]") -> str:
    entries = []
    for key, value in info.items():
        if value is None:
            entries.append(key)
        else:
            entries.append(f"{key}={value}")
    return ";".join(entries) if entries else MISSING


def _parse_int(value: str, label: str) -> int:
    token = value.split(",", 1)[0].strip()
    try:
        return int(token)
    except ValueError:
        try:
            return int(float(token))
        except ValueError as exc:
            raise RecordParseError(f"Invalid {label} value: {value!r}") from exc


class VcfRecord:
    """A variant line split into columns with a mutable INFO mapping."""

    def __init__(
        self,
        chrom: str,
        pos: int,
        record_id: str,
        ref: str,
        alt: str,
        qual: str = MISSING,
        filter_value: str = MISSING,
        info=None,
        extra: Optional[List[str]] = None,
    ):
        self.chrom = chrom
        self._pos = int(pos)
        self._id = record_id
        self.ref = ref
        self.alt = alt
        self.qual = qual
        self.filter = filter_value
        self.info: "OrderedDict[str, Optional[str]]" = OrderedDict(info or ())
        self.extra: List[str] = list(extra or [])

    @classmethod
    def parse(cls, line: str) -> "VcfRecord":
        """Parse a tab-delimited VCF data line."""
        fields = line.rstrip("\r\n").split("\t")
        if len(fields) < MIN_COLUMNS:
            raise RecordParseError(
                f"Expected at least {MIN_COLUMNS} tab-separated columns, found {len(fields)}"
            )
        try:
            pos = int(fields[1])
        except ValueError as exc:
            raise RecordParseError(f"Invalid POS value: {fields[1]!r}") from exc
        return cls(
            chrom=fields[0],
            pos=pos,
            record_id=fields[2],
            ref=fields[3],
            alt=fields[4],
            qual=fields[5],
            filter_value=fields[6],
            info=_parse_info(fields[7]),
            extra=fields[8:],
        )

    # -- identifier and coordinates ------------------------------------

    @property
    def id(self) -> str:
        return self._id

    @id.setter
    def id(self, value: str) -> None:
        self._id = value

    @property
    def pos(self) -> int:
        return self._pos

    @pos.setter
    def pos(self, value: int) -> None:
        self._pos = int(value)

    @property
    def sv_type(self) -> str:
        """SVTYPE from INFO, falling back to a symbolic ALT allele like ``<DEL>``.

        The ``???`` placeholder written for type-blind merges counts as missing.
        """
        value = self.info.get("SVTYPE")
        if value and value != TYPE_PLACEHOLDER:
            return value
        if self.alt.startswith("<") and self.alt.endswith(">"):
            return self.alt[1:-1].split(":", 1)[0]
        return ""

    @sv_type.setter
    def sv_type(self, value: str) -> None:
        self.set_info("SVTYPE", value)

    @property
    def length(self) -> int:
        """Absolute SV length.

        Taken from SVLEN when present, otherwise from the END coordinate for
        non-insertions, and finally from the size difference between the REF
        and ALT alleles.
        """
        if self.info.get("SVLEN") is not None:
            return abs(_parse_int(self.info["SVLEN"], "SVLEN"))
        if self.info.get("END") is not None and self.sv_type != "INS":
            return abs(_parse_int(self.info["END"], "END") - self._pos)
        if self.alt.startswith("<"):
            return 0
        return abs(len(self.alt) - len(self.ref))

    @property
    def end(self) -> int:
        if self.info.get("END") is not None:
            return _parse_int(self.info["END"], "END")
        if self.sv_type == "INS":
            return self._pos
        return self._pos + self.length

    # -- INFO access ---------------------------------------------------

    def get_info(self, key: str, default: Optional[str] = "") -> Optional[str]:
        """Return the INFO value for *key*; flags and missing keys give *default*."""
        value = self.info.get(key)
        return default if value is None else value

    def set_info(self, key: str, value) -> None:
        """Set *key* in place, appending it when not already present."""
        self.info[key] = None if value is None else str(value)

    # -- serialization -------------------------------------------------

    def copy(self) -> "VcfRecord":
        return VcfRecord(
            self.chrom,
            self._pos,
            self._id,
            self.ref,
            self.alt,
            self.qual,
            self.filter,
            OrderedDict(self.info),
            list(self.extra),
        )

    def serialize(self) -> str:
        columns = [
            self.chrom,
            str(self._pos),
            self._id or MISSING,
            self.ref,
            self.alt,
            self.qual,
            self.filter,
            _serialize_info(self.info),
        ]
        columns.extend(self.extra)
        return "\t".join(columns)

    def __str__(self) -> str:
        return self.serialize()

    def __repr__(self) -> str:
        return f"VcfRecord({self.chrom}:{self._pos} {self._id})"
