"""Raw import rows to canonical :class:`~finance_tracker.models.Transaction`.

Rows arrive as string-keyed mappings, typically from a header-driven CSV
(parsed here with the stdlib :mod:`csv` module) or from a caller that already
holds the values. Field names are matched against language-localized aliases
after trimming, case folding and accent removal, so ``Data``, ``data`` and
``DATA`` all name the date column and ``Descrição`` matches ``descricao``.

Malformed fields degrade to defaults; normalizing a single row never raises.
Batch-level problems (unreadable CSV, no header) raise :class:`CsvImportError`
from :func:`read_csv_rows` so the caller can report them once.
"""

from __future__ import annotations

import csv
import re
import unicodedata
from collections.abc import Iterable, Mapping
from datetime import date
from decimal import Decimal, InvalidOperation
from io import StringIO
from typing import Any

from dateutil import parser as date_parser

from .logging_setup import get_logger
from .models import Transaction, amount_in_range

NO_DESCRIPTION = "(no description)"

# Canonical field -> accepted header names (already folded, see _fold).
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "date": ("date", "data"),
    "amount": ("amount", "valor"),
    "description": ("description", "descricao", "details", "history"),
    "category": ("category", "categoria"),
    "account": ("account", "conta"),
    "method": ("method", "metodo"),
}

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DMY_DATE_RE = re.compile(r"^\d{2}/\d{2}/\d{4}$")

_logger = get_logger("finance_tracker.normalizers")


class CsvImportError(ValueError):
    """The CSV payload as a whole could not be read; nothing was imported."""


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _fold(name: str) -> str:
    # NFKD splits accents into combining marks, which are then dropped.
    decomposed = unicodedata.normalize("NFKD", name)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return " ".join(stripped.split()).casefold()


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def pick_field(raw: Mapping[str, Any], field: str) -> Any:
    """Return the first non-blank value whose key is an alias of ``field``.

    Aliases are tried in declaration order, so ``date`` wins over ``data``
    when both columns are filled.
    """

    folded: dict[str, Any] = {}
    for key, value in raw.items():
        if not isinstance(key, str):
            continue
        k = _fold(key)
        if _is_blank(folded.get(k)):
            folded[k] = value
    for alias in FIELD_ALIASES[field]:
        value = folded.get(alias)
        if not _is_blank(value):
            return value
    return None


def parse_date(value: Any, *, today: date | None = None) -> str:
    """Normalize a raw date to ``YYYY-MM-DD``.

    Order matters: an exact ISO date is kept verbatim, then an exact
    ``DD/MM/YYYY`` is rearranged (no range check), then generic parsing is
    attempted. Anything else falls back to ``today``.
    """

    fallback = (today or date.today()).isoformat()
    if _is_blank(value):
        return fallback
    if isinstance(value, date):
        return value.isoformat()[:10]

    s = str(value).strip()
    if _ISO_DATE_RE.match(s):
        return s
    if _DMY_DATE_RE.match(s):
        dd, mm, yyyy = s.split("/")
        return f"{yyyy}-{mm}-{dd}"
    try:
        return date_parser.parse(s).date().isoformat()
    except (ValueError, OverflowError):
        _logger.debug("unparseable date %r; using %s", s, fallback)
        return fallback


def to_decimal(value: Any) -> Decimal | None:
    """Read a raw amount, honoring comma-decimal conventions.

    - ``"1.234,56"`` (both separators): dots are thousands, comma is decimal.
    - ``"723,11"`` (comma only): comma is decimal.
    - otherwise the string is read as a plain decimal number.

    Returns ``None`` for blank, unparseable, non-finite and out-of-range
    values (see :func:`~finance_tracker.models.amount_in_range`).
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        d = Decimal(value)
    else:
        if isinstance(value, float):
            s = repr(value)
        else:
            s = str(value).strip()
            if "." in s and "," in s:
                s = s.replace(".", "").replace(",", ".", 1)
            elif "," in s:
                s = s.replace(",", ".", 1)
        if not s:
            return None
        try:
            d = Decimal(s)
        except InvalidOperation:
            return None
    return d if amount_in_range(d) else None


def parse_amount(value: Any) -> Decimal:
    """Lenient :func:`to_decimal` for imports: anything unusable becomes ``0``."""

    d = to_decimal(value)
    if d is None:
        if not _is_blank(value):
            _logger.debug("unusable amount %r; using 0", value)
        return Decimal(0)
    return d


def _optional_text(value: Any) -> str | None:
    return None if _is_blank(value) else str(value)


# ---------------------------------------------------------------------------
# Rows
# ---------------------------------------------------------------------------


def normalize_row(raw: Mapping[str, Any], *, today: date | None = None) -> Transaction:
    """Build a canonical transaction from one raw row.

    A fresh ``id`` is always generated; ``category`` stays ``None`` when the
    row has none so rules can classify it later. The row itself is kept on
    ``raw`` with every column, recognized or not.
    """

    description = pick_field(raw, "description")
    return Transaction(
        date=parse_date(pick_field(raw, "date"), today=today),
        amount=parse_amount(pick_field(raw, "amount")),
        description=NO_DESCRIPTION if _is_blank(description) else str(description),
        account=_optional_text(pick_field(raw, "account")),
        method=_optional_text(pick_field(raw, "method")),
        category=_optional_text(pick_field(raw, "category")),
        raw={str(k): v for k, v in raw.items()},
    )


def normalize_rows(
    rows: Iterable[Mapping[str, Any]], *, today: date | None = None
) -> list[Transaction]:
    return [normalize_row(r, today=today) for r in rows]


def read_csv_rows(csv_text: str) -> list[dict[str, str]]:
    """Parse header-driven CSV text into row dicts.

    Blank lines are skipped. Raises :class:`CsvImportError` when the text has
    no header row or the :mod:`csv` module rejects it.
    """

    # Drop a UTF-8 BOM left by spreadsheet exports so the first header matches.
    text = csv_text.removeprefix("\ufeff")
    try:
        with StringIO(text, newline="") as f:
            reader = csv.DictReader(f)
            if not reader.fieldnames:
                raise CsvImportError("CSV has no header row")
            rows: list[dict[str, str]] = []
            for row in reader:
                # Overflow cells collect under a None key; drop them.
                cleaned = {k: (v if v is not None else "") for k, v in row.items() if k is not None}
                if all(not v.strip() for v in cleaned.values()):
                    continue
                rows.append(cleaned)
    except csv.Error as exc:
        raise CsvImportError(f"failed to parse CSV: {exc}") from exc
    return rows


__all__ = [
    "FIELD_ALIASES",
    "NO_DESCRIPTION",
    "CsvImportError",
    "normalize_row",
    "normalize_rows",
    "parse_amount",
    "parse_date",
    "pick_field",
    "read_csv_rows",
    "to_decimal",
]
