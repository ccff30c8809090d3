"""CSV export and JSON backup/restore.

Backup payload shape::

    {"transactions": [...], "budget": {...}, "rules": [...]}

Restoring replaces each collection present in the payload and leaves absent
ones untouched. The payload is validated in full before anything is applied,
so a defective backup changes nothing.
"""

from __future__ import annotations

import csv
import json
from collections.abc import Iterable, Mapping
from io import StringIO
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .categories import clamp_fraction
from .logging_setup import get_logger
from .models import AppState, Rule, Transaction

EXPORT_COLUMNS: tuple[str, ...] = ("date", "amount", "description", "category", "account", "method")

_logger = get_logger("finance_tracker.exchange")


class BackupError(ValueError):
    """The backup payload is unreadable or fails validation; nothing was restored."""


# ---------------------------------------------------------------------------
# CSV export
# ---------------------------------------------------------------------------


def export_csv(transactions: Iterable[Transaction]) -> str:
    """Render ``transactions`` as CSV with the fixed :data:`EXPORT_COLUMNS`."""

    buf = StringIO()
    writer = csv.DictWriter(buf, fieldnames=list(EXPORT_COLUMNS), lineterminator="\n")
    writer.writeheader()
    for t in transactions:
        writer.writerow(
            {
                "date": t.date,
                "amount": str(t.amount),
                "description": t.description,
                "category": t.category or "",
                "account": t.account or "",
                "method": t.method or "",
            }
        )
    return buf.getvalue()


# ---------------------------------------------------------------------------
# Backup
# ---------------------------------------------------------------------------


class BackupPayload(BaseModel):
    """Validated view of a backup file.

    ``None`` marks a collection missing from the payload. Older backups stored
    transactions under ``tx``; both keys are accepted.
    """

    model_config = ConfigDict(extra="ignore")

    transactions: list[Transaction] | None = Field(
        default=None, validation_alias=AliasChoices("transactions", "tx")
    )
    budget: dict[str, float] | None = None
    rules: list[Rule] | None = None

    @field_validator("budget")
    @classmethod
    def _clamp_allocations(cls, v: dict[str, float] | None) -> dict[str, float] | None:
        if v is None:
            return None
        return {k: clamp_fraction(f) for k, f in v.items()}


def dump_backup(state: AppState) -> dict[str, Any]:
    """JSON-ready backup of the whole state (amounts become strings)."""

    return {
        "transactions": [t.model_dump(mode="json") for t in state.transactions],
        "budget": dict(state.budget),
        "rules": [r.model_dump(mode="json") for r in state.rules],
    }


def backup_to_json(state: AppState, *, indent: int | None = 2) -> str:
    return json.dumps(dump_backup(state), indent=indent, ensure_ascii=False)


def parse_backup(payload: str | bytes | Mapping[str, Any]) -> BackupPayload:
    """Decode and validate a backup; raises :class:`BackupError` on any defect."""

    if isinstance(payload, (str, bytes, bytearray)):
        try:
            data = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise BackupError(f"backup is not valid JSON: {exc}") from exc
    else:
        data = payload
    if not isinstance(data, Mapping):
        raise BackupError("backup must be a JSON object")
    try:
        return BackupPayload.model_validate(dict(data))
    except ValidationError as exc:
        raise BackupError(f"invalid backup: {exc.error_count()} validation error(s)") from exc


def restore_backup(state: AppState, payload: str | bytes | Mapping[str, Any]) -> AppState:
    """Return ``state`` with every collection present in ``payload`` replaced."""

    parsed = parse_backup(payload)
    restored = AppState(
        transactions=(
            tuple(parsed.transactions) if parsed.transactions is not None else state.transactions
        ),
        budget=parsed.budget if parsed.budget is not None else state.budget,
        rules=tuple(parsed.rules) if parsed.rules is not None else state.rules,
    )
    _logger.info(
        "restored backup: transactions=%s budget=%s rules=%s",
        parsed.transactions is not None,
        parsed.budget is not None,
        parsed.rules is not None,
    )
    return restored


__all__ = [
    "EXPORT_COLUMNS",
    "BackupError",
    "BackupPayload",
    "backup_to_json",
    "dump_backup",
    "export_csv",
    "parse_backup",
    "restore_backup",
]
