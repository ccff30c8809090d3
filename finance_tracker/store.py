"""Key-value persistence for :class:`~finance_tracker.models.AppState`.

Three fixed keys hold one JSON document each:

- ``transactions``: list of transactions (default: empty)
- ``budget``: category -> fraction (default: the suggested budget)
- ``rules``: list of rules (default: empty)

Reads happen once at startup; a missing or undecodable document yields the
default for that key. Writes happen after every state change and are best
effort: a failing write is logged and the session continues with its
in-memory state.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .categories import clamp_fraction, default_budget
from .db import KvEntry, create_session_factory, session_scope
from .db import database_url as resolve_database_url
from .exchange import dump_backup
from .logging_setup import get_logger
from .models import AppState, Rule, Transaction

KEY_TRANSACTIONS = "transactions"
KEY_BUDGET = "budget"
KEY_RULES = "rules"
STATE_KEYS: tuple[str, ...] = (KEY_TRANSACTIONS, KEY_BUDGET, KEY_RULES)

_logger = get_logger("finance_tracker.store")


def _decode_transactions(doc: Any) -> tuple[Transaction, ...]:
    if not isinstance(doc, list):
        raise ValueError("expected a list")
    return tuple(Transaction.model_validate(item) for item in doc)


def _decode_budget(doc: Any) -> dict[str, float]:
    if not isinstance(doc, dict):
        raise ValueError("expected an object")
    return {str(k): clamp_fraction(v) for k, v in doc.items()}


def _decode_rules(doc: Any) -> tuple[Rule, ...]:
    if not isinstance(doc, list):
        raise ValueError("expected a list")
    return tuple(Rule.model_validate(item) for item in doc)


class StateStore:
    """Load/save the application state through SQLAlchemy.

    Parameters
    ----------
    database_url:
        SQLAlchemy URL. ``None`` resolves through
        :func:`finance_tracker.db.database_url`.
    """

    def __init__(self, database_url: str | None = None) -> None:
        self.database_url = resolve_database_url(database_url)
        self._factory: sessionmaker[Session] | None = None

    def _sessions(self) -> sessionmaker[Session]:
        if self._factory is None:
            self._factory = create_session_factory(self.database_url)
        return self._factory

    def read_documents(self) -> dict[str, str]:
        """Raw stored JSON text per present key."""

        with session_scope(self._sessions()) as session:
            rows = session.query(KvEntry).filter(KvEntry.key.in_(STATE_KEYS)).all()
            return {row.key: row.value for row in rows}

    def load(self) -> AppState:
        """Read the three documents, substituting defaults where needed."""

        try:
            docs = self.read_documents()
        except SQLAlchemyError as exc:
            _logger.warning("state store unreadable (%s); starting from defaults", exc)
            docs = {}

        return AppState(
            transactions=_load_key(docs, KEY_TRANSACTIONS, _decode_transactions, tuple),
            budget=_load_key(docs, KEY_BUDGET, _decode_budget, default_budget),
            rules=_load_key(docs, KEY_RULES, _decode_rules, tuple),
        )

    def save(self, state: AppState, *, keys: Iterable[str] | None = None) -> bool:
        """Write ``state`` (or only ``keys`` of it); returns ``False`` on failure.

        Storage failures are logged, never raised. Naming a key outside
        :data:`STATE_KEYS` is a caller error and raises ``ValueError``.
        """

        wanted = tuple(keys) if keys is not None else STATE_KEYS
        unknown = [k for k in wanted if k not in STATE_KEYS]
        if unknown:
            raise ValueError(f"unknown state keys: {unknown}")
        # The backup payload and the stored documents share one shape.
        docs = dump_backup(state)
        try:
            with session_scope(self._sessions()) as session:
                for key in wanted:
                    session.merge(KvEntry(key=key, value=json.dumps(docs[key], ensure_ascii=False)))
        except (SQLAlchemyError, OSError) as exc:
            _logger.warning("failed to persist %s: %s", ", ".join(wanted), exc)
            return False
        _logger.debug("persisted %s", ", ".join(wanted))
        return True


def _load_key[T](
    docs: dict[str, str],
    key: str,
    decode: Callable[[Any], T],
    default: Callable[[], T],
) -> T:
    text = docs.get(key)
    if text is None:
        return default()
    try:
        return decode(json.loads(text))
    except (ValueError, TypeError) as exc:
        _logger.warning("stored %r is unreadable (%s); using default", key, exc)
        return default()


__all__ = [
    "KEY_BUDGET",
    "KEY_RULES",
    "KEY_TRANSACTIONS",
    "STATE_KEYS",
    "StateStore",
]
