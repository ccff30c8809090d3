"""Keyword rule engine.

Rules are plain data (:class:`~finance_tracker.models.Rule`). Matching is a
case-insensitive substring test of each keyword against the transaction's
description and account. Enabled rules run in ascending ``priority``; the sort
is stable, so equal priorities keep their input order.

Rules only fill gaps: a transaction that already has a category is returned
unchanged, which makes :func:`apply_rules` idempotent.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .logging_setup import get_logger
from .models import Rule, Transaction

PRIORITY_STEP = 10

_logger = get_logger("finance_tracker.rules")


def parse_keywords(keywords: str) -> list[str]:
    """Split a comma-separated keyword list; trims, lower-cases, drops empties."""

    return [k for k in (part.strip().lower() for part in keywords.split(",")) if k]


def active_rules(rules: Iterable[Rule]) -> list[Rule]:
    return sorted((r for r in rules if r.enabled), key=lambda r: r.priority)


def match_text(tx: Transaction) -> str:
    """Lower-cased haystack a rule is tested against."""

    return f"{tx.description} {tx.account or ''}".lower()


def match_rule(rule: Rule, text: str) -> bool:
    return any(k in text for k in parse_keywords(rule.keywords))


def classify(tx: Transaction, rules: Sequence[Rule]) -> str | None:
    """Return the category of the first rule in ``rules`` matching ``tx``.

    ``rules`` must already be filtered and ordered (see :func:`active_rules`).
    """

    text = match_text(tx)
    for rule in rules:
        if match_rule(rule, text):
            return rule.category
    return None


def apply_rules(transactions: Iterable[Transaction], rules: Iterable[Rule]) -> list[Transaction]:
    """Fill in missing categories using ``rules``.

    Returns a new list of the same length and order. Elements are either the
    input object itself (already categorized, or no rule matched) or a copy
    with ``category`` set.
    """

    ordered = active_rules(rules)
    out: list[Transaction] = []
    assigned = 0
    for tx in transactions:
        if tx.is_categorized or not ordered:
            out.append(tx)
            continue
        category = classify(tx, ordered)
        if category is None:
            out.append(tx)
            continue
        out.append(tx.model_copy(update={"category": category}))
        assigned += 1
    _logger.debug("rules assigned %d categories using %d active rules", assigned, len(ordered))
    return out


def next_priority(rules: Sequence[Rule]) -> int:
    """Priority for a rule appended after ``rules`` (last priority + 10)."""

    if not rules:
        return PRIORITY_STEP
    return rules[-1].priority + PRIORITY_STEP


def new_rule(
    rules: Sequence[Rule],
    *,
    keywords: str,
    category: str,
    enabled: bool = True,
    priority: int | None = None,
) -> Rule:
    """Create a rule to append to ``rules``; priority defaults to :func:`next_priority`."""

    return Rule(
        keywords=keywords,
        category=category,
        enabled=enabled,
        priority=next_priority(rules) if priority is None else priority,
    )


__all__ = [
    "PRIORITY_STEP",
    "active_rules",
    "apply_rules",
    "classify",
    "match_rule",
    "match_text",
    "new_rule",
    "next_priority",
    "parse_keywords",
]
