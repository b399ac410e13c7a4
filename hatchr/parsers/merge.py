"""Merge/dedup of adapter output into one Token per address.

Field precedence: the first non-empty value wins (adapter iteration order),
except ``first_seen_at`` which always resolves to the earliest known value.
A missing timestamp never displaces a present one. On equal timestamps the
earlier-inserted record keeps its value.
"""

from collections.abc import Iterable
from dataclasses import fields, replace

from hatchr.parsers.token_types import Token, is_empty

_FIRST_NON_EMPTY = tuple(
    f.name for f in fields(Token) if f.name not in ("token_address", "first_seen_at")
)


def merge_pair(existing: Token, incoming: Token) -> Token:
    """Merge two records for the same address, ``existing`` taking precedence."""
    updates: dict[str, object] = {}
    for name in _FIRST_NON_EMPTY:
        if is_empty(getattr(existing, name)) and not is_empty(getattr(incoming, name)):
            updates[name] = getattr(incoming, name)

    a, b = existing.first_seen_at, incoming.first_seen_at
    if a is None and b is not None:
        updates["first_seen_at"] = b
    elif a is not None and b is not None and b < a:
        updates["first_seen_at"] = b

    return replace(existing, **updates) if updates else existing


def merge_tokens(records: Iterable[Token]) -> list[Token]:
    """Fold records keyed by lower-cased address. Output keeps first-seen key order."""
    by_address: dict[str, Token] = {}
    for record in records:
        key = record.token_address.lower()
        if not key:
            continue
        if key != record.token_address:
            record = replace(record, token_address=key)
        prev = by_address.get(key)
        by_address[key] = record if prev is None else merge_pair(prev, record)
    return list(by_address.values())
