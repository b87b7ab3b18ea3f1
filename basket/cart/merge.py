"""Pure list arithmetic over cart entries.

Entries are matched by identity key only. Neither function mutates its
arguments; both return a new tuple.
"""
from dataclasses import replace
from typing import Iterable, Sequence, Tuple

from .models import Entry


def _index_by_key(entries: Sequence[Entry]) -> dict:
    return {entry.key: position for position, entry in enumerate(entries)}


def merge_add(base: Sequence[Entry], incoming: Iterable[Entry]) -> Tuple[Entry, ...]:
    """
    Add ``incoming`` entries to ``base``.

    A matching base entry gets the incoming quantity and line total added to
    it and keeps its position. Entries with a new key are appended in the
    order they were supplied.

    Args:
        base: Current cart entries
        incoming: Entries to add

    Returns:
        Resulting entries

    Raises:
        ValueError: an incoming entry is priced differently from the base
            entry it matches
    """
    result = list(base)
    positions = _index_by_key(result)

    for entry in incoming:
        position = positions.get(entry.key)
        if position is None:
            positions[entry.key] = len(result)
            result.append(entry)
            continue

        existing = result[position]
        result[position] = replace(
            existing,
            quantity=existing.quantity + entry.quantity,
            line_total_minor=existing.line_total_minor + entry.line_total_minor,
        )

    return tuple(result)


def merge_subtract(base: Sequence[Entry], to_remove: Iterable[Entry]) -> Tuple[Entry, ...]:
    """
    Subtract ``to_remove`` entries from ``base``.

    A matching base entry is decremented; when its quantity would drop to
    zero or below it is dropped entirely. Keys absent from ``base`` are
    ignored.

    Args:
        base: Current cart entries
        to_remove: Entries whose quantities should be taken out

    Returns:
        Resulting entries
    """
    result = list(base)

    for entry in to_remove:
        position = next((i for i, current in enumerate(result) if current.key == entry.key), None)
        if position is None:
            continue

        existing = result[position]
        remaining = existing.quantity - entry.quantity
        if remaining > 0:
            result[position] = existing.with_quantity(remaining)
        else:
            del result[position]

    return tuple(result)

