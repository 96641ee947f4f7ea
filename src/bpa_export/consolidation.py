from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace

from .models import INDIVIDUALIZED, BpaMode, BpaRecord
from .procedures import NURSE_CBO, PHYSICIAN_CBO, TECHNICIAN_CBO

# Occupations grouped by procedure only; age and origin are not distinguished.
STRICT_CBOS = frozenset({PHYSICIAN_CBO, NURSE_CBO, TECHNICIAN_CBO})


def consolidation_key(record: BpaRecord) -> tuple[str, ...]:
    key = (record.cnes, record.competency, record.cbo, record.procedure)
    if record.cbo in STRICT_CBOS:
        return key
    return (*key, record.age, record.origin)


def consolidate_records(records: Iterable[BpaRecord], mode: BpaMode) -> list[BpaRecord]:
    """Merge records sharing a key, summing quantities.

    Individualized records are returned unchanged: every row is a distinct
    patient encounter. The first record seen for a key keeps its other
    fields.
    """

    if mode == INDIVIDUALIZED:
        return list(records)

    merged: dict[tuple[str, ...], BpaRecord] = {}
    for record in records:
        key = consolidation_key(record)
        existing = merged.get(key)
        if existing is None:
            merged[key] = record
        else:
            merged[key] = replace(existing, quantity=existing.quantity + record.quantity)
    return list(merged.values())
