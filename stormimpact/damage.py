"""
Damage normalization
====================

The dataset stores money as a mantissa plus an exponent code:
PROPDMG=25, PROPDMGEXP="K" means US$ 25,000.

Codes outside {blank, K, M, B} (the bulk file also contains "H", "+", "?",
digits, ...) get a multiplier of 0: the record's damage is treated as
negligible rather than guessed at. This is logged, never raised.
"""

from __future__ import annotations
from collections import Counter
from typing import Dict, Iterable
import logging

from .models import NormalizedRecord, StormRecord

logger = logging.getLogger(__name__)

EXPONENT_MULTIPLIERS: Dict[str, float] = {
    "": 1.0,
    "K": 1e3, "k": 1e3,
    "M": 1e6, "m": 1e6,
    "B": 1e9, "b": 1e9,
}

def multiplier(code) -> float:
    """Multiplier for an exponent code. None counts as blank; unknown -> 0."""
    if code is None:
        code = ""
    return EXPONENT_MULTIPLIERS.get(str(code), 0.0)

def is_known_code(code) -> bool:
    return (code or "") in EXPONENT_MULTIPLIERS

def normalize(record: StormRecord, event_type: str) -> NormalizedRecord:
    """Absolute US$ damage for one record, with its canonical event type."""
    return NormalizedRecord(
        record_id=record.record_id,
        raw_event_type=record.event_type,
        event_type=event_type,
        fatalities=record.fatalities,
        injuries=record.injuries,
        property_damage_usd=record.prop_dmg * multiplier(record.prop_dmg_exp),
        crop_damage_usd=record.crop_dmg * multiplier(record.crop_dmg_exp),
    )

def unknown_exponent_codes(records: Iterable[StormRecord]) -> Counter:
    """Count damage values zeroed by an unknown exponent code.

    Property and crop are counted together; a zero mantissa loses nothing
    and is not counted. Each distinct code is logged once as a data-quality
    note.
    """
    counts: Counter = Counter()
    for r in records:
        for mantissa, code in ((r.prop_dmg, r.prop_dmg_exp), (r.crop_dmg, r.crop_dmg_exp)):
            if mantissa and not is_known_code(code):
                counts[code] += 1
    for code, n in sorted(counts.items()):
        logger.warning("Unknown damage exponent code %r on %d value(s); treated as 0", code, n)
    return counts
