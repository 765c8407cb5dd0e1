"""
Data model
==========

Each row of the storm-events table is converted into a `StormRecord`.
Records are immutable (`frozen=True`): remapping and damage scaling never
edit a record, they produce a `NormalizedRecord` next to it.

Aggregates (`AggregateRow`, `LongRow`, `CombinedRow`) are derived per run
and are read-only as well.
"""

from dataclasses import dataclass
from typing import List, Optional

@dataclass(frozen=True)
class StormRecord:
    """One storm event observation, as loaded."""
    record_id: int
    event_type: str
    fatalities: int
    injuries: int
    # damage is stored as mantissa + exponent code, e.g. 25 and "K"
    prop_dmg: float
    prop_dmg_exp: str
    crop_dmg: float
    crop_dmg_exp: str

    def has_impact(self) -> bool:
        """False when every impact field is zero."""
        return bool(self.fatalities or self.injuries or self.prop_dmg or self.crop_dmg)


@dataclass(frozen=True)
class NormalizedRecord:
    """A record after category remapping and damage normalization."""
    record_id: int
    raw_event_type: str
    event_type: str
    fatalities: int
    injuries: int
    property_damage_usd: float
    crop_damage_usd: float


@dataclass(frozen=True)
class Dataset:
    """Loaded records plus the shape of the raw table they came from."""
    records: List[StormRecord]
    n_rows: int
    n_cols: int
    path: Optional[str] = None


@dataclass(frozen=True)
class AggregateRow:
    event_type: str
    fatalities: int
    injuries: int
    property_damage_usd: float
    crop_damage_usd: float

    @property
    def health_total(self) -> int:
        return self.fatalities + self.injuries

    @property
    def damage_total_usd(self) -> float:
        return self.property_damage_usd + self.crop_damage_usd


@dataclass(frozen=True)
class LongRow:
    """Pivoted ranking row: one measure of one event type."""
    event_type: str
    measure: str
    value: float


@dataclass(frozen=True)
class CombinedRow:
    """Health total vs. log10 damage for one event type.

    `log10_damage` is None when the event type caused no damage at all.
    """
    event_type: str
    health_total: int
    log10_damage: Optional[float]
