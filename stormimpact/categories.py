"""
Category remapping (raw label -> canonical event type)
======================================================

The raw `EVTYPE` column is free text (hundreds of spellings such as
"TSTM WIND", "THUNDERSTORM WINDS", " HIGH SURF ADVISORY"). An external
lookup table maps each raw label onto one of the 48 event types of the
storm-data taxonomy.

The lookup is *keyed* (raw label -> canonical label), not positional, so a
reordered table can never assign a label to the wrong category. The strict
order check is still available because the lookup table is maintained
against the data's label order, and a drift there usually means the table
was built from a different extract.
"""

from __future__ import annotations
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import MappingMismatch
from .models import StormRecord

# The 48 event types of the storm-data directive.
STORM_DATA_EVENT_TYPES: Tuple[str, ...] = (
    "Astronomical Low Tide", "Avalanche", "Blizzard", "Coastal Flood",
    "Cold/Wind Chill", "Debris Flow", "Dense Fog", "Dense Smoke",
    "Drought", "Dust Devil", "Dust Storm", "Excessive Heat",
    "Extreme Cold/Wind Chill", "Flash Flood", "Flood", "Frost/Freeze",
    "Funnel Cloud", "Freezing Fog", "Hail", "Heat",
    "Heavy Rain", "Heavy Snow", "High Surf", "High Wind",
    "Hurricane (Typhoon)", "Ice Storm", "Lake-Effect Snow", "Lakeshore Flood",
    "Lightning", "Marine Hail", "Marine High Wind", "Marine Strong Wind",
    "Marine Thunderstorm Wind", "Rip Current", "Seiche", "Sleet",
    "Storm Surge/Tide", "Strong Wind", "Thunderstorm Wind", "Tornado",
    "Tropical Depression", "Tropical Storm", "Tsunami", "Volcanic Ash",
    "Waterspout", "Wildfire", "Winter Storm", "Winter Weather",
)

_TAXONOMY = {t.lower(): t for t in STORM_DATA_EVENT_TYPES}

LABEL_ORDERS = ("first-seen", "lexical")


class CategoryMap:
    """Ordered, keyed mapping from raw label to canonical event type."""

    def __init__(self, mapping: "OrderedDict[str, str]"):
        self._mapping = mapping

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, str]], validate: bool = True) -> "CategoryMap":
        """Build a map from (original, canonical) rows, keeping row order.

        Canonical labels are matched case-insensitively and stored in their
        taxonomy spelling, so "TORNADO" and "Tornado" group together.
        Repeated identical rows are collapsed. A label listed twice with two
        different canonical labels, an empty canonical label, or a canonical
        label outside the taxonomy raises MappingMismatch.
        """
        mapping: "OrderedDict[str, str]" = OrderedDict()
        for original, canonical in pairs:
            if not canonical:
                raise MappingMismatch(f"No canonical label for {original!r}", missing=[original])
            if validate:
                if canonical.lower() not in _TAXONOMY:
                    raise MappingMismatch(f"{canonical!r} (for {original!r}) is not a storm-data event type")
                canonical = _TAXONOMY[canonical.lower()]
            prev = mapping.get(original)
            if prev is not None and prev != canonical:
                raise MappingMismatch(
                    f"Conflicting rows for {original!r}: {prev!r} vs {canonical!r}"
                )
            mapping[original] = canonical
        return cls(mapping)

    def originals(self) -> List[str]:
        return list(self._mapping.keys())

    def canonical_types(self) -> List[str]:
        """Distinct canonical labels, in first-listed order."""
        return list(OrderedDict.fromkeys(self._mapping.values()))

    def get(self, label: str) -> Optional[str]:
        return self._mapping.get(label)

    def __contains__(self, label: str) -> bool:
        return label in self._mapping

    def __getitem__(self, label: str) -> str:
        return self._mapping[label]

    def __len__(self) -> int:
        return len(self._mapping)

    def as_dict(self) -> Dict[str, str]:
        return dict(self._mapping)


def distinct_labels(records: Iterable[StormRecord], order: str = "first-seen") -> List[str]:
    """Return the distinct raw labels of `records`.

    order: "first-seen" keeps the order labels first appear in the data,
    "lexical" sorts them.
    """
    if order not in LABEL_ORDERS:
        raise ValueError(f"order must be one of {LABEL_ORDERS}")
    seen = list(OrderedDict.fromkeys(r.event_type for r in records))
    return sorted(seen) if order == "lexical" else seen


def check_alignment(labels: Sequence[str], category_map: CategoryMap, strict_order: bool = True) -> None:
    """Raise MappingMismatch unless `category_map` covers `labels` safely.

    With strict_order the map's original-label column must equal `labels`
    exactly (same values, same order). Otherwise every label only needs an
    entry; extra rows in the map are allowed.
    """
    missing = [label for label in labels if label not in category_map]
    if missing:
        shown = ", ".join(repr(m) for m in missing[:5])
        more = f" (+{len(missing) - 5} more)" if len(missing) > 5 else ""
        raise MappingMismatch(
            f"{len(missing)} raw label(s) have no category mapping: {shown}{more}",
            missing=missing,
        )
    if not strict_order:
        return

    originals = category_map.originals()
    for i, (label, original) in enumerate(zip(labels, originals)):
        if label != original:
            raise MappingMismatch(
                f"Label order differs at position {i}: data has {label!r}, table has {original!r}",
                position=i,
            )
    if len(labels) != len(originals):
        i = min(len(labels), len(originals))
        raise MappingMismatch(
            f"Data has {len(labels)} distinct labels but the table lists {len(originals)}",
            position=i,
        )


def remap(
    records: Sequence[StormRecord],
    category_map: CategoryMap,
    *,
    order: str = "first-seen",
    strict_order: bool = True,
) -> List[Tuple[StormRecord, str]]:
    """Pair every record with its canonical event type.

    The alignment check runs before anything is produced, so a bad table
    never yields a partial result.
    """
    check_alignment(distinct_labels(records, order), category_map, strict_order=strict_order)
    return [(r, category_map[r.event_type]) for r in records]


def build_mapping_template(records: Iterable[StormRecord], order: str = "first-seen") -> List[Tuple[str, str]]:
    """Skeleton rows (original, "") for a new lookup table, in `order`."""
    return [(label, "") for label in distinct_labels(records, order)]
