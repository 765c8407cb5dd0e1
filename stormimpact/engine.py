"""
Core engine
===========

The whole analysis is one linear pass:

1) Filter   -> drop records with no fatalities, injuries or damage
2) Remap    -> raw EVTYPE label -> canonical event type (keyed lookup)
3) Normalize -> mantissa x exponent multiplier = absolute US$
4) Aggregate -> sums per canonical event type
5) Rank     -> top-N by health impact and by economic impact, pivoted long

Ranking ties are broken by canonical label (A-Z) so repeated runs over the
same snapshot always produce the same report.
"""

from __future__ import annotations
from collections import Counter, OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple
import heapq
import logging
import math
import warnings

from .categories import CategoryMap, distinct_labels, remap
from .damage import normalize, unknown_exponent_codes
from .models import (AggregateRow, CombinedRow, Dataset, LongRow,
                     NormalizedRecord, StormRecord)

logger = logging.getLogger(__name__)

BILLION = 1e9

@dataclass
class PipelineConfig:
    """Knobs for one run."""
    top_n: int = 10
    # "first-seen" or "lexical"; must match how the lookup table was built
    label_order: str = "first-seen"
    strict_order: bool = True
    # Silence library warnings while loading, running and rendering; see quiet_warnings
    suppress_warnings: bool = True


@dataclass
class PipelineResult:
    """Everything the report needs, computed once."""
    dataset: Dataset
    kept: List[StormRecord]
    normalized: List[NormalizedRecord]
    aggregates: List[AggregateRow]
    health: List[LongRow]
    economic: List[LongRow]
    combined: List[CombinedRow]
    low_health_high_economic: List[AggregateRow]
    high_health_low_economic: List[AggregateRow]
    raw_labels: List[str] = field(default_factory=list)
    unknown_codes: Counter = field(default_factory=Counter)
    config: PipelineConfig = field(default_factory=PipelineConfig)


# ---------------- Filter ----------------
def filter_impactful(records: Sequence[StormRecord]) -> List[StormRecord]:
    """Keep records with at least one non-zero impact field (order kept)."""
    return [r for r in records if r.has_impact()]


# ---------------- Aggregation ----------------
def aggregate(records: Sequence[NormalizedRecord]) -> List[AggregateRow]:
    """Sum impact per canonical event type, in first grouping order."""
    sums: Dict[str, List[float]] = OrderedDict()
    for r in records:
        s = sums.setdefault(r.event_type, [0, 0, 0.0, 0.0])
        s[0] += r.fatalities
        s[1] += r.injuries
        s[2] += r.property_damage_usd
        s[3] += r.crop_damage_usd
    return [
        AggregateRow(event_type=k, fatalities=int(v[0]), injuries=int(v[1]),
                     property_damage_usd=v[2], crop_damage_usd=v[3])
        for k, v in sums.items()
    ]

def _top(aggregates: Sequence[AggregateRow], k: int, key) -> List[AggregateRow]:
    # Heap-based top-k; (-total, label) gives descending totals, A-Z on ties
    return heapq.nsmallest(k, aggregates, key=lambda a: (-key(a), a.event_type))

def top_by_health(aggregates: Sequence[AggregateRow], top_n: int = 10) -> List[AggregateRow]:
    return _top(aggregates, top_n, lambda a: a.health_total)

def top_by_damage(aggregates: Sequence[AggregateRow], top_n: int = 10) -> List[AggregateRow]:
    return _top(aggregates, top_n, lambda a: a.damage_total_usd)

def health_ranking(aggregates: Sequence[AggregateRow], top_n: int = 10) -> List[LongRow]:
    """Top-N event types by fatalities+injuries, two rows per type."""
    out: List[LongRow] = []
    for a in top_by_health(aggregates, top_n):
        out.append(LongRow(a.event_type, "fatalities", a.fatalities))
        out.append(LongRow(a.event_type, "injuries", a.injuries))
    return out

def economic_ranking(aggregates: Sequence[AggregateRow], top_n: int = 10) -> List[LongRow]:
    """Top-N event types by property+crop damage (billions US$), two rows per type."""
    out: List[LongRow] = []
    for a in top_by_damage(aggregates, top_n):
        out.append(LongRow(a.event_type, "property", a.property_damage_usd / BILLION))
        out.append(LongRow(a.event_type, "crop", a.crop_damage_usd / BILLION))
    return out

def combined_table(aggregates: Sequence[AggregateRow]) -> List[CombinedRow]:
    """Health total vs log10(total damage) per type; not ranked or truncated."""
    out: List[CombinedRow] = []
    for a in aggregates:
        dmg = a.damage_total_usd
        out.append(CombinedRow(
            event_type=a.event_type,
            health_total=a.health_total,
            log10_damage=math.log10(dmg) if dmg > 0 else None,
        ))
    return out

def impact_contrast(aggregates: Sequence[AggregateRow], top_n: int = 10) -> Tuple[List[AggregateRow], List[AggregateRow]]:
    """Event types that rank high on one axis only.

    Returns (economic top-N not in health top-N, in economic rank order;
    health top-N not in economic top-N, in health rank order).
    """
    health = top_by_health(aggregates, top_n)
    economic = top_by_damage(aggregates, top_n)
    health_types = {a.event_type for a in health}
    economic_types = {a.event_type for a in economic}
    low_health = [a for a in economic if a.event_type not in health_types]
    low_economic = [a for a in health if a.event_type not in economic_types]
    return low_health, low_economic


# ---------------- Whole pipeline ----------------
@contextmanager
def quiet_warnings(enabled: bool = True):
    """Silence library warnings (pandas, matplotlib) inside the block only."""
    with warnings.catch_warnings():
        if enabled:
            warnings.simplefilter("ignore")
        yield

def run_pipeline(dataset: Dataset, category_map: CategoryMap,
                 config: Optional[PipelineConfig] = None) -> PipelineResult:
    """Filter, remap, normalize, aggregate and rank one dataset.

    MappingMismatch from the remap step propagates; nothing is returned.
    """
    config = config or PipelineConfig()
    kept = filter_impactful(dataset.records)
    logger.info("Kept %d of %d records with non-zero impact", len(kept), len(dataset.records))

    labels = distinct_labels(kept, config.label_order)
    pairs = remap(kept, category_map, order=config.label_order, strict_order=config.strict_order)
    unknown = unknown_exponent_codes(kept)
    normalized = [normalize(r, canonical) for r, canonical in pairs]

    aggs = aggregate(normalized)
    logger.info("%d raw labels mapped onto %d event types", len(labels), len(aggs))
    low_health, low_economic = impact_contrast(aggs, config.top_n)

    return PipelineResult(
        dataset=dataset,
        kept=kept,
        normalized=normalized,
        aggregates=aggs,
        health=health_ranking(aggs, config.top_n),
        economic=economic_ranking(aggs, config.top_n),
        combined=combined_table(aggs),
        low_health_high_economic=low_health,
        high_health_low_economic=low_economic,
        raw_labels=labels,
        unknown_codes=unknown,
        config=config,
    )


# ---------------- Export ----------------
def _row_dicts(rows) -> List[dict]:
    from dataclasses import asdict
    return [asdict(r) for r in rows]

def export_csv(rows: Sequence, path: str) -> None:
    """Write dataclass rows (LongRow, CombinedRow, AggregateRow) to CSV."""
    import csv
    dicts = _row_dicts(rows)
    if not dicts:
        raise ValueError("Nothing to export: no rows.")
    with open(path, "w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=list(dicts[0].keys()))
        w.writeheader()
        w.writerows(dicts)

def export_json(rows: Sequence, path: str) -> None:
    """Write dataclass rows to a JSON list (field names preserved)."""
    import json
    with open(path, "w", encoding="utf-8") as f:
        json.dump(_row_dicts(rows), f, ensure_ascii=False, indent=2)
