"""Tests for filtering, aggregation, ranking and the whole pipeline."""

import json

import pytest

from stormimpact.damage import normalize
from stormimpact.engine import (PipelineConfig, aggregate, combined_table,
                                economic_ranking, export_csv, export_json,
                                filter_impactful, health_ranking,
                                impact_contrast, run_pipeline)
from stormimpact.errors import MappingMismatch
from stormimpact.models import AggregateRow, LongRow


def _agg(name, fatal=0, inj=0, prop=0.0, crop=0.0):
    return AggregateRow(name, fatal, inj, prop, crop)


class TestFilter:

    def test_drops_zero_impact(self, sample_records):
        kept = filter_impactful(sample_records)
        assert [r.event_type for r in kept] == ["TORNADO", "FLOOD", "DROUGHT"]

    def test_no_zero_impact_left(self, record_factory):
        recs = [
            record_factory(0, "A"),
            record_factory(1, "B", inj=1),
            record_factory(2, "C", prop=0.5, prop_exp="x"),
            record_factory(3, "D", crop=1),
            record_factory(4, "E", prop_exp="K", crop_exp="M"),
        ]
        kept = filter_impactful(recs)
        assert [r.event_type for r in kept] == ["B", "C", "D"]
        for r in kept:
            assert not (r.fatalities == r.injuries == r.prop_dmg == r.crop_dmg == 0)


class TestAggregate:

    def test_sums_per_type_in_first_seen_order(self, record_factory):
        recs = [
            normalize(record_factory(0, "x", fatal=1, prop=1, prop_exp="K"), "Hail"),
            normalize(record_factory(1, "y", inj=2), "Tornado"),
            normalize(record_factory(2, "z", fatal=3, crop=2, crop_exp="M"), "Hail"),
        ]
        aggs = aggregate(recs)
        assert [a.event_type for a in aggs] == ["Hail", "Tornado"]
        hail = aggs[0]
        assert (hail.fatalities, hail.injuries) == (4, 0)
        assert hail.property_damage_usd == 1000
        assert hail.crop_damage_usd == 2_000_000


class TestRanking:

    def test_health_top_10_and_pivot(self):
        aggs = [_agg(f"T{i:02d}", fatal=i, inj=i) for i in range(15)]
        rows = health_ranking(aggs)
        assert len(rows) == 20
        types = [r.event_type for r in rows[::2]]
        assert types == [f"T{i:02d}" for i in range(14, 4, -1)]
        assert [r.measure for r in rows[:2]] == ["fatalities", "injuries"]

    def test_fewer_types_than_n(self):
        rows = health_ranking([_agg("A", fatal=1), _agg("B", inj=3)])
        assert [r.event_type for r in rows] == ["B", "B", "A", "A"]

    def test_ties_broken_by_label(self):
        aggs = [_agg("Zeta", fatal=1), _agg("Alpha", inj=1), _agg("Mid", fatal=5)]
        rows = health_ranking(aggs, top_n=3)
        assert [r.event_type for r in rows[::2]] == ["Mid", "Alpha", "Zeta"]

    def test_economic_in_billions(self):
        aggs = [_agg("Flood", prop=2e9, crop=5e8), _agg("Hail", prop=1e9, crop=2e9)]
        rows = economic_ranking(aggs)
        assert rows == [
            LongRow("Hail", "property", 1.0),
            LongRow("Hail", "crop", 2.0),
            LongRow("Flood", "property", 2.0),
            LongRow("Flood", "crop", 0.5),
        ]

    def test_top_n_argument(self):
        aggs = [_agg(f"T{i}", prop=i) for i in range(5)]
        assert len(economic_ranking(aggs, top_n=3)) == 6


class TestCombined:

    def test_log10_and_zero_damage(self):
        rows = combined_table([_agg("Flood", fatal=1, prop=1e9, crop=0), _agg("Heat", fatal=9)])
        assert rows[0].health_total == 1
        assert rows[0].log10_damage == pytest.approx(9.0)
        assert rows[1].log10_damage is None

    def test_not_truncated(self):
        aggs = [_agg(f"T{i}", prop=i + 1) for i in range(30)]
        assert len(combined_table(aggs)) == 30


class TestContrast:

    def test_split(self):
        aggs = [
            _agg("Heat", fatal=100),
            _agg("Tornado", fatal=50, prop=5e9),
            _agg("Drought", prop=1e10),
        ]
        low_health, low_economic = impact_contrast(aggs, top_n=2)
        assert [a.event_type for a in low_health] == ["Drought"]
        assert [a.event_type for a in low_economic] == ["Heat"]


class TestPipeline:

    def test_end_to_end_example(self, sample_dataset, sample_map):
        result = run_pipeline(sample_dataset, sample_map)
        assert len(result.kept) == 3
        by_type = {a.event_type: a for a in result.aggregates}
        assert by_type["Flood"].damage_total_usd == 10_001_000_000
        assert by_type["Tornado"].health_total == 55

        health_order = [r.event_type for r in result.health[::2]]
        assert health_order[0] == "Tornado"
        assert set(health_order[1:]) == {"Flood", "Drought"}
        assert [r.event_type for r in result.economic[::2]] == ["Flood", "Drought", "Tornado"]
        assert result.raw_labels == ["TORNADO", "FLOOD", "DROUGHT"]

    def test_canonical_spellings_share_one_group(self, record_factory):
        from stormimpact.categories import CategoryMap
        from stormimpact.models import Dataset
        records = [
            record_factory(0, "TSTM WIND", fatal=3),
            record_factory(1, "THUNDERSTORM WINDS", fatal=4, inj=1),
        ]
        category_map = CategoryMap.from_pairs([
            ("TSTM WIND", "Thunderstorm Wind"),
            ("THUNDERSTORM WINDS", "THUNDERSTORM WIND"),
        ])
        result = run_pipeline(Dataset(records=records, n_rows=2, n_cols=7), category_map)
        assert result.aggregates == [AggregateRow("Thunderstorm Wind", 7, 1, 0.0, 0.0)]
        assert len(result.health) == 2

    def test_mismatch_aborts(self, sample_dataset):
        from stormimpact.categories import CategoryMap
        reordered = CategoryMap.from_pairs([("FLOOD", "Flood"), ("TORNADO", "Tornado"), ("DROUGHT", "Drought")])
        with pytest.raises(MappingMismatch):
            run_pipeline(sample_dataset, reordered)
        result = run_pipeline(sample_dataset, reordered, PipelineConfig(strict_order=False))
        assert [r.event_type for r in result.economic[::2]] == ["Flood", "Drought", "Tornado"]


class TestExport:

    def test_csv_and_json(self, tmp_path):
        rows = [LongRow("Flood", "property", 1.5), LongRow("Flood", "crop", 0.25)]
        export_csv(rows, str(tmp_path / "r.csv"))
        export_json(rows, str(tmp_path / "r.json"))
        lines = (tmp_path / "r.csv").read_text(encoding="utf-8").splitlines()
        assert lines[0] == "event_type,measure,value"
        assert lines[1] == "Flood,property,1.5"
        data = json.loads((tmp_path / "r.json").read_text(encoding="utf-8"))
        assert data[1] == {"event_type": "Flood", "measure": "crop", "value": 0.25}

    def test_csv_empty(self, tmp_path):
        with pytest.raises(ValueError):
            export_csv([], str(tmp_path / "r.csv"))


class TestQuietWarnings:

    def test_scoped(self):
        import warnings
        from stormimpact.engine import quiet_warnings
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            with quiet_warnings(True):
                warnings.warn("inside", UserWarning)
            with quiet_warnings(False):
                warnings.warn("shown", UserWarning)
            warnings.warn("after", UserWarning)
        assert [str(w.message) for w in caught] == ["shown", "after"]
