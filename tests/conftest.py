"""Shared fixtures: the four-record sample from the storm-data report."""

import pytest

from stormimpact.categories import CategoryMap
from stormimpact.models import Dataset, StormRecord

SAMPLE_CSV = """STATE__,EVTYPE,FATALITIES,INJURIES,PROPDMG,PROPDMGEXP,CROPDMG,CROPDMGEXP
1,TSTM WIND,0,0,0,,0,
1,TORNADO,5,50,25,K,0,
2,FLOOD,0,0,10,B,1,M
3,DROUGHT,0,0,0,,500,M
"""

MAPPING_CSV = """original,canonical
TORNADO,TORNADO
FLOOD,FLOOD
DROUGHT,DROUGHT
"""


def make_record(record_id, event_type, fatal=0, inj=0, prop=0.0, prop_exp="", crop=0.0, crop_exp=""):
    return StormRecord(
        record_id=record_id, event_type=event_type, fatalities=fatal, injuries=inj,
        prop_dmg=prop, prop_dmg_exp=prop_exp, crop_dmg=crop, crop_dmg_exp=crop_exp,
    )


@pytest.fixture
def sample_records():
    return [
        make_record(0, "TSTM WIND"),
        make_record(1, "TORNADO", fatal=5, inj=50, prop=25, prop_exp="K"),
        make_record(2, "FLOOD", prop=10, prop_exp="B", crop=1, crop_exp="M"),
        make_record(3, "DROUGHT", crop=500, crop_exp="M"),
    ]


@pytest.fixture
def sample_dataset(sample_records):
    return Dataset(records=sample_records, n_rows=4, n_cols=8, path="sample.csv")


@pytest.fixture
def sample_map():
    return CategoryMap.from_pairs([
        ("TORNADO", "TORNADO"),
        ("FLOOD", "FLOOD"),
        ("DROUGHT", "DROUGHT"),
    ])


@pytest.fixture
def sample_files(tmp_path):
    data = tmp_path / "storm.csv"
    data.write_text(SAMPLE_CSV, encoding="utf-8")
    mapping = tmp_path / "event_types.csv"
    mapping.write_text(MAPPING_CSV, encoding="utf-8")
    return data, mapping


@pytest.fixture
def record_factory():
    return make_record
