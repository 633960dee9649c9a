"""Shared fixtures for the Casemap backend tests."""

import pytest

from aggregator import aggregate
from models import CaseRecord, DatasetSnapshot

SAMPLE_TOPOLOGY = {
    "type": "Topology",
    "arcs": [],
    "objects": {
        "map": {
            "type": "GeometryCollection",
            "geometries": [
                {"type": "Polygon", "arcs": [], "properties": {"name": "臺北市"}},
                {"type": "Polygon", "arcs": [], "properties": {"name": "新北市"}},
                {"type": "Polygon", "arcs": [], "properties": {"name": "連江縣"}},
            ],
        }
    },
}

SAMPLE_CSV = (
    "county,caseType,caseName,description,victimAge,injury,date,newsLink\n"
    "臺北市,虐童,Fire at school,Smoke in the gym,7,burns,2024-05-01,https://news.example/1\n"
    "臺北市,少年案件,Water leak,Pipe burst,15,,2024-03-10,\n"
    " 新北市 ,虐童,Daycare report,,3,bruises,113/06/02,\n"
    "高雄市,虐童,Unmatched county,,,,2024-01-01,\n"
    "臺北市,其他,Other case,misc,,,not a date,\n"
)


def make_snapshot(regions, records, version=1, geo=None) -> DatasetSnapshot:
    aggregates, stats = aggregate(regions, records)
    return DatasetSnapshot(
        version=version,
        loadedAt="2024-06-01T00:00:00+00:00",
        regions=list(regions),
        aggregates=aggregates,
        stats=stats,
        geo=geo if geo is not None else {},
    )


@pytest.fixture
def records():
    return [
        CaseRecord(county="A", caseType="child-abuse", caseName="Fire at school", date="2024-05-01"),
        CaseRecord(county="A", caseType="juvenile", caseName="Water leak", description="fire hydrant", date="2024-03-10"),
        CaseRecord(county="A", caseType="other", caseName="Alpha", victimAge="FIRE-7", date="2024-05-01"),
        CaseRecord(county="B", caseType="juvenile", caseName="Bravo"),
        CaseRecord(county="C", caseType="child-abuse", caseName="Unmatched"),
    ]


@pytest.fixture
def snapshot(records):
    return make_snapshot(["A", "B"], records, geo=SAMPLE_TOPOLOGY)
