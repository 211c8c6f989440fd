import json
from pathlib import Path

import pytest

from config import MapConfig

COUNTY_CSV = """COUNTY,MedianHomePrice,Population,Poverty,MedianHouseholdIncome,IncomeRatio
Travis,"$450,000","1,290,188",11.5%,"$92,731",4.85
Harris,"$275,000","4,731,145",16.4%,"$65,788",4.18
El Paso,"$180,000","865,657",19.6%,"$51,325",3.51
"""


def _square(x: float, y: float) -> list[list[float]]:
    return [[x, y], [x + 1, y], [x + 1, y + 1], [x, y + 1], [x, y]]


@pytest.fixture
def counties_topology() -> dict:
    """Three unquantized county squares; Loving has no row in the table."""
    return {
        "type": "Topology",
        "arcs": [_square(-100, 30), _square(-99, 30), _square(-100, 31)],
        "objects": {
            "tx_counties": {
                "type": "GeometryCollection",
                "geometries": [
                    {"type": "Polygon", "arcs": [[0]], "properties": {"COUNTY": "Travis"}},
                    {"type": "Polygon", "arcs": [[1]], "properties": {"COUNTY": "Harris"}},
                    {"type": "Polygon", "arcs": [[2]], "properties": {"COUNTY": "Loving"}},
                ],
            }
        },
    }


@pytest.fixture
def states_topology() -> dict:
    """One quantized state square spanning (-101, 29) to (-97, 33)."""
    return {
        "type": "Topology",
        "transform": {"scale": [0.01, 0.01], "translate": [-101, 29]},
        "arcs": [[[0, 0], [400, 0], [0, 400], [-400, 0], [0, -400]]],
        "objects": {
            "states": {
                "type": "GeometryCollection",
                "geometries": [
                    {"type": "Polygon", "arcs": [[0]], "properties": {"NAME": "Texas"}},
                ],
            }
        },
    }


@pytest.fixture
def data_dir(tmp_path: Path, counties_topology: dict, states_topology: dict) -> Path:
    (tmp_path / "CountyData.csv").write_text(COUNTY_CSV, encoding="utf-8")
    (tmp_path / "tx_counties.topojson").write_text(json.dumps(counties_topology), encoding="utf-8")
    (tmp_path / "usa_states.topojson").write_text(json.dumps(states_topology), encoding="utf-8")
    return tmp_path


@pytest.fixture
def map_config(data_dir: Path) -> MapConfig:
    return MapConfig(
        tabular_source=str(data_dir / "CountyData.csv"),
        counties_source=str(data_dir / "tx_counties.topojson"),
        states_source=str(data_dir / "usa_states.topojson"),
    )
