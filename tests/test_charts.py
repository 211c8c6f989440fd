import geopandas as gpd
import pytest
from shapely.geometry import box

from charts import hover_info, legend_rows, make_bar_chart, make_map, plot_frame, states_under
from config import DEFAULT_PALETTE
from data_loader import load_all_data
from metrics import build_classifier


@pytest.fixture
def data(map_config):
    return load_all_data(map_config)


def _classifier(data, key):
    return build_classifier(data.counties[key], DEFAULT_PALETTE)


def test_hover_info_formats_value(data, map_config):
    price = map_config.attribute("MedianHomePrice")
    travis = hover_info(data.counties.loc[0], price, map_config)
    loving = hover_info(data.counties.loc[2], price, map_config)

    assert travis.value_text == "$450,000"
    assert travis.html() == "<b>County:</b> Travis<br><b>Median Home Price:</b> $450,000"
    assert loving.value_text == "No data"
    assert loving.feature_id == "2"


def test_plot_frame_colors_missing_counties_gray(data, map_config):
    price = map_config.attribute("MedianHomePrice")
    frame = plot_frame(data.counties, _classifier(data, price.key), price, map_config)

    assert frame["feature_id"].tolist() == ["0", "1", "2"]
    assert frame["county"].tolist() == ["Travis", "Harris", "Loving"]
    assert frame.loc[0, "fill_color"] == DEFAULT_PALETTE[-1]
    assert frame.loc[2, "fill_color"] == "#ccc"


def test_make_map_draws_outlines_under_counties(data, map_config):
    price = map_config.attribute("MedianHomePrice")
    fig = make_map(data.counties, data.states, _classifier(data, price.key), price, map_config)

    assert fig.data[0].name == "states"
    assert fig.data[0].marker.line.width == 2
    county_ids = sorted(loc for trace in fig.data[1:] for loc in trace.locations)
    assert county_ids == ["0", "1", "2"]
    assert all(trace.hovertemplate == "%{customdata[0]}<extra></extra>" for trace in fig.data[1:])
    assert fig.layout.geo.projection.type == "albers usa"
    assert fig.layout.geo.fitbounds == "locations"


def test_states_under_keeps_only_states_holding_counties(data):
    states = gpd.GeoDataFrame(
        {"NAME": ["Texas", "Maine"]},
        geometry=[box(-101, 29, -97, 33), box(-71, 43, -67, 47)],
        crs="EPSG:4326",
    )
    assert states_under(states, data.counties)["NAME"].tolist() == ["Texas"]
    assert states_under(states, data.counties.iloc[0:0]).empty


def test_make_map_leaves_out_far_states(data, map_config):
    price = map_config.attribute("MedianHomePrice")
    states = gpd.GeoDataFrame(
        {"NAME": ["Maine"]}, geometry=[box(-71, 43, -67, 47)], crs="EPSG:4326"
    )
    fig = make_map(data.counties, states, _classifier(data, price.key), price, map_config)
    assert all(trace.name != "states" for trace in fig.data)


def test_make_map_without_counties(data, map_config):
    price = map_config.attribute("MedianHomePrice")
    empty = data.counties.iloc[0:0]
    fig = make_map(empty, data.states, _classifier(data, price.key), price, map_config)
    assert len(fig.data) == 0
    assert fig.layout.annotations[0].text == "No county boundaries loaded."


def test_make_bar_chart_sorts_descending(data, map_config):
    poverty = map_config.attribute("Poverty")
    fig = make_bar_chart(data.counties, _classifier(data, poverty.key), poverty, map_config)

    assert list(fig.layout.xaxis.categoryarray) == ["1", "0", "2"]
    assert fig.layout.yaxis.type == "linear"
    assert fig.layout.yaxis.range[0] == 0
    assert fig.layout.yaxis.ticksuffix == "%"


def test_make_bar_chart_with_no_values(data, map_config):
    ratio = map_config.attribute("IncomeRatio")
    counties = data.counties.assign(IncomeRatio=float("nan"))
    fig = make_bar_chart(counties, build_classifier(counties["IncomeRatio"], DEFAULT_PALETTE), ratio, map_config)
    assert len(fig.data) == 0


def test_legend_rows_format_ranges(map_config):
    poverty = map_config.attribute("Poverty")
    rows = legend_rows(build_classifier(range(1, 10), DEFAULT_PALETTE), poverty)

    assert len(rows) == 9
    assert rows[0]["range"].startswith("1.0% to ")
    assert rows[-1]["range"].endswith(" to 9.0%")
    assert rows[-1]["color"] == DEFAULT_PALETTE[-1]
