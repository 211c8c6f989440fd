"""Plotly figure builders for the county map and the companion bar chart."""

from __future__ import annotations

from dataclasses import dataclass

import geopandas as gpd
import numpy as np
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from config import Attribute, MapConfig
from metrics import QuantileClassifier, fill_colors, format_value

HOVER_TEMPLATE = "%{customdata[0]}<extra></extra>"
TRANSPARENT = "rgba(0,0,0,0)"


@dataclass(frozen=True)
class HoverInfo:
    """Plain tooltip payload for one feature."""

    feature_id: str
    county: str
    label: str
    value_text: str

    def html(self) -> str:
        return f"<b>County:</b> {self.county}<br><b>{self.label}:</b> {self.value_text}"


def hover_info(row: pd.Series, attribute: Attribute, config: MapConfig) -> HoverInfo:
    """Tooltip payload for one feature row; the row label is the feature id."""
    county = row.get(config.join_key)
    if county is None or pd.isna(county) or county == "":
        county = "N/A"
    return HoverInfo(
        feature_id=str(row.name),
        county=str(county),
        label=attribute.label,
        value_text=format_value(row.get(attribute.key), attribute, zero_is_missing=config.zero_is_missing),
    )


def plot_frame(
    counties: gpd.GeoDataFrame,
    classifier: QuantileClassifier,
    attribute: Attribute,
    config: MapConfig,
) -> pd.DataFrame:
    """One row per feature: id, name, value, fill color and tooltip text."""
    if attribute.key in counties.columns:
        values = pd.to_numeric(counties[attribute.key], errors="coerce")
    else:
        values = pd.Series(np.nan, index=counties.index, dtype=float)

    infos = [hover_info(row, attribute, config) for _, row in counties.iterrows()]
    return pd.DataFrame(
        {
            "feature_id": [info.feature_id for info in infos],
            "county": [info.county for info in infos],
            "value": values.to_numpy(dtype=float),
            "fill_color": fill_colors(
                values,
                classifier,
                missing_color=config.missing_color,
                zero_is_missing=config.zero_is_missing,
            ).to_numpy(),
            "hover_text": [info.html() for info in infos],
        },
        index=counties.index,
    )


def _empty_figure(message: str, height: int) -> go.Figure:
    fig = go.Figure()
    fig.update_layout(
        height=height,
        xaxis_visible=False,
        yaxis_visible=False,
        annotations=[dict(text=message, x=0.5, y=0.5, xref="paper", yref="paper", showarrow=False)],
    )
    return fig


def _outline_trace(states: gpd.GeoDataFrame) -> go.Choropleth:
    return go.Choropleth(
        geojson=states[[states.geometry.name]].__geo_interface__,
        locations=[str(i) for i in states.index],
        featureidkey="id",
        z=np.zeros(len(states)),
        colorscale=[[0, TRANSPARENT], [1, TRANSPARENT]],
        showscale=False,
        marker_line_color="#000",
        marker_line_width=2,
        hoverinfo="skip",
        name="states",
    )


def states_under(states: gpd.GeoDataFrame, counties: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """States containing at least one county, so the map fits to the county extent."""
    shapes = counties[counties.geometry.notna() & ~counties.geometry.is_empty]
    if states.empty or shapes.empty:
        return states.iloc[0:0]
    points = gpd.GeoDataFrame(geometry=shapes.representative_point(), crs=shapes.crs)
    hits = gpd.sjoin(states, points, how="inner", predicate="contains")
    return states.loc[states.index.isin(hits.index)]


def make_map(
    counties: gpd.GeoDataFrame,
    states: gpd.GeoDataFrame,
    classifier: QuantileClassifier,
    attribute: Attribute,
    config: MapConfig,
) -> go.Figure:
    """County choropleth over the state outlines, framed on the counties."""
    if counties.empty:
        return _empty_figure("No county boundaries loaded.", config.map_height)

    frame = plot_frame(counties, classifier, attribute, config)
    fig = px.choropleth(
        frame,
        geojson=counties[[counties.geometry.name]].__geo_interface__,
        locations="feature_id",
        featureidkey="id",
        color="fill_color",
        color_discrete_map="identity",
        custom_data=["hover_text"],
        height=config.map_height,
    )
    fig.update_traces(hovertemplate=HOVER_TEMPLATE, marker_line_color="#fff", marker_line_width=0.5)

    outlines = states_under(states, counties)
    if not outlines.empty:
        fig.add_trace(_outline_trace(outlines))
        # Outlines go underneath the counties.
        fig.data = (fig.data[-1],) + fig.data[:-1]

    fig.update_geos(visible=False, projection_type="albers usa", fitbounds="locations")
    fig.update_layout(
        showlegend=False,
        margin=dict(l=0, r=0, t=0, b=0),
        paper_bgcolor=TRANSPARENT,
        plot_bgcolor=TRANSPARENT,
        geo_bgcolor=TRANSPARENT,
    )
    return fig


def make_bar_chart(
    counties: gpd.GeoDataFrame,
    classifier: QuantileClassifier,
    attribute: Attribute,
    config: MapConfig,
) -> go.Figure:
    """One bar per county, highest value first, colored like the map."""
    frame = plot_frame(counties, classifier, attribute, config)
    if frame["value"].notna().sum() == 0:
        return _empty_figure(f"No {attribute.label.lower()} data.", config.chart_height)

    frame = frame.sort_values("value", ascending=False, na_position="last", kind="stable")
    fig = px.bar(
        frame,
        x="feature_id",
        y="value",
        color="fill_color",
        color_discrete_map="identity",
        custom_data=["hover_text"],
        height=config.chart_height,
        labels={"value": attribute.label},
    )
    fig.update_traces(hovertemplate=HOVER_TEMPLATE)

    tick_format = {
        "currency": dict(tickprefix="$", tickformat=",.0f"),
        "percent": dict(ticksuffix="%"),
    }.get(attribute.kind, dict(tickformat=","))
    top = float(np.nanmax(frame["value"].to_numpy(dtype=float)))
    fig.update_yaxes(type="linear", range=[0, top if top > 0 else 1], **tick_format)
    fig.update_xaxes(
        type="category",
        categoryorder="array",
        categoryarray=frame["feature_id"].tolist(),
        showticklabels=False,
        title=None,
    )
    fig.update_layout(
        showlegend=False,
        bargap=0.33,
        margin=dict(l=40, r=5, t=20, b=20),
        plot_bgcolor="#f9f9f9",
    )
    return fig


def legend_rows(classifier: QuantileClassifier, attribute: Attribute) -> list[dict[str, str]]:
    """Color swatch and formatted value range per class."""
    return [
        {"color": color, "range": f"{format_value(low, attribute)} to {format_value(high, attribute)}"}
        for low, high, color in classifier.breaks()
    ]
