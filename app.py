"""County statistics choropleth (Streamlit + Plotly).

Run with:
    streamlit run app.py

An optional ``choropleth.yml`` next to this file overrides the defaults in
``config.MapConfig`` (data sources, attributes, palette).
"""

from __future__ import annotations

from pathlib import Path
import sys

import streamlit as st

# Ensure local modules are importable even if Streamlit changes cwd.
PROJECT_ROOT = Path(__file__).resolve().parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from charts import legend_rows, make_bar_chart, make_map
from config import MapConfig, load_config
from data_loader import DashboardData, load_all_data
from errors import ChoroplethError
from log_setup import build_logger, get_logger
from selection import SelectionController

CONFIG_PATH = PROJECT_ROOT / "choropleth.yml"

logger = get_logger("app")


@st.cache_resource(show_spinner=False)
def get_config() -> MapConfig:
    config = load_config(CONFIG_PATH)
    build_logger(config.log_level)
    return config


@st.cache_data(show_spinner="Loading county data...")
def get_data(_config: MapConfig, cache_key: str) -> DashboardData:
    """Streamlit skips hashing ``_config``; ``cache_key`` identifies it instead."""
    return load_all_data(_config)


st.set_page_config(page_title=MapConfig.title, layout="wide")

# --- Data --------------------------------------------------------------------
try:
    config = get_config()
    data = get_data(config, repr(config))
except ChoroplethError as exc:
    logger.exception("data load failed", extra={"event": "load_failed", "error_code": exc.error_code})
    st.error(f"Error loading data: {exc}")
    st.stop()


# --- Sidebar controls --------------------------------------------------------
st.sidebar.title("Display")
labels = {a.key: a.label for a in config.attributes}
selected_key = st.sidebar.selectbox(
    "Attribute",
    options=config.attribute_keys,
    index=config.attribute_keys.index(config.default_attribute),
    format_func=labels.get,
    key="attribute",
)


# --- Views -------------------------------------------------------------------
st.title(config.title)
map_col, chart_col = st.columns([3, 2])


def draw_map(controller: SelectionController) -> None:
    with map_col:
        st.markdown(f"### {controller.attribute.label} by County")
        fig = make_map(data.counties, data.states, controller.classifier, controller.attribute, config)
        st.plotly_chart(fig, use_container_width=True)


def draw_chart(controller: SelectionController) -> None:
    with chart_col:
        st.markdown(f"### Counties ranked by {controller.attribute.label.lower()}")
        fig = make_bar_chart(data.counties, controller.classifier, controller.attribute, config)
        st.plotly_chart(fig, use_container_width=True)


def _swatch(color: str, text: str) -> str:
    return (
        f"<span style='display:inline-block;width:14px;height:14px;background:{color};"
        f"border:1px solid #999;margin-right:6px'></span>{text}"
    )


def draw_legend(controller: SelectionController) -> None:
    rows = legend_rows(controller.classifier, controller.attribute)
    with st.sidebar:
        st.markdown("**Legend**")
        if not rows:
            st.info("No data for this attribute.")
            return
        swatches = [_swatch(row["color"], row["range"]) for row in rows]
        swatches.append(_swatch(config.missing_color, "No data"))
        st.markdown("<br>".join(swatches), unsafe_allow_html=True)


controller = SelectionController(data.counties, config)
controller.subscribe(draw_map)
controller.subscribe(draw_chart)
controller.subscribe(draw_legend)
controller.select(selected_key)

st.caption("Hover a county or a bar for its value. Gray counties have no data.")
