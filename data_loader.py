"""Data loading utilities.

This module keeps all I/O in one place so the Streamlit app can stay lean.
The county table and the two boundary topologies are fetched together; the
dashboard renders only when all three arrive.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import geopandas as gpd
import pandas as pd

from config import MapConfig
from errors import DataLoadError
from log_setup import get_logger, log_event
from metrics import join_records, normalize_records

LOGGER = get_logger("data_loader")

GEOGRAPHIC_CRS = "EPSG:4326"


@dataclass(frozen=True)
class DashboardData:
    records: pd.DataFrame
    counties: gpd.GeoDataFrame
    states: gpd.GeoDataFrame


def read_tabular(source: str) -> pd.DataFrame:
    """Read the county table with every column as text; numbers are parsed later."""
    return pd.read_csv(source, dtype=str)


def read_topology(source: str, object_name: str) -> gpd.GeoDataFrame:
    """Read one object of a TopoJSON file (path or URL) as a GeoDataFrame.

    GDAL's TopoJSON driver exposes each topology object as a layer.
    """
    layers = gpd.list_layers(source)["name"].tolist()
    if object_name not in layers:
        raise DataLoadError(f"{source} has no object {object_name!r}; found {layers}")

    gdf = gpd.read_file(source, layer=object_name)
    if gdf.crs is None:
        return gdf.set_crs(GEOGRAPHIC_CRS)
    return gdf.to_crs(GEOGRAPHIC_CRS)


def _timed(label: str, fn, *args):
    start = time.perf_counter()
    result = fn(*args)
    log_event(
        LOGGER,
        f"fetched {label}",
        event="fetch",
        source=str(args[0]),
        rows_out=len(result),
        duration_ms=round((time.perf_counter() - start) * 1000, 1),
    )
    return result


def fetch_sources(config: MapConfig) -> tuple[pd.DataFrame, gpd.GeoDataFrame, gpd.GeoDataFrame]:
    """Fetch the table and both topologies concurrently; fail if any of them fails."""
    with ThreadPoolExecutor(max_workers=3, thread_name_prefix="fetch") as pool:
        futures = [
            pool.submit(_timed, "tabular data", read_tabular, config.tabular_source),
            pool.submit(
                _timed, "county boundaries", read_topology, config.counties_source, config.counties_object
            ),
            pool.submit(_timed, "state boundaries", read_topology, config.states_source, config.states_object),
        ]
        try:
            table, counties, states = (future.result() for future in futures)
        except Exception as exc:
            for future in futures:
                future.cancel()
            raise DataLoadError(f"Error loading data: {exc}") from exc
    return table, counties, states


def load_all_data(config: MapConfig) -> DashboardData:
    """Convenience loader for the app entrypoint."""
    table, counties, states = fetch_sources(config)
    records = normalize_records(table, config.attribute_keys)
    enriched = join_records(counties, records, key=config.join_key)
    return DashboardData(records=records, counties=enriched, states=states)
