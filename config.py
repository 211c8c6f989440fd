"""Dashboard configuration: data sources, attributes, and colors."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import plotly.express as px
import yaml

from errors import ConfigError

ATTRIBUTE_KINDS = ("currency", "percent", "number")


@dataclass(frozen=True)
class Attribute:
    key: str
    label: str
    kind: str = "number"


DEFAULT_ATTRIBUTES: tuple[Attribute, ...] = (
    Attribute("MedianHomePrice", "Median Home Price", "currency"),
    Attribute("Population", "Population", "number"),
    Attribute("Poverty", "Poverty Rate", "percent"),
    Attribute("MedianHouseholdIncome", "Median Household Income", "currency"),
    Attribute("IncomeRatio", "Home Price to Income Ratio", "number"),
)

# ColorBrewer Blues, 9 classes (lightest first).
DEFAULT_PALETTE: tuple[str, ...] = tuple(px.colors.sequential.Blues)


@dataclass(frozen=True)
class MapConfig:
    tabular_source: str = "data/CountyData.csv"
    counties_source: str = "data/tx_counties.topojson"
    counties_object: str = "tx_counties"
    states_source: str = "data/usa_states.topojson"
    states_object: str = "states"
    join_key: str = "COUNTY"
    default_attribute: str = "MedianHomePrice"
    attributes: tuple[Attribute, ...] = DEFAULT_ATTRIBUTES
    palette: tuple[str, ...] = DEFAULT_PALETTE
    missing_color: str = "#ccc"
    zero_is_missing: bool = False
    map_height: int = 600
    chart_height: int = 400
    log_level: str = "INFO"
    title: str = "County Statistics Explorer"

    @property
    def attribute_keys(self) -> list[str]:
        return [a.key for a in self.attributes]

    def attribute(self, key: str) -> Attribute:
        for attr in self.attributes:
            if attr.key == key:
                return attr
        raise KeyError(key)


def _parse_attributes(raw: Any) -> tuple[Attribute, ...]:
    if not isinstance(raw, list) or not raw:
        raise ConfigError("`attributes` must be a non-empty list")
    parsed = []
    for item in raw:
        if not isinstance(item, dict) or "key" not in item:
            raise ConfigError(f"Invalid attribute entry: {item!r}")
        kind = item.get("kind", "number")
        if kind not in ATTRIBUTE_KINDS:
            raise ConfigError(f"Unknown attribute kind {kind!r} for {item['key']!r}")
        parsed.append(Attribute(key=str(item["key"]), label=str(item.get("label", item["key"])), kind=kind))
    return tuple(parsed)


def validate_config(config: MapConfig) -> MapConfig:
    if not config.palette:
        raise ConfigError("`palette` must contain at least one color")
    keys = config.attribute_keys
    if len(set(keys)) != len(keys):
        raise ConfigError("Attribute keys must be unique")
    if config.default_attribute not in keys:
        raise ConfigError(
            f"Default attribute {config.default_attribute!r} is not one of {keys}"
        )
    for attr in config.attributes:
        if attr.kind not in ATTRIBUTE_KINDS:
            raise ConfigError(f"Unknown attribute kind {attr.kind!r} for {attr.key!r}")
    return config


def load_config(path: Path | None = None) -> MapConfig:
    """Build a MapConfig from defaults, overridden by an optional YAML file.

    Missing files fall back to the defaults. Keys in the file must match
    MapConfig field names.
    """
    config = MapConfig()
    if path is None or not Path(path).exists():
        return validate_config(config)

    with Path(path).open("r", encoding="utf-8") as f:
        overrides = yaml.safe_load(f)
    if overrides is None:
        return validate_config(config)
    if not isinstance(overrides, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")

    known = {fld.name for fld in fields(MapConfig)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ConfigError(f"{path}: unknown config keys {unknown}")

    if "attributes" in overrides:
        overrides["attributes"] = _parse_attributes(overrides["attributes"])
    if "palette" in overrides:
        overrides["palette"] = tuple(overrides["palette"] or ())
    return validate_config(replace(config, **overrides))
