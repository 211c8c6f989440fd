"""Computation helpers for the county choropleth: normalize, join, classify, format."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Sequence

import geopandas as gpd
import numpy as np
import pandas as pd

from config import Attribute
from errors import SchemaError
from log_setup import get_logger, log_event

LOGGER = get_logger("metrics")

NO_DATA = "No data"

# Locale decoration that appears in the published county tables.
_FORMATTING_CHARS = r"[$,%]"
_RECORD_SUFFIX = "__record"
_WHOLE = Decimal("1")


# --- Record normalization -----------------------------------------------------


def normalize_series(values: pd.Series) -> pd.Series:
    """Parse possibly formatted numbers ("$1,234", "45%"); NaN where a cell doesn't parse.

    Only ``$``, ``,`` and ``%`` are stripped, plus surrounding whitespace.
    Infinite results count as missing.
    """
    text = values.astype(str).str.replace(_FORMATTING_CHARS, "", regex=True).str.strip()
    numeric = pd.to_numeric(text, errors="coerce").astype(float)
    return numeric.where(values.notna() & np.isfinite(numeric))


def normalize_value(raw: object) -> float:
    return float(normalize_series(pd.Series([raw], dtype=object)).iloc[0])


def normalize_records(df: pd.DataFrame, fields: Iterable[str]) -> pd.DataFrame:
    """Coerce the declared numeric fields; everything else passes through."""
    out = df.copy()
    for col in fields:
        if col not in out.columns:
            LOGGER.warning("Column %s missing from tabular data; treating as no data", col)
            out[col] = np.nan
            continue
        out[col] = normalize_series(out[col])
    log_event(LOGGER, "normalized records", event="normalize", rows_in=len(df), rows_out=len(out))
    return out


# --- Geo-join -----------------------------------------------------------------


def join_records(
    features: gpd.GeoDataFrame,
    records: pd.DataFrame,
    key: str = "COUNTY",
) -> gpd.GeoDataFrame:
    """Attach each feature's matching record (exact key match, first record wins).

    Features without a record keep their own properties and get NaN for the
    record fields. Neither input is modified.
    """
    if key not in features.columns:
        if not features.empty:
            raise SchemaError(f"Geographic features have no {key!r} property")
        features = features.assign(**{key: pd.Series(dtype=object)})
    if key not in records.columns:
        raise SchemaError(f"Tabular data has no {key!r} column")

    lookup = records[records[key].notna()].drop_duplicates(subset=key, keep="first")
    overlapping = [c for c in lookup.columns if c != key and c in features.columns]

    merged = features.merge(
        lookup,
        on=key,
        how="left",
        suffixes=("", _RECORD_SUFFIX),
        indicator=True,
    )
    matched = merged.pop("_merge") == "both"
    for col in overlapping:
        record_col = f"{col}{_RECORD_SUFFIX}"
        merged[col] = merged[col].mask(matched, merged[record_col])
        merged = merged.drop(columns=record_col)

    enriched = gpd.GeoDataFrame(merged, geometry=features.geometry.name, crs=features.crs)
    enriched.index = features.index
    log_event(
        LOGGER,
        "joined records to features",
        event="geo_join",
        rows_in=len(features),
        rows_out=len(enriched),
        unmatched=int((~matched).sum()),
    )
    return enriched


# --- Quantile classification --------------------------------------------------


def is_missing(value: object, *, zero_is_missing: bool = False) -> bool:
    """True for None/NaN/inf, and for 0 when zero doubles as the missing marker."""
    if value is None:
        return True
    try:
        number = float(value)
    except (TypeError, ValueError):
        return True
    if not np.isfinite(number):
        return True
    return zero_is_missing and number == 0


@dataclass(frozen=True)
class QuantileClassifier:
    """Maps a value to one of ``len(colors)`` equal-count classes.

    ``domain`` holds the sorted observed values the thresholds were derived
    from; ``thresholds[i]`` is the lower bound of class ``i + 1``.
    """

    domain: tuple[float, ...]
    thresholds: tuple[float, ...]
    colors: tuple[str, ...]

    def class_index(self, value: float) -> int:
        return bisect_right(self.thresholds, value)

    def __call__(self, value: float) -> str:
        return self.colors[self.class_index(value)]

    @property
    def extent(self) -> tuple[float, float] | None:
        if not self.domain:
            return None
        return (self.domain[0], self.domain[-1])

    def breaks(self) -> list[tuple[float, float, str]]:
        """(lower, upper, color) for each class, for legends."""
        if not self.domain:
            return []
        lows = (self.domain[0],) + self.thresholds
        highs = self.thresholds + (self.domain[-1],)
        return list(zip(lows, highs, self.colors))


def build_classifier(
    values: Sequence[float] | pd.Series,
    colors: Sequence[str],
    *,
    zero_is_missing: bool = False,
) -> QuantileClassifier:
    """Derive quantile thresholds from the observed (non-missing) values."""
    colors = tuple(colors)
    if not colors:
        raise ValueError("A classifier needs at least one color")

    numeric = pd.to_numeric(pd.Series(values, dtype=object), errors="coerce").to_numpy(dtype=float)
    observed = numeric[np.isfinite(numeric)]
    if zero_is_missing:
        observed = observed[observed != 0]
    domain = np.sort(observed)

    if domain.size == 0:
        thresholds: tuple[float, ...] = ()
    else:
        probs = np.arange(1, len(colors)) / len(colors)
        thresholds = tuple(float(q) for q in np.quantile(domain, probs))

    return QuantileClassifier(
        domain=tuple(float(v) for v in domain),
        thresholds=thresholds,
        colors=colors,
    )


def fill_colors(
    values: pd.Series,
    classifier: QuantileClassifier,
    *,
    missing_color: str = "#ccc",
    zero_is_missing: bool = False,
) -> pd.Series:
    """Color per value, with ``missing_color`` standing in for absent data."""
    colors = [
        missing_color if is_missing(v, zero_is_missing=zero_is_missing) else classifier(float(v))
        for v in values
    ]
    return pd.Series(colors, index=values.index, dtype=object)


# --- Formatting ---------------------------------------------------------------


def format_currency(value: float | None) -> str:
    """Whole dollars, halves rounded up, thousands grouped."""
    if is_missing(value):
        return NO_DATA
    dollars = Decimal(str(value)).quantize(_WHOLE, rounding=ROUND_HALF_UP)
    return f"${dollars:,}"


def format_pct(value: float | None, digits: int = 1) -> str:
    """Human-friendly percentage formatting."""
    if is_missing(value):
        return NO_DATA
    return f"{value:.{digits}f}%"


def format_number(value: float | None) -> str:
    """Thousands-grouped, at most three decimals, no trailing zeros."""
    if is_missing(value):
        return NO_DATA
    return f"{value:,.3f}".rstrip("0").rstrip(".")


_FORMATTERS = {
    "currency": format_currency,
    "percent": format_pct,
    "number": format_number,
}


def format_value(value: float | None, attribute: Attribute, *, zero_is_missing: bool = False) -> str:
    if is_missing(value, zero_is_missing=zero_is_missing):
        return NO_DATA
    return _FORMATTERS.get(attribute.kind, format_number)(float(value))
