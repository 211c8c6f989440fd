"""Attribute selection state for the dashboard views."""

from __future__ import annotations

from typing import Callable

import geopandas as gpd
import pandas as pd

from config import Attribute, MapConfig
from errors import UnknownAttributeError
from log_setup import get_logger, log_event
from metrics import QuantileClassifier, build_classifier

LOGGER = get_logger("selection")

LOADED = "loaded"
SELECTED = "selected"
RENDERED = "rendered"

Listener = Callable[["SelectionController"], None]


class SelectionController:
    """Owns the selected attribute and the classifier derived from it.

    Views subscribe once; every ``select`` rebuilds the classifier from the
    full feature table and asks each view to redraw.
    """

    def __init__(self, features: gpd.GeoDataFrame, config: MapConfig) -> None:
        self.features = features
        self.config = config
        self.state = LOADED
        self._attribute: Attribute | None = None
        self._classifier: QuantileClassifier | None = None
        self._listeners: list[Listener] = []

    @property
    def attribute(self) -> Attribute:
        if self._attribute is None:
            raise RuntimeError("No attribute selected yet")
        return self._attribute

    @property
    def classifier(self) -> QuantileClassifier:
        if self._classifier is None:
            raise RuntimeError("No attribute selected yet")
        return self._classifier

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def values(self, key: str | None = None) -> pd.Series:
        key = key or self.attribute.key
        if key not in self.features.columns:
            return pd.Series(float("nan"), index=self.features.index, dtype=float)
        return pd.to_numeric(self.features[key], errors="coerce")

    def select(self, key: str | None = None) -> QuantileClassifier:
        """Select an attribute (the configured default when ``key`` is None)."""
        key = key or self.config.default_attribute
        try:
            attribute = self.config.attribute(key)
        except KeyError as exc:
            raise UnknownAttributeError(
                f"Unknown attribute {key!r}; expected one of {self.config.attribute_keys}"
            ) from exc

        classifier = build_classifier(
            self.values(attribute.key),
            self.config.palette,
            zero_is_missing=self.config.zero_is_missing,
        )
        self._attribute = attribute
        self._classifier = classifier
        self.state = SELECTED
        log_event(
            LOGGER,
            f"classifier rebuilt for {attribute.key}",
            event="select",
            attribute=attribute.key,
            rows_in=len(self.features),
            rows_out=len(classifier.domain),
        )

        for listener in self._listeners:
            listener(self)
        self.state = RENDERED
        return classifier
