"""Error types for the choropleth dashboard."""


class ChoroplethError(Exception):
    """Base class for dashboard failures."""

    error_code = "CHOROPLETH_ERROR"


class ConfigError(ChoroplethError):
    """Raised for invalid configuration files or values."""

    error_code = "CONFIG_ERROR"


class DataLoadError(ChoroplethError):
    """Raised when any of the input sources cannot be fetched or parsed."""

    error_code = "DATA_LOAD_ERROR"


class SchemaError(ChoroplethError):
    """Raised when a table is missing a column the pipeline needs."""

    error_code = "SCHEMA_ERROR"


class UnknownAttributeError(ChoroplethError):
    """Raised when selecting an attribute that is not registered."""

    error_code = "UNKNOWN_ATTRIBUTE"
