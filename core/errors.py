from __future__ import annotations


class EstimatorError(Exception):
    code = "ESTIMATOR_ERROR"


class MissingRequiredField(EstimatorError, ValueError):
    """A required customer or brand field is empty at calculation time."""

    code = "MISSING_REQUIRED_FIELD"

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Missing required field: {field}")


class InvalidMarginValue(EstimatorError, ValueError):
    code = "INVALID_MARGIN_VALUE"

    def __init__(self, value: float):
        self.value = value
        super().__init__(f"Margin percentage cannot be negative (got {value})")


class SettingsUnavailable(EstimatorError):
    """Settings or rate data could not be fetched. No defaults are substituted."""

    code = "SETTINGS_UNAVAILABLE"


class PersistenceFailure(EstimatorError):
    code = "DATABASE_ERROR"


class CatalogUnavailable(EstimatorError):
    """The fixture/product catalog could not be read at all."""

    code = "CATALOG_UNAVAILABLE"
