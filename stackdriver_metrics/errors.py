"""Exporter exceptions.

Input validation errors are raised before any remote call is made.
Remote errors raised by the monitoring client are not wrapped; they are
propagated or collected into a CombinedExportError as they are.
"""
from typing import List, Optional, Sequence


class ExportError(Exception):
    """Base class for errors raised by the exporter."""


class NoMetricsError(ExportError):
    """Raised when an export call receives no metrics."""

    def __init__(self) -> None:
        super().__init__("expecting a non-empty list of metrics")


class InvalidMetricError(ExportError):
    """Raised for a None metric or a metric without a descriptor."""


class ConversionError(ExportError):
    """Raised when a metric cannot be converted to time series."""


class LabelMismatchError(ConversionError):
    """Describes a time series skipped because its label values do not match its metric's label keys.

    The series is logged and dropped; the rest of the metric is still exported.

    Attributes:
        metric_name: Name of the metric owning the series
        keys_count: Number of label keys on the metric
        values_count: Number of label values on the series
    """

    def __init__(self, metric_name: str, keys_count: int, values_count: int) -> None:
        self.metric_name = metric_name
        self.keys_count = keys_count
        self.values_count = values_count
        super().__init__(
            f"Length mismatch for metric '{metric_name}': "
            f"len(label_keys)={keys_count} len(label_values)={values_count}"
        )


class ExportTimeoutError(ExportError):
    """Raised when a synchronous export does not finish before its deadline."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"export did not complete within {timeout}s")


class CombinedExportError(ExportError):
    """Several errors collected during one export.

    Attributes:
        errors: The collected errors, in the order they occurred
    """

    def __init__(self, errors: Sequence[Exception]) -> None:
        self.errors: List[Exception] = list(errors)
        super().__init__("[" + "; ".join(str(err) for err in self.errors) + "]")


def combine_errors(errors: Sequence[Exception]) -> Optional[Exception]:
    """Collapse a list of errors into one error, or None when there are none."""
    if not errors:
        return None
    if len(errors) == 1:
        return errors[0]
    return CombinedExportError(errors)
