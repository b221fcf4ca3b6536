from __future__ import annotations

from typing import Any


class InvalidMeasurement(ValueError):
    """A numeric input is negative, non-finite, or otherwise physically invalid."""

    def __init__(self, field: str, value: Any) -> None:
        super().__init__(f"invalid {field}: {value!r}")
        self.field = field
        self.value = value


class MissingDependentField(ValueError):
    """A derived value was requested without the fields it is computed from."""

    def __init__(self, field: str, missing: list[str]) -> None:
        super().__init__(f"cannot derive {field}: missing {', '.join(missing)}")
        self.field = field
        self.missing = missing


class IngestionError(Exception):
    """Base class for failures fetching an observation from the provider.

    ``status_code`` is the HTTP status reported for the failure kind.
    ``upstream_status`` is what the provider actually answered, when it
    answered with an HTTP error at all.
    """

    status_code = 502

    def __init__(self, message: str, details: Any = None, upstream_status: int | None = None) -> None:
        super().__init__(message)
        self.details = details if details is not None else {}
        self.upstream_status = upstream_status


class StationNotFound(IngestionError):
    status_code = 404


class UpstreamUnavailable(IngestionError):
    status_code = 502


class UpstreamRateLimited(IngestionError):
    status_code = 429


class MalformedUpstreamResponse(IngestionError):
    status_code = 502
