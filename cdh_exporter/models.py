"""Typed records for Cloudera Manager API payloads.

Upstream JSON is decoded into these pydantic models instead of being walked
as untyped dicts. Fields the exporter cannot work without are required;
everything else defaults, and unknown keys are ignored. Lists of items are
decoded one element at a time so a single malformed entity never takes its
siblings down with it.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, TypeVar

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

T = TypeVar("T", bound=BaseModel)


def _none_as_empty(value: Any) -> Any:
    return "" if value is None else value


def _assume_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


OptionalStr = Annotated[str, BeforeValidator(_none_as_empty)]


class DecodeError(ValueError):
    """Payload is not valid JSON or does not have the expected shape."""

    pass


class CdhRecord(BaseModel):
    """Base for upstream records: camelCase keys, extra keys ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class HealthCheck(CdhRecord):
    name: str
    summary: str
    explanation: OptionalStr = ""


class Service(CdhRecord):
    """A cluster service with its health summary and checks."""

    name: OptionalStr = ""
    type: str
    health_summary: str
    health_checks: list[HealthCheck] = Field(default_factory=list)


class ServiceRef(CdhRecord):
    cluster_name: OptionalStr = ""
    service_name: OptionalStr = ""
    service_type: OptionalStr = ""


class HostRef(CdhRecord):
    host_id: OptionalStr = ""
    hostname: OptionalStr = ""


class Role(CdhRecord):
    """A role instance: belongs to one service and runs on one host."""

    name: str
    type: str
    service_ref: ServiceRef
    host_ref: HostRef
    health_summary: str
    health_checks: list[HealthCheck] = Field(default_factory=list)


class ItemList(CdhRecord):
    """Envelope used by every list endpoint: ``{"items": [...]}``."""

    items: list[Any]


class SchemaEntry(CdhRecord):
    """One queryable timeseries metric from /timeseries/schema."""

    name: str
    description: OptionalStr = ""


class TimeseriesAttributes(CdhRecord):
    entity_name: OptionalStr = ""
    service_type: OptionalStr = ""
    category: OptionalStr = ""
    hostname: OptionalStr = ""
    role_type: OptionalStr = ""
    service_name: OptionalStr = ""


class TimeseriesMetadata(CdhRecord):
    metric_name: str
    entity_name: OptionalStr = ""
    attributes: TimeseriesAttributes = Field(default_factory=TimeseriesAttributes)


class TimeseriesPoint(CdhRecord):
    timestamp: Annotated[datetime | None, AfterValidator(_assume_utc)] = None
    value: float


class TimeSeries(CdhRecord):
    """A single metric for a single entity over the query window."""

    metadata: TimeseriesMetadata
    data: list[TimeseriesPoint] = Field(default_factory=list)

    def latest_point(self) -> TimeseriesPoint | None:
        """Return the most recent data point, None if there are none.

        Points are ordered by timestamp when every point carries one; ties
        and untimestamped data fall back to response order, last wins.
        """
        if not self.data:
            return None
        if all(p.timestamp is not None for p in self.data):
            return max(enumerate(self.data), key=lambda ip: (ip[1].timestamp, ip[0]))[1]
        return self.data[-1]


class TimeseriesResponseItem(CdhRecord):
    """One element of a /timeseries query response."""

    time_series: list[Any] = Field(default_factory=list)
    warnings: list[Any] = Field(default_factory=list)
    errors: list[Any] = Field(default_factory=list)


def decode(model: type[T], payload: bytes | str | Any) -> T:
    """Validate a payload into a record.

    Args:
        model: Record class to decode into
        payload: Raw JSON (bytes or str) or an already-parsed value

    Returns:
        The decoded record

    Raises:
        DecodeError: If the payload is not valid JSON or misses required fields
    """
    try:
        if isinstance(payload, (bytes, str)):
            return model.model_validate_json(payload)
        return model.model_validate(payload)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc']) or '<root>'}: {err['msg']}" for err in e.errors()
        )
        raise DecodeError(f"invalid {model.__name__}: {problems}") from e
