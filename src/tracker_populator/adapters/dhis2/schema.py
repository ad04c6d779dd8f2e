"""Pydantic models describing the DHIS2 tracker API payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

SUCCESS_STATUS = "SUCCESS"


def _stringify(value: object) -> object:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, int | float):
        return str(value)
    return value


class TrackerBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class AttributeMetadata(TrackerBaseModel):
    value_type: str | None = Field(default=None, alias="valueType")
    unique: bool = False


class DataElementMetadata(TrackerBaseModel):
    type: str | None = None
    value_type: str | None = Field(default=None, alias="valueType")

    @property
    def declared_type(self) -> str | None:
        return self.type or self.value_type


class Conflict(TrackerBaseModel):
    object_id: str | None = Field(default=None, alias="object")
    value: str = ""

    @field_validator("value", mode="before")
    @classmethod
    def _normalize_value(cls, value: object) -> object:
        return "" if value is None else _stringify(value)


class ImportSummary(TrackerBaseModel):
    status: str | None = None
    reference: str | None = None
    description: str | None = None
    conflicts: list[Conflict] = Field(default_factory=list[Conflict])

    @field_validator("conflicts", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return [] if value is None else value

    @property
    def succeeded(self) -> bool:
        return self.status == SUCCESS_STATUS


class ImportSummaries(TrackerBaseModel):
    import_summaries: list[ImportSummary] = Field(
        default_factory=list[ImportSummary], alias="importSummaries"
    )

    @property
    def first(self) -> ImportSummary | None:
        return self.import_summaries[0] if self.import_summaries else None


class TrackedEntityInstanceRef(TrackerBaseModel):
    tracked_entity_instance: str = Field(alias="trackedEntityInstance")


class TrackedEntityInstanceQuery(TrackerBaseModel):
    """Lookup result in either the list shape or the legacy grid shape."""

    tracked_entity_instances: list[TrackedEntityInstanceRef] = Field(
        default_factory=list[TrackedEntityInstanceRef], alias="trackedEntityInstances"
    )
    rows: list[list[str | None]] = Field(default_factory=list[list[str | None]])

    def first_reference(self) -> str | None:
        if self.tracked_entity_instances:
            return self.tracked_entity_instances[0].tracked_entity_instance
        if self.rows and self.rows[0]:
            return self.rows[0][0]
        return None


class DataValue(TrackerBaseModel):
    data_element: str = Field(alias="dataElement")
    value: str | None = None

    _normalize_value = field_validator("value", mode="before")(_stringify)


class Event(TrackerBaseModel):
    event: str | None = None
    data_values: list[DataValue] = Field(default_factory=list[DataValue], alias="dataValues")


class EventList(TrackerBaseModel):
    events: list[Event] = Field(default_factory=list[Event])

    @field_validator("events", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return [] if value is None else value
