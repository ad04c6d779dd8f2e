"""Classification of raw CSV rows into parameters, attributes and data elements."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

log = getLogger(__name__)

COLUMN_DELIMITER = "|"
ATTRIBUTE_TAG = "A"
DATA_ELEMENT_TAG = "DE"
NULL_MARKER = "NULL"

ORG_UNIT = "orgUnit"
EVENT_ORG_UNIT = "eventOrgUnit"
PROGRAM_DATE = "programDate"
EVENT_DATE = "eventDate"
LATITUDE = "latitude"
LONGITUDE = "longitude"


@dataclass(slots=True)
class ClassifiedRow:
    """One CSV row split by column naming convention.

    Plain columns (``orgUnit``, ``eventDate`` ...) are parameters, ``A|<id>``
    columns are tracked entity attributes and ``DE|<id>`` columns are data
    elements.
    """

    parameters: dict[str, str] = field(default_factory=dict[str, str])
    attributes: dict[str, str] = field(default_factory=dict[str, str])
    data_elements: dict[str, str] = field(default_factory=dict[str, str])

    @property
    def org_unit(self) -> str | None:
        return self.parameters.get(ORG_UNIT)

    @property
    def event_org_unit(self) -> str | None:
        return self.parameters.get(EVENT_ORG_UNIT) or self.org_unit

    @property
    def program_date(self) -> str | None:
        return self.parameters.get(PROGRAM_DATE)

    @property
    def event_date(self) -> str | None:
        return self.parameters.get(EVENT_DATE)

    @property
    def coordinate(self) -> dict[str, str] | None:
        latitude = self.parameters.get(LATITUDE)
        longitude = self.parameters.get(LONGITUDE)
        if not latitude or not longitude:
            return None
        return {LATITUDE: latitude, LONGITUDE: longitude}


def classify_row(row: Mapping[str | None, str | None]) -> ClassifiedRow:
    """Split ``row`` into a :class:`ClassifiedRow`.

    ``"NULL"`` values become empty strings before any other rule applies.
    Columns with an unknown prefix are dropped.
    """

    classified = ClassifiedRow()
    for column, raw_value in row.items():
        if column is None:
            # csv.DictReader collects surplus fields under a ``None`` key
            continue
        value = "" if raw_value is None or raw_value == NULL_MARKER else raw_value

        # only the segment after the tag names the field; anything after a
        # second delimiter is ignored
        prefix, *rest = column.split(COLUMN_DELIMITER)
        key = rest[0] if rest else ""
        if not rest:
            classified.parameters[column] = value
        elif prefix == ATTRIBUTE_TAG:
            classified.attributes[key] = value
        elif prefix == DATA_ELEMENT_TAG:
            classified.data_elements[key] = value
        else:
            log.debug("Ignoring column with unknown prefix: %s", column)
    return classified
