"""Memoized value types for tracked entity attributes and data elements."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from .errors import LookupFailed

type ValueType = str | None
type FieldValue = str | int | None

NUMERIC_VALUE_TYPES = frozenset({"number", "int"})

_LEADING_INTEGER = re.compile(r"\s*([+-]?\d+)")


def parse_int(raw: object) -> int | None:
    """Parse the leading integer of ``raw`` the way ``parseInt`` does.

    ``"12abc"`` gives 12 and ``"5.9"`` gives 5. Input without leading digits
    gives ``None``, which serializes to JSON ``null``.
    """

    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    if raw is None:
        return None
    match = _LEADING_INTEGER.match(str(raw))
    if match is None:
        return None
    return int(match.group(1))


def _coerce(value_type: ValueType, raw: FieldValue) -> FieldValue:
    if value_type in NUMERIC_VALUE_TYPES:
        return parse_int(raw)
    return raw


@dataclass(slots=True)
class TypeCache:
    """Value types reported by the tracker, plus the unique attribute used for lookups.

    One cache belongs to one reconciler. Entries are never evicted and the
    first attribute reported as unique stays designated for the cache's lifetime.
    """

    attribute_types: dict[str, ValueType] = field(default_factory=dict[str, ValueType])
    data_element_types: dict[str, ValueType] = field(default_factory=dict[str, ValueType])
    unique_attribute_id: str | None = None

    @classmethod
    def with_unique_attribute(cls, attribute_id: str) -> TypeCache:
        """Return an empty cache whose unique attribute is fixed up front."""

        return cls(unique_attribute_id=attribute_id)

    def has_attribute_type(self, attribute_id: str) -> bool:
        return attribute_id in self.attribute_types

    def has_data_element_type(self, data_element_id: str) -> bool:
        return data_element_id in self.data_element_types

    def get_attribute_type(self, attribute_id: str) -> ValueType:
        try:
            return self.attribute_types[attribute_id]
        except KeyError:
            raise LookupFailed(attribute_id) from None

    def get_data_element_type(self, data_element_id: str) -> ValueType:
        try:
            return self.data_element_types[data_element_id]
        except KeyError:
            raise LookupFailed(data_element_id) from None

    def record_attribute_type(
        self, attribute_id: str, value_type: ValueType, *, is_unique: bool = False
    ) -> None:
        self.attribute_types[attribute_id] = value_type
        if is_unique and self.unique_attribute_id is None:
            self.unique_attribute_id = attribute_id

    def record_data_element_type(self, data_element_id: str, value_type: ValueType) -> None:
        self.data_element_types[data_element_id] = value_type

    def coerce_attribute_value(self, attribute_id: str, raw: FieldValue) -> FieldValue:
        return _coerce(self.get_attribute_type(attribute_id), raw)

    def coerce_data_element_value(self, data_element_id: str, raw: FieldValue) -> FieldValue:
        return _coerce(self.get_data_element_type(data_element_id), raw)
