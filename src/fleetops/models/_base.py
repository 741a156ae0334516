"""Base model and enum for fleet store records.

Every record model inherits from :class:`FleetBaseModel` which provides:

* ``alias_generator=to_camel`` so the store's camelCase columns map
  automatically to snake_case fields (snake_case columns such as
  ``created_at`` declare an explicit alias).
* A ``model_validator(mode="before")`` that drops empty-string and ``None``
  values so the field default is used, and stashes the original row in
  ``raw``.
* :meth:`FleetBaseModel.to_store` which builds the upsert payload: aliased
  keys, JSON-ready values, explicit ``None`` for blank optional fields, and
  write-once columns left out of updates.

Status enums inherit from :class:`FleetEnum`, a ``StrEnum`` whose
``_missing_`` hook also accepts member names and case variants, since rows
written by older clients are not consistent about either.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class FleetEnum(StrEnum):
    """Base for stored status enums."""

    @classmethod
    def _missing_(cls, value: object) -> FleetEnum | None:
        if not isinstance(value, str):
            return None
        needle = value.strip().casefold()
        for member in cls:
            if member.value.casefold() == needle or member.name.casefold() == needle:
                return member
        return None


def blank_to_none(value: Any) -> Any:
    """Return ``None`` for empty or whitespace-only strings."""
    if isinstance(value, str) and not value.strip():
        return None
    return value


class FleetBaseModel(BaseModel):
    """Base for records read from and written to the entity store."""

    _WRITE_ONCE: ClassVar[frozenset[str]] = frozenset()
    """Field names set only at creation and never included in update payloads."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    id: str | None = None
    """Store-assigned identifier; ``None`` until the record is first saved."""

    raw: dict[str, Any] = Field(default_factory=dict, exclude=True, repr=False)
    """Original store row."""

    @model_validator(mode="before")
    @classmethod
    def _clean_store_values(cls, values: Any) -> Any:
        """Drop blank values and stash the raw row."""
        if not isinstance(values, dict):
            return values
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            cleaned[key] = value
        if "raw" not in values:
            cleaned["raw"] = dict(values)
        return cleaned

    def __eq__(self, other: object) -> bool:
        # ``raw`` is provenance, not content.
        if type(other) is not type(self):
            return NotImplemented
        return self.model_dump() == other.model_dump()  # type: ignore[attr-defined]

    __hash__ = None  # type: ignore[assignment]

    @property
    def is_new(self) -> bool:
        return self.id is None

    def to_store(self, *, create: bool | None = None) -> dict[str, Any]:
        """Build the store payload for this record.

        ``create`` defaults to :attr:`is_new`.  On updates, fields listed in
        ``_WRITE_ONCE`` are omitted so the stored snapshot is never
        overwritten.  A new record is sent without ``id`` so the store
        assigns one.
        """
        creating = self.is_new if create is None else create
        exclude: set[str] = set()
        if not creating:
            exclude |= set(self._WRITE_ONCE)
        if self.id is None:
            exclude.add("id")
        payload = self.model_dump(mode="json", by_alias=True, exclude=exclude)

        optional_aliases = {
            (info.serialization_alias or info.alias or name)
            for name, info in type(self).model_fields.items()
            if not info.is_required() and info.default is None
        }
        for key in list(payload):
            if key in optional_aliases:
                payload[key] = blank_to_none(payload[key])
        return payload
