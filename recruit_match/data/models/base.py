"""
Base model classes for recruit-match entity profiles.

Profiles are read-only views over records served by the data services
(REST payloads or MongoDB documents). Only the fields that feed the
matchable text are declared; everything else is ignored.
"""

from typing import Any, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from recruit_match.utils.constants import TEXT_SEPARATOR


def join_text(*parts: Optional[str]) -> str:
    """Join the non-empty parts of an entity into one matchable text."""
    cleaned = [p.strip() for p in parts if p and p.strip()]
    return TEXT_SEPARATOR.join(cleaned)


def join_list(values: Optional[list[str]]) -> str:
    """Render a list field (e.g. skills) as comma separated text."""
    if not values:
        return ""
    return ", ".join(v.strip() for v in values if v and v.strip())


class EntityProfile(BaseModel):
    """
    Base model for profiles consumed from the data services.

    Accepts both snake_case and the camelCase keys used by the REST API,
    and normalizes MongoDB ``_id`` values to strings.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
        frozen=True,
    )

    id: Optional[str] = None
    mongo_id: Optional[str] = Field(default=None, alias="_id")

    @field_validator("id", "mongo_id", mode="before")
    @classmethod
    def coerce_identifier(cls, v: Any) -> Optional[str]:
        """Convert ObjectId, extended-JSON and numeric identifiers to strings."""
        if v is None:
            return None
        if isinstance(v, dict) and "$oid" in v:
            v = v["$oid"]
        if isinstance(v, ObjectId):
            return str(v)
        return str(v) if str(v).strip() else None

    def fallback_id(self) -> Optional[str]:
        """Natural key used when the record carries no identifier."""
        return None

    @property
    def entity_id(self) -> Optional[str]:
        """Stable identifier: ``id``, then ``_id``, then the natural key."""
        return self.id or self.mongo_id or self.fallback_id()

    def matchable_text(self) -> str:
        """Deterministic text derived from the matchable fields."""
        raise NotImplementedError
