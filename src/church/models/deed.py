"""Pydantic models for deed events."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, JsonValue

from ..hashing import CANONICAL_FIELDS, event_digest


class DeedCategory(str, Enum):
    """Recognized deed categories.

    Anything outside this set classifies as UNRECOGNIZED and is ignored
    by scoring.
    """

    ECOLOGICAL_SUSTAINABILITY = "ecological_sustainability"
    HOMELESSNESS_RELIEF = "homelessness_relief"
    MATH_SCIENCE_EDUCATION = "math_science_education"
    OPEN_SOURCE_CONTRIBUTION = "open_source_contribution"
    FORGIVENESS = "forgiveness"
    UNRECOGNIZED = "unrecognized"

    @classmethod
    def parse(cls, label: str) -> "DeedCategory":
        try:
            category = cls(label.strip().lower())
        except ValueError:
            return cls.UNRECOGNIZED
        return category


class HarmFlag(str, Enum):
    """Ethics flags that count as harm."""

    LIFE_HARM = "life_harm"
    PREDATORY = "predatory"
    POLLUTION = "pollution"
    UNFAIR_DRAIN = "unfair_drain"
    COERCION = "coercion"


_HARM_FLAG_VALUES = {flag.value for flag in HarmFlag}


class DeedEvent(BaseModel):
    """A single hash-chained deed record.

    Immutable once appended. self_hash commits to every other field,
    including prev_hash, so rewriting any earlier event breaks the chain.
    """

    event_id: str = Field(description="Unique event identifier (uuid4)")
    timestamp: int = Field(ge=0, description="Seconds since epoch, caller-supplied")
    prev_hash: str = Field(description="self_hash of the previous event, or the genesis sentinel")
    self_hash: str = Field(default="", description="SHA-256 of the canonical encoding")
    actor_id: str = Field(description="Acting party")
    target_ids: list[str] = Field(default_factory=list, description="Affected parties, ordered")
    deed_type: str = Field(description="Category tag (open vocabulary)")
    tags: list[str] = Field(default_factory=list, description="Free-form labels")
    context_json: dict[str, JsonValue] = Field(default_factory=dict, description="Opaque JSON payload")
    ethics_flags: list[str] = Field(default_factory=list, description="Ethical review outcomes")
    life_harm_flag: bool = Field(default=False, description="True if the deed caused harm")

    model_config = {"frozen": True}

    def canonical_fields(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in CANONICAL_FIELDS}

    def compute_self_hash(self) -> str:
        return event_digest(self.canonical_fields())

    def sealed(self) -> "DeedEvent":
        """Return a copy with self_hash filled from the current content."""
        return self.model_copy(update={"self_hash": self.compute_self_hash()})

    @property
    def category(self) -> DeedCategory:
        """Classify by deed_type first, then by tags in order."""
        for label in (self.deed_type, *self.tags):
            category = DeedCategory.parse(label)
            if category is not DeedCategory.UNRECOGNIZED:
                return category
        return DeedCategory.UNRECOGNIZED

    @property
    def harm_flags(self) -> list[HarmFlag]:
        return [HarmFlag(flag) for flag in self.ethics_flags if flag in _HARM_FLAG_VALUES]

    @property
    def is_harmful(self) -> bool:
        return self.life_harm_flag or bool(self.harm_flags)

    def involves(self, actor_id: str) -> bool:
        return self.actor_id == actor_id or actor_id in self.target_ids
