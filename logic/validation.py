"""Pydantic schemas and helpers for validating AI payloads and API input."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from logic.exceptions import ExternalResponseInvalid
from models.taxonomy import validate_category, validate_season


class ProposedCombination(BaseModel):
    """One combination as proposed by the AI stylist.

    Only the shape is enforced here; membership of ``item_ids`` in the
    capsule is checked by the sanitizer. An entry that is not a whole number
    can never name an item, so it is dropped instead of failing the payload.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str
    item_ids: List[int] = Field(alias="itemIds")
    occasion: str
    season: str
    description: str

    @field_validator("item_ids", mode="before")
    @classmethod
    def _keep_integral_ids(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        return [
            int(entry)
            for entry in value
            if isinstance(entry, (int, float)) and not isinstance(entry, bool) and float(entry).is_integer()
        ]


class SuggestionPayload(BaseModel):
    """Top-level envelope the AI stylist must return."""

    combinations: List[ProposedCombination]


def parse_suggestion_payload(raw: Any) -> SuggestionPayload:
    """Parse the raw text returned by the AI stylist.

    Raises :class:`ExternalResponseInvalid` when the payload is absent, is not
    text, or does not match :class:`SuggestionPayload`.
    """

    if not raw or not isinstance(raw, str):
        raise ExternalResponseInvalid("AI did not return a valid response")
    try:
        return SuggestionPayload.model_validate_json(raw)
    except ValidationError as exc:
        raise ExternalResponseInvalid(
            f"AI response does not match the combinations schema: {exc.error_count()} error(s)"
        ) from exc


def _non_blank(value: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError("name cannot be blank")
    return stripped


class WardrobeItemCreate(BaseModel):
    """Input contract for adding a wardrobe item."""

    name: str = Field(min_length=1)
    category: str
    color: Optional[str] = None
    brand: Optional[str] = None
    season: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return _non_blank(value)

    @field_validator("category")
    @classmethod
    def _validate_category(cls, value: str) -> str:
        return validate_category(value)

    @field_validator("season")
    @classmethod
    def _validate_season(cls, value: Optional[str]) -> Optional[str]:
        return validate_season(value)


class CapsuleCreate(BaseModel):
    """Input contract for creating a capsule."""

    name: str = Field(min_length=1)
    description: Optional[str] = None
    occasion: Optional[str] = None
    season: Optional[str] = None
    color_palette: List[str] = Field(default_factory=list, alias="colorPalette")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return _non_blank(value)


class CapsuleItemsAdd(BaseModel):
    """Input contract for linking wardrobe items to a capsule."""

    item_ids: List[int] = Field(alias="itemIds", min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class GenerationResponse(BaseModel):
    """Shape returned by both generation endpoints."""

    success: bool = True
    count: int
    proposed: int
    dropped: int
    combinations: List[Dict[str, Any]]


__all__ = [
    "ProposedCombination",
    "SuggestionPayload",
    "parse_suggestion_payload",
    "WardrobeItemCreate",
    "CapsuleCreate",
    "CapsuleItemsAdd",
    "GenerationResponse",
]
