from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

GenerationMode = Literal["grounded", "preview"]
VersionKind = Literal["draft", "preview", "submitted"]
VersionSlot = Literal["draft", "submitted"]
MappingItemKind = Literal["responsibility", "requirement"]

MAX_TONE_LENGTH = 40
MAX_EMPHASIS_LENGTH = 200
MAX_KEYWORD_LENGTH = 40
MAX_KEYWORDS = 20
MAX_ITEM_TEXT_LENGTH = 200
MAX_BULLETS_PER_ITEM = 10


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MappingItem(CamelModel):
    item_key: str = Field(min_length=1)
    kind: MappingItemKind
    text: str = Field(min_length=1, max_length=MAX_ITEM_TEXT_LENGTH)
    bullet_ids: list[str] = Field(default_factory=list, max_length=MAX_BULLETS_PER_ITEM)
    uncovered: bool = False


class ConfirmedMapping(CamelModel):
    version: Literal[1] = 1
    confirmed_at: str
    items: list[MappingItem] = Field(default_factory=list)


class GenerationConstraints(CamelModel):
    tone: str | None = Field(default=None, max_length=MAX_TONE_LENGTH)
    emphasis: str | None = Field(default=None, max_length=MAX_EMPHASIS_LENGTH)
    keywords_include: list[str] = Field(default_factory=list)
    keywords_avoid: list[str] = Field(default_factory=list)

    @field_validator("tone", "emphasis", mode="before")
    @classmethod
    def strip_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("keywords_include", "keywords_avoid", mode="before")
    @classmethod
    def normalize_keywords(cls, value: Any) -> Any:
        if value is None:
            return []
        if not isinstance(value, list):
            return value
        if len(value) > MAX_KEYWORDS:
            raise ValueError(f"at most {MAX_KEYWORDS} keywords are allowed")

        keywords: list[str] = []
        for raw in value:
            if not isinstance(raw, str):
                raise ValueError("keywords must be strings")
            keyword = raw.strip()
            if len(keyword) > MAX_KEYWORD_LENGTH:
                raise ValueError(f"keywords cannot exceed {MAX_KEYWORD_LENGTH} characters")
            if keyword:
                keywords.append(keyword)
        return keywords

    def is_empty(self) -> bool:
        return not (self.tone or self.emphasis or self.keywords_include or self.keywords_avoid)


class ApplicationSnapshot(BaseModel):
    id: str
    owner_id: str
    company: str = ""
    role: str = ""
    jd_snapshot: str | None = None
    confirmed_mapping: ConfirmedMapping | None = None


class EvidenceRecord(BaseModel):
    id: str
    title: str | None = None
    text: str


class ModelResponse(BaseModel):
    content: str
    model: str = ""
    raw: dict[str, Any] = Field(default_factory=dict)
