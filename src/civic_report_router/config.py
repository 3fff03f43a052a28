"""Lexicon file schema and validation using pydantic."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class LexiconEntityConfig(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1)
    triggers: List[str] = Field(default_factory=list)

    @field_validator("triggers")
    @classmethod
    def drop_blank_triggers(cls, value: List[str]) -> List[str]:
        return [t for t in (v.strip() for v in value) if t]


class LexiconConfig(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    fallback_entity: str | None = None
    entities: List[LexiconEntityConfig] = Field(min_length=1)

    @model_validator(mode="after")
    def validate_entities(self) -> "LexiconConfig":
        names = [e.name for e in self.entities]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate lexicon entities: {', '.join(duplicates)}")

        if self.fallback_entity:
            if self.fallback_entity not in names:
                raise ValueError(f"Fallback entity {self.fallback_entity!r} is not declared in the lexicon")
            return self

        catch_all = [e.name for e in self.entities if not e.triggers]
        if len(catch_all) != 1:
            raise ValueError(
                "Lexicon needs exactly one entity without triggers (the fallback) "
                "or an explicit fallback_entity."
            )
        return self
