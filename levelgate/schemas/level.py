# levelgate/schemas/level.py
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LevelModel(BaseModel):
    id: str
    name: str
    difficulty_level: int = Field(..., ge=1)
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("name")
    def name_not_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("name must not be empty")
        return v


class LevelCatalogueModel(BaseModel):
    """Full level catalogue import: list of levels."""

    levels: List[LevelModel]


class LevelImportResponse(BaseModel):
    created: int
    updated: int


class AccessibleLevels(BaseModel):
    levels: List[str]
