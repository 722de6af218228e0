"""Models for GPT integration."""
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from aislewise.domain.types import ParsedShoppingItem


class GPTConfig(BaseModel):
    """Configuration for GPT calls."""
    model: str = "gpt-4o-mini"
    temperature: float = Field(default=0.0, ge=0.0, le=2.0)
    max_retries: int = Field(default=3, ge=1, le=5)
    timeout: int = Field(default=30, ge=5, le=120)


class AutoCategorizeResult(BaseModel):
    """Location chosen by the model, by aisle and section name."""
    aisle_name: str
    section_name: Optional[str] = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    reasoning: str = ""

    @field_validator('aisle_name')
    @classmethod
    def aisle_name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("aisle_name cannot be empty")
        return v.strip()


class BulkImportResult(BaseModel):
    """Items extracted from a free-form list."""
    items: List[ParsedShoppingItem]
