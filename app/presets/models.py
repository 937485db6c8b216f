"""Summary preset models."""

from typing import Literal, Optional, Tuple
import re

from pydantic import BaseModel, Field, field_validator, model_validator


class Preset(BaseModel):
    """
    Named bundle of summary tunables.

    Unset fields fall back to the application settings.
    """

    id: str = Field(..., pattern=r"^[a-z0-9][a-z0-9_-]*$", description="Unique preset identifier")
    version: str = Field(default="1.0.0", description="Semantic version")
    title: str = Field(..., description="Human-readable title")
    description: str = Field(..., description="Preset description")
    shape: Optional[Literal["paragraph", "lines"]] = Field(
        default=None, description="Output shape; 'lines' requires a line count"
    )
    line_count: Optional[int] = Field(default=None, ge=1, le=50)
    min_words: Optional[int] = Field(default=None, ge=1)
    max_words: Optional[int] = Field(default=None, ge=1)
    expand_retries: Optional[int] = Field(default=None, ge=0, le=5)
    max_tokens: Optional[int] = Field(default=None, ge=16, le=4000)
    model: Optional[str] = Field(default=None, min_length=1)

    @field_validator("version")
    @classmethod
    def validate_semver(cls, v: str) -> str:
        """Validate semantic versioning format."""
        semver_pattern = r"^\d+\.\d+\.\d+(?:-[a-zA-Z0-9.-]+)?(?:\+[a-zA-Z0-9.-]+)?$"
        if not re.match(semver_pattern, v):
            raise ValueError(f"Invalid semantic version: {v}")
        return v

    @model_validator(mode="after")
    def check_consistency(self) -> "Preset":
        if (
            self.min_words is not None
            and self.max_words is not None
            and self.min_words > self.max_words
        ):
            raise ValueError("min_words must not exceed max_words")
        if self.shape == "paragraph" and self.line_count is not None:
            raise ValueError("line_count cannot be combined with shape 'paragraph'")
        if self.shape == "lines" and self.line_count is None:
            raise ValueError("shape 'lines' requires line_count")
        return self

    def word_window(self, base_min: int, base_max: int) -> Tuple[int, int]:
        """Word window after overlaying this preset on ``base_min``..``base_max``."""
        min_words = self.min_words if self.min_words is not None else base_min
        max_words = self.max_words if self.max_words is not None else base_max
        return min_words, max_words


class PresetSummary(BaseModel):
    """Summary information about a preset for discovery."""

    id: str
    title: str
    version: str
    description: str
