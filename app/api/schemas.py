# app/api/schemas.py
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class SummarizeRequestModel(BaseModel):
    model_config = ConfigDict(protected_namespaces=(), populate_by_name=True)

    # blank text is rejected by the service so it maps to the same error as the
    # original endpoint rather than a schema error
    text: Optional[str] = Field(default=None, description="Text to summarize.")
    preset: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("preset", "profile"),
        description="Named summary preset.",
    )

    @field_validator("text", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> Optional[str]:
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, (int, float)):
            return str(value)
        raise ValueError("`text` must be a string.")


class BatchItemModel(BaseModel):
    id: Optional[str] = None
    text: Optional[str] = None

    @field_validator("id", "text", mode="before")
    @classmethod
    def coerce_scalar(cls, value: Any) -> Optional[str]:
        # unusable values are dropped later instead of failing the whole batch
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return None


class BatchSummarizeRequestModel(BaseModel):
    model_config = ConfigDict(protected_namespaces=(), populate_by_name=True)

    items: List[BatchItemModel] = Field(default_factory=list)
    preset: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("preset", "profile")
    )

    @field_validator("items", mode="before")
    @classmethod
    def drop_non_objects(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [item for item in value if isinstance(item, dict)]
        return value


class SummaryResponseModel(BaseModel):
    summary: str
    word_count: int
    line_count: int
    passes: int
    below_minimum: bool

    @classmethod
    def from_domain(cls, summary) -> "SummaryResponseModel":
        return cls(
            summary=summary.text,
            word_count=summary.word_count,
            line_count=summary.line_count,
            passes=summary.passes,
            below_minimum=summary.below_minimum,
        )


class BatchSummaryResponseModel(BaseModel):
    summaries: Dict[str, str]


class PresetModel(BaseModel):
    id: str
    title: str
    version: str
    description: str
