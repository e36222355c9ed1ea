"""
Value objects produced by AI backends.

AiAnalysisResult is validated straight from provider JSON, so field
validators are lenient about casing and missing optional blocks but strict
about the enumerations the rest of the pipeline branches on.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Sentiment = Literal["positive", "neutral", "negative", "unknown"]
FactCheckVerdict = Literal["verified", "partially_true", "false", "unverified", "opinion"]


class ExtractedEntities(BaseModel):
    """Named entities found in a text."""

    organizations: list[str] = Field(default_factory=list)
    people: list[str] = Field(default_factory=list)
    tickers: list[str] = Field(default_factory=list)
    locations: list[str] = Field(default_factory=list)


class FactCheck(BaseModel):
    """Fact-check verdict for a text."""

    verdict: FactCheckVerdict
    score: float = Field(..., ge=0.0, le=1.0, description="Confidence in the verdict")
    explanation: str = ""
    sources: list[str] = Field(default_factory=list, description="Supporting URLs")


class AiAnalysisResult(BaseModel):
    """Structured analysis attached to a content record."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    summary: str = Field(..., min_length=1)
    sentiment: Sentiment = "unknown"
    keywords: list[str] = Field(default_factory=list)
    entities: ExtractedEntities | None = None
    category: str | None = None
    language: str | None = None
    fact_check: FactCheck | None = Field(default=None, alias="factCheck")

    @field_validator("sentiment", mode="before")
    @classmethod
    def normalize_sentiment(cls, value: object) -> object:
        """Lower-case sentiment labels; anything unrecognized becomes unknown."""
        if not isinstance(value, str):
            return "unknown"
        value = value.strip().lower()
        if value not in ("positive", "neutral", "negative", "unknown"):
            return "unknown"
        return value

    @field_validator("keywords", mode="before")
    @classmethod
    def drop_blank_keywords(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, list):
            return [str(k).strip().lower() for k in value if str(k).strip()]
        return value

    def to_json_dict(self) -> dict:
        """Serialize for JSONB storage using the camelCase factCheck key."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class EmbeddingResult(BaseModel):
    """A fixed-dimension embedding vector and the model that produced it."""

    embedding: list[float]
    model: str
    dimensions: int = Field(..., gt=0)

    @model_validator(mode="after")
    def check_dimensions(self) -> "EmbeddingResult":
        if len(self.embedding) != self.dimensions:
            raise ValueError(
                f"Embedding has {len(self.embedding)} values, expected {self.dimensions}"
            )
        return self
