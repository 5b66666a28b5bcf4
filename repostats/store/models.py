"""Schemas for persisted line-count statistics."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LanguageStat(BaseModel):
    """One row of the line-counting table, kept verbatim as text."""

    language: str
    files: str
    blank: str
    comment: str
    code: str


class CacheRecord(BaseModel):
    """Cached measurement for one repository."""

    model_config = ConfigDict(populate_by_name=True)

    line_count: int = Field(0, alias="loc")
    language_stats: list[LanguageStat] = Field(default_factory=list, alias="pls")
    timestamp: str | None = None

    @field_validator("language_stats", mode="before")
    @classmethod
    def _null_stats(cls, value):
        return [] if value is None else value

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True)


class StatsSummary(BaseModel):
    """Line count and breakdown reported on stdout."""

    model_config = ConfigDict(populate_by_name=True)

    line_count: int = Field(alias="loc")
    language_stats: list[LanguageStat] = Field(default_factory=list, alias="pls")
