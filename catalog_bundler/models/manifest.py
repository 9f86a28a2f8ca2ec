"""
Pydantic models for the manifest document shared by the catalog builder, the
presentation layer and the bundle assembler.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator

from catalog_bundler.utils.naming import category_of, split_path


def to_utc(value: datetime) -> datetime:
    """Normalises a datetime to UTC, treating naive values as already UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat_utc(value: datetime) -> str:
    """Formats a datetime as ISO-8601 UTC with millisecond precision ('...000Z')."""
    value = to_utc(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


class FileEntry(BaseModel):
    """One discoverable file in the catalog."""

    name: str = Field(min_length=1)
    path: str
    size: int = Field(ge=0)
    last_modified: datetime | None = Field(default=None, alias="lastModified")

    class Config:
        """Pydantic model configuration."""

        frozen = True
        populate_by_name = True

    @field_validator("last_modified")
    @classmethod
    def normalise_timestamp(cls, v: datetime | None) -> datetime | None:
        return to_utc(v) if v is not None else None

    @field_serializer("last_modified")
    def serialise_timestamp(self, v: datetime | None) -> str | None:
        return isoformat_utc(v) if v is not None else None

    @model_validator(mode="after")
    def validate_path(self) -> "FileEntry":
        """Ensures the path is '<category>/.../<name>'."""
        segments = split_path(self.path)
        if len(segments) < 2:
            raise ValueError(
                f"Path '{self.path}' must contain a category and a file name."
            )
        if segments[-1] != self.name:
            raise ValueError(
                f"Name '{self.name}' does not match the last segment of '{self.path}'."
            )
        return self

    @property
    def category(self) -> str:
        return category_of(self.path)


class Manifest(BaseModel):
    """The immutable catalog artifact produced by one builder run."""

    generated_at: datetime | None = Field(default=None, alias="generatedAt")
    categories: dict[str, list[FileEntry]] = Field(default_factory=dict)

    class Config:
        """Pydantic model configuration."""

        frozen = True
        populate_by_name = True

    @field_validator("generated_at")
    @classmethod
    def normalise_timestamp(cls, v: datetime | None) -> datetime | None:
        return to_utc(v) if v is not None else None

    @field_serializer("generated_at")
    def serialise_timestamp(self, v: datetime | None) -> str | None:
        return isoformat_utc(v) if v is not None else None

    @model_validator(mode="after")
    def validate_categories(self) -> "Manifest":
        """
        Every entry must be listed under the category its path derives to, and a
        path may appear only once in the whole manifest.
        """
        seen: set[str] = set()
        for category, entries in self.categories.items():
            for entry in entries:
                if entry.category != category:
                    raise ValueError(
                        f"Entry '{entry.path}' is listed under '{category}' but "
                        f"belongs to '{entry.category}'."
                    )
                if entry.path in seen:
                    raise ValueError(f"Duplicate manifest path '{entry.path}'.")
                seen.add(entry.path)
        return self

    @classmethod
    def empty(cls) -> "Manifest":
        """An empty catalog, used when no manifest can be obtained."""
        return cls(generated_at=None, categories={})

    @classmethod
    def from_json(cls, text: str | bytes) -> "Manifest":
        return cls.model_validate_json(text)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)

    def entries(self) -> list[FileEntry]:
        """All entries, flattened in category order then list order."""
        return [entry for entries in self.categories.values() for entry in entries]

    @property
    def file_count(self) -> int:
        return sum(len(entries) for entries in self.categories.values())
