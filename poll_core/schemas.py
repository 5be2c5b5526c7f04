from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field


TBaseSchema = TypeVar("TBaseSchema", bound="BaseSchema")


class BaseSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> str:
        return self.model_dump_json()

    def to_dict(self) -> dict[str, object]:
        return self.model_dump()

    @classmethod
    def from_json(cls: type[TBaseSchema], data: str) -> TBaseSchema:
        return cls.model_validate_json(data)

    @classmethod
    def from_dict(cls: type[TBaseSchema], data: Mapping[str, object]) -> TBaseSchema:
        return cls.model_validate(data)


def slugify(name: str) -> str:
    """Derive the candidate slug: lowercase, periods dropped, spaces to underscores."""
    return name.lower().replace(".", "").replace(" ", "_")


class VoteDirection(str, Enum):
    HOT = "hot"
    NOT = "not"


class ImageThumbnail(BaseSchema):
    url: str = ""
    width: int = 0
    height: int = 0


class Thumbnails(BaseSchema):
    small: ImageThumbnail = Field(default_factory=ImageThumbnail)
    large: ImageThumbnail = Field(default_factory=ImageThumbnail)
    full: ImageThumbnail = Field(default_factory=ImageThumbnail)


class CandidateImage(BaseSchema):
    url: str = ""
    filename: str = ""
    size: int = 0
    content_type: str = Field(default="", alias="type")
    thumbnails: Thumbnails = Field(default_factory=Thumbnails)


class CandidateDetails(BaseSchema):
    """Descriptive payload of a candidate, keyed by the upstream table's column names.

    Replaced wholesale on every merge; never carries vote counts.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = Field(default="", alias="Name")
    office: str = Field(default="", alias="Office")
    party: str = Field(default="", alias="Party")
    quote: str | None = Field(default=None, alias="Quote")
    years_in_office: str | None = Field(default=None, alias="Years in Office")
    term_year: int | None = Field(default=None, alias="Year took Office")
    term_length: int | None = Field(default=None, alias="Number in Office")
    images: list[CandidateImage] = Field(default_factory=list, alias="Attachments")

    @property
    def slug(self) -> str:
        return slugify(self.name)

    @property
    def image_url(self) -> str:
        if not self.images:
            return ""
        return self.images[0].thumbnails.large.url


class CandidateSummary(BaseSchema):
    name: str
    slug: str
    score: int
    image_url: str


class Candidate(BaseSchema):
    slug: str = Field(min_length=1)
    details: CandidateDetails = Field(default_factory=CandidateDetails)
    hot: int = Field(default=0, ge=0)
    not_: int = Field(default=0, ge=0, alias="not")

    @property
    def name(self) -> str:
        return self.details.name

    @property
    def score(self) -> int:
        return self.hot - self.not_

    def summary(self) -> CandidateSummary:
        return CandidateSummary(
            name=self.details.name,
            slug=self.slug,
            score=self.score,
            image_url=self.details.image_url,
        )


class DataSourceConfig(BaseSchema):
    source_id: str = "airtable"
    source_type: Literal["airtable", "static"] = "airtable"
    data_load_uri: str = ""
    api_key: str | None = None
    timeout_seconds: float = Field(default=10.0, gt=0)
    max_retries: int = Field(default=3, ge=0)
    max_response_bytes: int = Field(default=250_000, gt=0)
    static_records: list[dict[str, object]] = Field(default_factory=list)
