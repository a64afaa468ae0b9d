from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt

ExtractionMode = Literal["direct", "embed"]

METRIC_FIELDS = ("likes", "comments", "shares")


class MetricTriple(BaseModel):
    """Best-effort engagement counters for one page. ``None`` means not found."""

    model_config = ConfigDict(frozen=True)

    likes: Optional[NonNegativeInt] = None
    comments: Optional[NonNegativeInt] = None
    shares: Optional[NonNegativeInt] = None


class ExtractionInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str = ""
    markup: str = ""
    mode: ExtractionMode = "direct"


class PageSnapshot(BaseModel):
    """What the page fetcher hands over for a single URL."""

    model_config = ConfigDict(frozen=True)

    input_url: str
    scraped_url: str
    text: str = ""
    markup: str = ""


class TrackedPost(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    url: str


class PostRecord(BaseModel):
    id: int
    title: str
    url: str
    likes: Optional[NonNegativeInt] = None


class LikesTotals(BaseModel):
    likes: int = 0


class RunOutput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    updated_at: str = Field(alias="updatedAt")
    videos: List[PostRecord] = Field(default_factory=list)
    totals: LikesTotals = Field(default_factory=LikesTotals)

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class ScrapeRow(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    input_url: str = Field(alias="inputUrl")
    scraped_url: Optional[str] = Field(default=None, alias="scrapedUrl")
    likes: Optional[NonNegativeInt] = None
    comments: Optional[NonNegativeInt] = None
    shares: Optional[NonNegativeInt] = None
    error: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_json_dict(self) -> Dict[str, Any]:
        # Failed rows only carry the URL and the message.
        if self.is_error:
            return {"inputUrl": self.input_url, "error": self.error}
        return self.model_dump(by_alias=True, exclude={"error"})


class ScrapeTotals(BaseModel):
    likes: int = 0
    comments: int = 0
    shares: int = 0


class ScrapeReport(BaseModel):
    results: List[ScrapeRow] = Field(default_factory=list)
    totals: ScrapeTotals = Field(default_factory=ScrapeTotals)

    def to_json_dict(self) -> Dict[str, Any]:
        return {
            "results": [row.to_json_dict() for row in self.results],
            "totals": self.totals.model_dump(),
        }
