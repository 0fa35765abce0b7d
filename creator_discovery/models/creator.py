"""Creator view-model and result-set models."""
import math
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

Region = Literal["United States", "Europe", "Asia", "Middle East", "Global"]
Mode = Literal["ai", "all"]
SortField = Literal["match_score", "followers", "avg_views", "engagement"]
SortDirection = Literal["asc", "desc"]
ChangeType = Literal["positive", "negative"]
BuzzScoreRange = Literal["90%+", "80-90%", "70-80%", "60-70%", "Less than 60%"]

REGIONS: Tuple[str, ...] = ("United States", "Europe", "Asia", "Middle East", "Global")
BUZZ_SCORE_RANGES: Tuple[str, ...] = ("90%+", "80-90%", "70-80%", "60-70%", "Less than 60%")
DEFAULT_PAGE_SIZE = 24


class ParsedLocation(BaseModel):
    """Result of classifying a free-text location string."""

    city: Optional[str] = None
    country: str
    region: Region = "Global"
    is_global: bool = False


class SocialMediaLink(BaseModel):
    platform: str
    handle: str
    url: str


class Niche(BaseModel):
    name: str
    kind: Literal["primary", "secondary"]


class Creator(BaseModel):
    """Normalized creator record built fresh from a backend row."""

    model_config = {"frozen": True}

    id: str
    username: str = ""
    username_tag: str = ""
    bio: str = ""
    profile_pic: str = ""
    location: str = ""
    region: Region = "Global"
    email: str = ""
    social_media: List[SocialMediaLink] = Field(default_factory=list)
    niches: List[Niche] = Field(default_factory=list)
    hashtags: List[str] = Field(default_factory=list)
    thumbnails: List[str] = Field(default_factory=list)
    expanded_thumbnails: List[str] = Field(default_factory=list)
    share_urls: List[str] = Field(default_factory=list)
    expanded_share_urls: List[str] = Field(default_factory=list)

    followers: float = 0
    followers_change: float = 0
    followers_change_type: ChangeType = "positive"
    avg_views: float = 0
    avg_views_change: float = 0
    avg_views_change_type: ChangeType = "positive"
    engagement: float = 0
    engagement_change: float = 0
    engagement_change_type: ChangeType = "positive"
    avg_likes: float = 0
    avg_likes_change: float = 0
    avg_likes_change_type: ChangeType = "positive"
    avg_comments: float = 0
    avg_comments_change: float = 0
    avg_comments_change_type: ChangeType = "positive"

    match_score: Optional[int] = Field(default=None, ge=0, le=100)
    buzz_score: float = Field(default=0, ge=0, le=100)

    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class FilterSelection(BaseModel):
    """Structured filter selection coming from the UI."""

    niches: List[str] = Field(default_factory=list)
    platforms: List[str] = Field(default_factory=list)
    location_regions: List[Region] = Field(default_factory=list)
    buzz_score_ranges: List[BuzzScoreRange] = Field(default_factory=list)
    followers: Optional[Tuple[float, float]] = None
    engagement: Optional[Tuple[float, float]] = None
    avg_views: Optional[Tuple[float, float]] = None

    @field_validator("followers", "engagement", "avg_views")
    @classmethod
    def check_range(cls, value):
        if value is None:
            return value
        low, high = value
        if not (math.isfinite(low) and math.isfinite(high)):
            raise ValueError("range bounds must be finite")
        if low > high:
            raise ValueError(f"range lower bound {low} exceeds upper bound {high}")
        return value


class SortState(BaseModel):
    field: Optional[SortField] = None
    direction: SortDirection = "desc"

    def toggled(self, field: SortField) -> "SortState":
        """Flip direction when re-selecting the same field, else start at desc."""
        if self.field == field:
            return SortState(field=field, direction="asc" if self.direction == "desc" else "desc")
        return SortState(field=field, direction="desc")


class ResultPage(BaseModel):
    rows: List[Creator] = Field(default_factory=list)
    total_count: int = 0
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    @property
    def total_pages(self) -> int:
        if self.total_count <= 0:
            return 0
        return math.ceil(self.total_count / self.page_size)


class CreatorMetrics(BaseModel):
    total_creators: int = 0
    avg_followers: int = 0
    avg_views: int = 0
    avg_engagement: float = 0.0
    change_percentage: float = 0.0
    change_type: ChangeType = "positive"


class NicheOption(BaseModel):
    id: str
    name: str


class ViewState(BaseModel):
    """Persisted controller state restored on reload."""

    mode: Mode = "ai"
    filters: FilterSelection = Field(default_factory=FilterSelection)
    sort: SortState = Field(default_factory=SortState)
    page: int = Field(default=1, ge=1)
