"""Request/response models for the discovery HTTP adapter."""
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from creator_discovery.models.creator import (
    Creator,
    CreatorMetrics,
    FilterSelection,
    Mode,
    NicheOption,
    SortField,
    SortState,
    ViewState,
)


class FiltersRequest(BaseModel):
    filters: FilterSelection = Field(default_factory=FilterSelection)
    mode: Optional[Mode] = Field(default=None, description="Switch mode together with the filters")


class ModeRequest(BaseModel):
    mode: Mode


class SortRequest(BaseModel):
    field: SortField


class PageRequest(BaseModel):
    page: Optional[int] = Field(default=None, description="Target page; out-of-range values are ignored")
    step: Optional[Literal["next", "previous"]] = Field(default=None)


class CreatorsResponse(BaseModel):
    success: bool = True
    mode: Mode
    sort: SortState
    rows: List[Creator]
    total_count: int
    total_formatted: str
    page: int
    page_size: int
    total_pages: int
    page_window: List[int]
    showing_start: int
    showing_end: int


class MetricsResponse(BaseModel):
    success: bool = True
    metrics: CreatorMetrics
    total_creators_formatted: str
    avg_followers_formatted: str
    avg_views_formatted: str


class StateResponse(BaseModel):
    success: bool = True
    state: ViewState
    loading: bool = False
    last_error: Optional[str] = None


class NichesResponse(BaseModel):
    success: bool = True
    niches: List[NicheOption]


class RegionsResponse(BaseModel):
    success: bool = True
    regions: List[str]


class ClassifyRequest(BaseModel):
    locations: List[str] = Field(..., min_length=1, max_length=500, description="Raw location strings")


class ClassifiedLocation(BaseModel):
    raw: str
    city: Optional[str] = None
    country: str
    region: str
    is_global: bool
    display: str


class ClassifyResponse(BaseModel):
    success: bool = True
    results: List[ClassifiedLocation]
    count: int
