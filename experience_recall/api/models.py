"""
Request and response models for FastAPI endpoints.
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator


class DateRangeModel(BaseModel):
    start: Optional[str] = None
    end: Optional[str] = None


class SearchRequest(BaseModel):
    """Request model for /search. Mirrors SearchQuery."""
    text: Optional[str] = Field(default=None, max_length=10000)
    types: Optional[List[str]] = None
    who: Optional[str] = None
    perspective: Optional[str] = None
    processing: Optional[str] = None
    created: Optional[Union[str, DateRangeModel]] = None
    occurred: Optional[Union[str, DateRangeModel]] = None
    qualities: Optional[Dict[str, Any]] = None
    related_to: Optional[str] = None
    group_by: Optional[Literal["day", "week", "month", "experiencer"]] = None
    sort: Optional[Literal["relevance", "created", "updated"]] = None
    limit: Optional[int] = Field(default=None, ge=0, le=1000)
    offset: int = Field(default=0, ge=0)
    timeout: Optional[float] = Field(default=None, gt=0)
    include_full_content: bool = False
    vector_threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    @field_validator('text')
    @classmethod
    def strip_text(cls, v):
        if v is None:
            return v
        return v.strip() or None

    def to_query_dict(self) -> Dict[str, Any]:
        data = self.model_dump(exclude_none=True)
        for key in ('created', 'occurred'):
            value = getattr(self, key)
            if isinstance(value, DateRangeModel):
                data[key] = value.model_dump(exclude_none=True)
        return data


class ResultItem(BaseModel):
    id: str
    snippet: str
    relevance_score: float = Field(..., ge=0.0, le=1.0)
    breakdown: Dict[str, Optional[float]]
    created: str
    who: List[str]


class GroupItem(BaseModel):
    key: str
    count: int
    results: List[ResultItem]


class SearchResponseModel(BaseModel):
    """Response model for /search."""
    results: List[ResultItem]
    total: int
    groups: Optional[List[GroupItem]] = None
    group_counts: Dict[str, int] = Field(default_factory=dict)
    degraded: List[str] = Field(default_factory=list)
    request_id: str


class FilterValidationRequest(BaseModel):
    qualities: Any


class FilterValidationResponse(BaseModel):
    valid: bool
    errors: List[str]
    description: Optional[str] = None


class HealthResponse(BaseModel):
    """Response model for /health endpoint."""
    status: str
    provider: Optional[str] = None
    dimensions: Optional[int] = None
    provider_circuit: Optional[str] = None
    store: Optional[str] = None
    store_available: bool = False
    records: int = 0
