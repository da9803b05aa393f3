"""
Pydantic models for visual-scout results and API requests/responses
"""
from typing import List, Optional

from pydantic import BaseModel, Field


class ProductResult(BaseModel):
    """One supplier listing surfaced by a search.

    ``similarity_score`` is a rank placeholder derived from the card's
    position on the results page, not a measured visual similarity.
    """
    id: str
    name: str = Field(..., min_length=1)
    link: str = ""
    image_url: str = ""
    price_range: str
    moq: Optional[str] = None
    source: str
    similarity_score: float
    description: Optional[str] = None
    source_label: Optional[str] = None


# Request Models
class KeywordSearchRequest(BaseModel):
    """Keyword search through the static scraper"""
    query: str = Field(..., min_length=1, max_length=200)


# Response Models
class VisualSearchResponse(BaseModel):
    """Visual search outcome; failures come back as an empty result list"""
    success: bool
    results: List[ProductResult] = []
    count: int = 0
    error: Optional[str] = None
    error_code: Optional[str] = None
    elapsed_ms: int = 0


class KeywordSearchResponse(BaseModel):
    """Keyword search outcome"""
    success: bool
    query: str
    results: List[ProductResult] = []
    count: int = 0


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    service: str
    version: str
    browser_connected: bool
