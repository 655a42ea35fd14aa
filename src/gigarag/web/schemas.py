from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional, List


class IndexRequest(BaseModel):
    root: Optional[str] = None


class IndexJobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    root: str
    collection: str
    config_fingerprint: Optional[str] = None
    status: str
    files: int = 0
    chunks: int = 0
    indexed: int = 0
    failed: int = 0
    duration_s: Optional[float] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)
    limit: Optional[int] = Field(default=None, ge=1, le=50)
    threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class SearchResult(BaseModel):
    file_path: str
    score: float
    type: str
    name: str
    start_line: int
    end_line: int
    content: str


class SearchResponse(BaseModel):
    results: List[SearchResult]
    no_results: bool
    threshold: float
    error: Optional[str] = None


class AnswerResponse(SearchResponse):
    answer: Optional[str] = None
    prompt_tokens: int = 0
    generation_error: Optional[str] = None


class CollectionResponse(BaseModel):
    name: str
    exists: bool
    points_count: int = 0
    dimension: Optional[int] = None
    distance: Optional[str] = None


class ClearResponse(BaseModel):
    name: str
    deleted: bool
