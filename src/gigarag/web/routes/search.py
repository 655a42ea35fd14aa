"""Search and answer routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool

from ...search import QueryResult
from ...storage import CollectionError
from ..schemas import (
    AnswerResponse,
    ClearResponse,
    CollectionResponse,
    SearchRequest,
    SearchResponse,
    SearchResult,
)
from ..services import Services, get_services

logger = logging.getLogger(__name__)

router = APIRouter()


def _results(result: QueryResult):
    return [
        SearchResult(
            file_path=hit.file_path,
            score=hit.score,
            type=hit.payload.get("type", "file"),
            name=hit.payload.get("name", ""),
            start_line=hit.payload.get("startLine", 1),
            end_line=hit.payload.get("endLine", 1),
            content=hit.content,
        )
        for hit in result.matches
    ]


@router.post("/search", response_model=SearchResponse)
async def search(request: SearchRequest, services: Services = Depends(get_services)):
    engine = services.engine()
    result = await run_in_threadpool(
        engine.query, request.query, request.limit, request.threshold, False
    )
    return SearchResponse(
        results=_results(result),
        no_results=result.no_results,
        threshold=result.threshold,
        error=result.error,
    )


@router.post("/answer", response_model=AnswerResponse)
async def answer(request: SearchRequest, services: Services = Depends(get_services)):
    engine = services.engine()
    result = await run_in_threadpool(
        engine.query, request.query, request.limit, request.threshold, True
    )
    return AnswerResponse(
        results=_results(result),
        no_results=result.no_results,
        threshold=result.threshold,
        error=result.error,
        answer=result.answer,
        prompt_tokens=result.prompt_tokens,
        generation_error=result.generation_error,
    )


@router.get("/collection", response_model=CollectionResponse)
async def collection(services: Services = Depends(get_services)):
    info = services.store.get_collection_info()
    if info is None:
        return CollectionResponse(name=services.store.collection_name, exists=False)
    return CollectionResponse(
        name=info.name,
        exists=True,
        points_count=info.points_count,
        dimension=info.dimension,
        distance=info.distance,
    )


@router.delete("/collection", response_model=ClearResponse)
async def clear_collection(services: Services = Depends(get_services)):
    """Delete the collection; a missing collection is not an error."""
    try:
        deleted = await run_in_threadpool(services.store.clear_collection)
    except CollectionError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    logger.info(f"Clear collection '{services.store.collection_name}': deleted={deleted}")
    return ClearResponse(name=services.store.collection_name, deleted=deleted)
