"""FastAPI app evaluating declarative lazy collection pipelines and index lookups."""

import logging
from datetime import datetime

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from common import CollectionError, DuplicateIndexError, setup_logging
from models import (
    ErrorResponse, HealthResponse, IndexLookupRequest, IndexLookupResponse,
    PageRequest, PageResponse, PerformanceResponse, PipelineRequest,
    PipelineResponse, ServiceSettings, StatusResponse
)
from utils import (
    get_performance_summary,
    process_index_lookup,
    process_lazy_operations,
    process_pagination
)

settings = ServiceSettings.from_env()
logger = setup_logging(logging.getLevelName(settings.log_level))

app = FastAPI(
    title="Lazy Collections",
    description="Lazy, cacheable collection pipelines evaluated over JSON payloads",
    version="1.0.0"
)


def _check_source_size(size: int) -> None:
    if size > settings.max_source_items:
        raise HTTPException(
            status_code=413,
            detail=f"Source has {size} items, limit is {settings.max_source_items}"
        )


@app.get("/", response_model=StatusResponse)
async def root():
    """Basic service banner."""
    return StatusResponse(
        ok=True,
        message="Lazy collection service operational - Features: lazy pipelines, caching, secondary indexes",
        timestamp=datetime.now()
    )


@app.get("/health", response_model=HealthResponse)
async def health_check():
    return HealthResponse(status="healthy", settings=settings, timestamp=datetime.now())


@app.post("/pipeline/evaluate", response_model=PipelineResponse)
async def evaluate_pipeline(request: PipelineRequest) -> PipelineResponse:
    """
    Build a lazy pipeline over the request source, apply the operations in
    order and materialize the result.
    """
    _check_source_size(len(request.source))
    use_cache = settings.use_cache if request.use_cache is None else request.use_cache

    outcome = process_lazy_operations(
        request.source,
        [op.to_op() for op in request.operations],
        enable_caching=use_cache
    )

    return PipelineResponse(
        ok=True,
        result=outcome["result"],
        count=outcome["count"],
        operations_applied=outcome["operations_applied"],
        performance=outcome["performance"],
        timestamp=datetime.now()
    )


@app.post("/pipeline/page", response_model=PageResponse)
async def paginate_pipeline(request: PageRequest) -> PageResponse:
    """Return one page of the pipeline's values."""
    _check_source_size(len(request.source))

    outcome = process_pagination(
        request.source,
        request.page,
        request.page_size,
        [op.to_op() for op in request.operations]
    )

    return PageResponse(
        ok=True,
        page_data=outcome["page_data"],
        current_page=outcome["current_page"],
        page_size=outcome["page_size"],
        has_next_page=outcome["has_next_page"],
        has_previous_page=outcome["has_previous_page"],
        processing_time_ms=outcome["processing_time_ms"],
        timestamp=datetime.now()
    )


@app.post("/index/lookup", response_model=IndexLookupResponse)
async def index_lookup(request: IndexLookupRequest) -> IndexLookupResponse:
    """Index items by a unique field and look values up."""
    _check_source_size(len(request.items))

    outcome = process_index_lookup(request.items, request.index_field, request.keys, request.default)

    return IndexLookupResponse(
        ok=True,
        result=outcome["result"],
        found=outcome["found"],
        indexed_items=outcome["indexed_items"],
        processing_time_ms=outcome["processing_time_ms"],
        timestamp=datetime.now()
    )


@app.get("/metrics", response_model=PerformanceResponse)
async def metrics():
    """Aggregated evaluation metrics."""
    return PerformanceResponse(**get_performance_summary(), timestamp=datetime.now())


# Exception handlers for proper error responses
@app.exception_handler(DuplicateIndexError)
async def duplicate_index_handler(request: Request, exc: DuplicateIndexError):
    logger.error(f"Duplicate index on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=409,
        content=ErrorResponse(
            error=str(exc),
            error_code="DUPLICATE_INDEX",
            error_type=type(exc).__name__,
            timestamp=datetime.now()
        ).model_dump(mode="json")
    )


@app.exception_handler(CollectionError)
async def collection_error_handler(request: Request, exc: CollectionError):
    logger.error(f"Collection error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=str(exc),
            error_code="COLLECTION_ERROR",
            error_type=type(exc).__name__,
            timestamp=datetime.now()
        ).model_dump(mode="json")
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    logger.error(f"Invalid pipeline on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=str(exc),
            error_code="INVALID_PIPELINE",
            error_type=type(exc).__name__,
            timestamp=datetime.now()
        ).model_dump(mode="json")
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
