"""
Pydantic models for the lazy collection service: settings, pipeline requests
and responses, index lookups and error envelopes.
"""

import logging
import os
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ServiceSettings(BaseModel):
    """Service configuration, overridable through LAZY_COLLECTIONS_* variables"""
    use_cache: bool = Field(
        False,
        description="Cache pipeline results unless a request says otherwise"
    )
    max_source_items: int = Field(
        10_000,
        description="Largest accepted source payload",
        ge=1
    )
    log_level: str = Field(
        "INFO",
        description="Log level for the lazy_collections logger"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level is a known logging level name"""
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "ServiceSettings":
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            raw = environ.get(f"LAZY_COLLECTIONS_{name.upper()}")
            if raw is not None:
                values[name] = raw
        return cls(**values)


class OperationType(str, Enum):
    """Declarative pipeline operations"""
    FILTER = "filter"
    MAP = "map"
    SKIP = "skip"
    TAKE = "take"
    CHUNK = "chunk"
    REVERSE = "reverse"
    KEYS = "keys"
    VALUES = "values"
    KEY_BY = "key_by"
    GROUP_BY = "group_by"


class PipelineOperation(BaseModel):
    """One step of a declarative pipeline"""
    type: OperationType = Field(..., description="Operation to apply")
    field: Optional[str] = Field(
        None,
        description="Item field used by filter, map, key_by and group_by"
    )
    equals: Optional[Any] = Field(
        None,
        description="Value the item (or its field) must equal, for filter"
    )
    count: Optional[int] = Field(
        None,
        description="Number of items for skip and take",
        ge=0
    )
    size: Optional[int] = Field(
        None,
        description="Chunk size",
        ge=1
    )

    @model_validator(mode='after')
    def check_arguments(self):
        """Validate each operation carries the arguments it needs"""
        if self.type in (OperationType.SKIP, OperationType.TAKE) and self.count is None:
            raise ValueError(f"'{self.type.value}' requires 'count'")
        if self.type == OperationType.CHUNK and self.size is None:
            raise ValueError("'chunk' requires 'size'")
        if self.type in (OperationType.MAP, OperationType.KEY_BY, OperationType.GROUP_BY) and not self.field:
            raise ValueError(f"'{self.type.value}' requires 'field'")
        return self

    def to_op(self) -> Dict[str, Any]:
        """Plain dict form; 'equals' is only present when it was given"""
        op = self.model_dump(exclude_unset=True, mode='json')
        op["type"] = self.type.value
        return op


class PipelineRequest(BaseModel):
    """Request to evaluate a pipeline over a JSON source"""
    source: Union[List[Any], Dict[str, Any]] = Field(
        ...,
        description="Items to process; objects keep their keys"
    )
    operations: List[PipelineOperation] = Field(
        default_factory=list,
        description="Operations applied in order"
    )
    use_cache: Optional[bool] = Field(
        None,
        description="Cache the evaluated pipeline; defaults to the service setting"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "source": [{"team": "a", "score": 3}, {"team": "b", "score": 5}],
                "operations": [
                    {"type": "filter", "field": "score"},
                    {"type": "group_by", "field": "team"}
                ],
                "use_cache": True
            }
        }
    )


class PipelinePerformance(BaseModel):
    """Timing and size information for one evaluation"""
    processing_time_ms: float = Field(..., description="Processing time in milliseconds", ge=0)
    input_size: int = Field(..., description="Number of source items", ge=0)
    output_size: int = Field(..., description="Number of result entries", ge=0)
    cached: bool = Field(..., description="Whether the pipeline was cached")


class PipelineResponse(BaseModel):
    """Evaluated pipeline"""
    ok: bool = Field(True, description="Request success status")
    result: Dict[Any, Any] = Field(..., description="Materialized result keyed as produced")
    count: int = Field(..., description="Number of produced items", ge=0)
    operations_applied: List[str] = Field(..., description="Operation names in order")
    performance: PipelinePerformance = Field(..., description="Timing information")
    timestamp: datetime = Field(..., description="Evaluation timestamp")


class PageRequest(BaseModel):
    """Request for one page of a pipeline's values"""
    source: Union[List[Any], Dict[str, Any]] = Field(..., description="Items to paginate")
    operations: List[PipelineOperation] = Field(default_factory=list)
    page: int = Field(1, description="Page number, 1-indexed", ge=1)
    page_size: int = Field(10, description="Items per page", ge=1)


class PageResponse(BaseModel):
    """One page of values"""
    ok: bool = Field(True)
    page_data: List[Any] = Field(..., description="Values on the page")
    current_page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    has_next_page: bool
    has_previous_page: bool
    processing_time_ms: float = Field(..., ge=0)
    timestamp: datetime


class IndexLookupRequest(BaseModel):
    """Index items by one field and look values up"""
    items: List[Dict[str, Any]] = Field(..., description="Items to index")
    index_field: str = Field(..., description="Field whose values form the unique index")
    keys: Union[int, str, List[Union[int, str]]] = Field(
        ...,
        description="Value or list of values to look up"
    )
    default: Optional[Any] = Field(None, description="Returned when a single value is missing")

    @field_validator('index_field')
    @classmethod
    def validate_index_field(cls, v):
        """Validate index field is not empty"""
        if not v or not v.strip():
            raise ValueError("Index field cannot be empty")
        return v.strip()


class IndexLookupResponse(BaseModel):
    """Index lookup result"""
    ok: bool = Field(True)
    result: Any = Field(..., description="Found item, list of items or the default")
    found: int = Field(..., description="Number of items found", ge=0)
    indexed_items: int = Field(..., ge=0)
    processing_time_ms: float = Field(..., ge=0)
    timestamp: datetime


class StatusResponse(BaseModel):
    """Service banner"""
    ok: bool = Field(..., description="Service status")
    message: str = Field(..., description="Status message")
    timestamp: datetime = Field(..., description="Response timestamp")


class HealthResponse(BaseModel):
    """Health probe result"""
    status: str = Field(..., description="Health status")
    settings: ServiceSettings = Field(..., description="Active settings")
    timestamp: datetime = Field(..., description="Health check timestamp")


class PerformanceResponse(BaseModel):
    """Aggregated evaluation metrics"""
    total_operations: int = Field(..., ge=0)
    total_time_ms: float = Field(..., ge=0)
    avg_time_ms: float = Field(..., ge=0)
    error_count: int = Field(..., ge=0)
    recent_operations: List[str] = Field(default_factory=list)
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Standard error envelope"""
    ok: bool = Field(False, description="Request success status")
    error: str = Field(..., description="Error message")
    error_code: Optional[str] = Field(None, description="Error code")
    error_type: Optional[str] = Field(None, description="Error type")
    timestamp: datetime = Field(..., description="Error timestamp")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "ok": False,
                "error": 'Index "id:7" already exists',
                "error_code": "DUPLICATE_INDEX",
                "error_type": "DuplicateIndexError",
                "timestamp": "2024-01-01T12:00:00Z"
            }
        }
    )
