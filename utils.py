"""
Helpers for the HTTP layer: declarative pipeline building, evaluation with
timing, index lookups and performance tracking.
"""

import time
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Union

from common import get_logger
from indexed import IndexedCollection
from lazy import LazyCollection

logger = get_logger("utils")

# Global performance tracking
_performance_metrics = {
    "operations": [],
    "total_time_ms": 0.0,
    "operation_count": 0,
    "error_count": 0
}


def _record_operation(operation_name: str, execution_time_ms: float, success: bool, **extra) -> Dict[str, Any]:
    performance_info = {
        "operation": operation_name,
        "execution_time_ms": execution_time_ms,
        "success": success,
        "timestamp": time.time(),
        **extra
    }
    _performance_metrics["operations"].append(performance_info)
    _performance_metrics["total_time_ms"] += execution_time_ms
    _performance_metrics["operation_count"] += 1
    if not success:
        _performance_metrics["error_count"] += 1
    return performance_info


def get_performance_summary() -> Dict[str, Any]:
    """Get summary of all performance metrics"""
    count = _performance_metrics["operation_count"]
    return {
        "total_operations": count,
        "total_time_ms": _performance_metrics["total_time_ms"],
        "avg_time_ms": _performance_metrics["total_time_ms"] / count if count else 0.0,
        "error_count": _performance_metrics["error_count"],
        "recent_operations": [op["operation"] for op in _performance_metrics["operations"][-10:]]
    }


def clear_performance_metrics():
    """Clear all performance metrics"""
    global _performance_metrics
    _performance_metrics = {
        "operations": [],
        "total_time_ms": 0.0,
        "operation_count": 0,
        "error_count": 0
    }


def extract_field(value: Any, field: str) -> Any:
    """Read ``field`` from a mapping item or an attribute of an object item."""
    if isinstance(value, Mapping):
        return value.get(field)
    return getattr(value, field, None)


def materialize(value: Any) -> Any:
    """Replace nested collections, also inside tuples and lists, with plain dicts."""
    if isinstance(value, LazyCollection):
        return materialize(value.to_dict())
    if isinstance(value, Mapping):
        return {key: materialize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [materialize(item) for item in value]
    return value


def _require(op: Dict[str, Any], name: str) -> Any:
    if op.get(name) is None:
        raise ValueError(f"Operation '{op.get('type')}' requires '{name}'")
    return op[name]


def apply_operation(lazy_col: LazyCollection, op: Dict[str, Any]) -> LazyCollection:
    """Apply one declarative operation to a collection."""
    op_type = op.get("type")

    if op_type == "filter":
        field = op.get("field")
        if "equals" in op:
            expected = op["equals"]
            if field:
                return lazy_col.filter(lambda v: extract_field(v, field) == expected)
            return lazy_col.filter(lambda v: v == expected)
        if field:
            return lazy_col.filter(lambda v: bool(extract_field(v, field)))
        return lazy_col.filter()

    elif op_type == "map":
        field = _require(op, "field")
        return lazy_col.map(lambda v: extract_field(v, field))

    elif op_type == "skip":
        return lazy_col.skip(_require(op, "count"))

    elif op_type == "take":
        return lazy_col.take(_require(op, "count"))

    elif op_type in ("chunk", "batch"):
        return lazy_col.chunk(_require(op, "size"))

    elif op_type == "reverse":
        return lazy_col.reverse()

    elif op_type == "keys":
        return lazy_col.keys()

    elif op_type == "values":
        return lazy_col.values()

    elif op_type == "key_by":
        field = _require(op, "field")
        return lazy_col.key_by(lambda v: extract_field(v, field))

    elif op_type == "group_by":
        field = _require(op, "field")
        return lazy_col.group_by(lambda v: extract_field(v, field))

    raise ValueError(f"Unknown op: {op_type}")


def build_pipeline(source_data: Union[List[Any], Dict[Any, Any]], operations: List[Dict[str, Any]],
                   enable_caching: bool = False) -> LazyCollection:
    """Chain declarative operations onto a collection over ``source_data``."""
    lazy_col = LazyCollection(source_data, use_cache=enable_caching)
    for op in operations:
        lazy_col = apply_operation(lazy_col, op)
    return lazy_col


def process_lazy_operations(source_data: Union[List[Any], Dict[Any, Any]], operations: List[Dict[str, Any]],
                            enable_caching: bool = False) -> Dict[str, Any]:
    """Build and evaluate a pipeline, returning the result with timing info"""
    start_time = time.perf_counter()
    operations_applied = [op.get("type") for op in operations]

    try:
        lazy_col = build_pipeline(source_data, operations, enable_caching)
        result = materialize(lazy_col.to_dict())
        count = lazy_col.count()
    except Exception as e:
        processing_time_ms = (time.perf_counter() - start_time) * 1000
        _record_operation("lazy_chain", processing_time_ms, False, error=str(e))
        logger.error(f"Pipeline {operations_applied} failed: {e}")
        raise

    processing_time_ms = (time.perf_counter() - start_time) * 1000
    performance = _record_operation(
        "lazy_chain",
        processing_time_ms,
        True,
        input_size=len(source_data),
        output_size=len(result)
    )
    logger.info(f"Evaluated pipeline {operations_applied} in {processing_time_ms:.2f}ms")

    return {
        "result": result,
        "count": count,
        "operations_applied": operations_applied,
        "performance": {
            "processing_time_ms": processing_time_ms,
            "input_size": performance["input_size"],
            "output_size": performance["output_size"],
            "cached": enable_caching
        }
    }


def process_pagination(source_data: Union[List[Any], Dict[Any, Any]], page_number: int, page_size: int,
                       operations: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    """Evaluate one page of a pipeline"""
    start_time = time.perf_counter()
    operations = operations or []

    try:
        lazy_col = build_pipeline(source_data, operations, enable_caching=True)
        page_data = materialize(lazy_col.page(page_number, page_size).to_list())
        has_next_page = not lazy_col.page(page_number + 1, page_size).is_empty()
    except Exception as e:
        processing_time_ms = (time.perf_counter() - start_time) * 1000
        _record_operation(f"pagination_page_{page_number}_size_{page_size}", processing_time_ms, False, error=str(e))
        logger.error(f"Pagination of page {page_number} failed: {e}")
        raise

    processing_time_ms = (time.perf_counter() - start_time) * 1000
    _record_operation(f"pagination_page_{page_number}_size_{page_size}", processing_time_ms, True)

    return {
        "page_data": page_data,
        "current_page": page_number,
        "page_size": page_size,
        "has_next_page": has_next_page,
        "has_previous_page": page_number > 1,
        "operations_applied": [op.get("type") for op in operations],
        "processing_time_ms": processing_time_ms
    }


def process_index_lookup(items: List[Any], index_field: str, keys, default: Any = None) -> Dict[str, Any]:
    """Index ``items`` by ``index_field`` and look up ``keys``"""
    start_time = time.perf_counter()

    collection = IndexedCollection()
    for item in items:
        collection.add(item, {index_field: extract_field(item, index_field)})

    result = collection.get_by(index_field, keys, default)
    if isinstance(keys, list):
        found = len(result) if isinstance(result, list) else 0
    else:
        found = 0 if result is default else 1

    processing_time_ms = (time.perf_counter() - start_time) * 1000
    _record_operation("index_lookup", processing_time_ms, True, input_size=len(items))

    return {
        "result": result,
        "found": found,
        "indexed_items": collection.count(),
        "processing_time_ms": processing_time_ms
    }
