import math
from typing import Any, Dict, Optional
from graph.state import ContactSearchState, SearchCriteria, DEFAULT_LIMIT, MAX_LIMIT
from graph.errors import PipelineError, ValidationError
from loguru import logger


def _clean(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def clamp_limit(raw_limit: Any) -> int:
    """Coerce a caller-supplied limit into [1, MAX_LIMIT], defaulting to DEFAULT_LIMIT."""
    if raw_limit is None:
        return DEFAULT_LIMIT
    if isinstance(raw_limit, bool):
        raise ValidationError("limit must be a number")
    if isinstance(raw_limit, int):
        return min(max(raw_limit, 1), MAX_LIMIT)

    try:
        value = float(raw_limit)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError("limit must be a number")

    if math.isnan(value):
        raise ValidationError("limit must be a number")
    if math.isinf(value):
        return MAX_LIMIT if value > 0 else 1

    return min(max(int(value), 1), MAX_LIMIT)


def build_criteria(raw: Optional[Dict[str, Any]]) -> SearchCriteria:
    """Normalize and validate the incoming search request."""
    if not isinstance(raw, dict):
        raise ValidationError("Invalid JSON body")

    title = _clean(raw.get("title"))
    location = _clean(raw.get("location"))
    if not title or not location:
        raise ValidationError("Both title and location are required")

    return SearchCriteria(
        title=title,
        location=location,
        industry=_clean(raw.get("industry")) or None,
        limit=clamp_limit(raw.get("limit")),
    )


def validate(state: ContactSearchState) -> ContactSearchState:
    """Turn the raw request body into SearchCriteria."""
    raw = state.get("raw")
    logger.info(f"Validating people search request: {raw!r}")

    try:
        criteria = build_criteria(raw)
    except PipelineError as e:
        logger.warning(f"Rejected people search request: {e.error}")
        state["failure"] = e
        return state

    state["criteria"] = criteria
    logger.info(
        f"Search criteria: title={criteria.title!r} location={criteria.location!r} "
        f"industry={criteria.industry!r} limit={criteria.limit}"
    )
    return state
