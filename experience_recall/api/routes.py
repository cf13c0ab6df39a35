"""
FastAPI route handlers.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException

from experience_recall.errors import ValidationError
from experience_recall.filters import describe_quality_filter, parse_quality_filter, validate_quality_filter

from .dependencies import get_engine
from .models import (
    FilterValidationRequest,
    FilterValidationResponse,
    HealthResponse,
    SearchRequest,
    SearchResponseModel,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/search", response_model=SearchResponseModel)
def search(request: SearchRequest, engine=Depends(get_engine)):
    """
    Ranked, filtered search over experience records.

    Malformed filters return 400; dependency failures show up in 'degraded'.
    """
    request_id = str(uuid.uuid4())
    try:
        response = engine.search(request.to_query_dict())
    except ValidationError as e:
        detail = {'message': str(e)}
        if e.field:
            detail['field'] = e.field
        raise HTTPException(status_code=400, detail=detail)
    except Exception as e:
        logger.error(f"Search failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Search failed: {str(e)}")

    payload = response.to_dict()
    payload['request_id'] = request_id
    return payload


@router.post("/filters/validate", response_model=FilterValidationResponse)
def validate_filter(request: FilterValidationRequest):
    """Report every problem in a quality filter and describe it when valid."""
    errors = validate_quality_filter(request.qualities)
    description = None
    if not errors:
        description = describe_quality_filter(parse_quality_filter(request.qualities))
    return FilterValidationResponse(valid=not errors, errors=errors, description=description)


@router.get("/health", response_model=HealthResponse)
def health(engine=Depends(get_engine)):
    """Health check endpoint."""
    try:
        info = engine.health()
    except Exception as e:
        logger.warning(f"Health check failed: {e}")
        return HealthResponse(status="unhealthy")

    status = "healthy" if info['store_available'] and info['provider_circuit'] == 'closed' else "degraded"
    return HealthResponse(status=status, **info)
