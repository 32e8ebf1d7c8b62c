from __future__ import annotations

from typing import List, NoReturn

from fastapi import HTTPException, status
from loguru import logger

from flow_navigator import FlowError
from flow_navigator.logging import trace_id_var


def flow_conflict(exc: FlowError) -> NoReturn:
    trace_id = trace_id_var.get()
    logger.warning("Engine domain error: {}", exc, traceId=trace_id)
    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={
            "errorType": exc.__class__.__name__,
            "message": str(exc),
            "traceId": trace_id,
        },
    )


def raise_reported(errors: List[FlowError]) -> None:
    """Turn the first error the engine reported during a call into a 409."""

    if errors:
        flow_conflict(errors[0])


def not_found(what: str) -> NoReturn:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{what} not found")
