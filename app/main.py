"""HTTP surface for Flow Navigator sessions."""
from __future__ import annotations

import uuid

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from flow_navigator.logging import configure_logging, trace_id_var
from app.routes import flows, sessions

configure_logging()

app = FastAPI(
    title="Flow Navigator",
    description="Drives layered multi-step flows for remote clients",
    version="1.0.0",
)

app.include_router(flows.router, prefix="/api/v1", tags=["Flows"])
app.include_router(sessions.router, prefix="/api/v1", tags=["Sessions"])


@app.middleware("http")
async def trace_requests(request: Request, call_next):
    trace_id = str(uuid.uuid4())
    token = trace_id_var.set(trace_id)
    logger.bind(traceId=trace_id).info("Incoming request: {} {}", request.method, request.url.path)
    try:
        response = await call_next(request)
    except Exception as exc:
        logger.exception("Unhandled error: {}", exc)
        response = JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": {"errorType": exc.__class__.__name__, "message": str(exc), "traceId": trace_id}},
        )
    finally:
        trace_id_var.reset(token)
    response.headers["X-Trace-Id"] = trace_id
    return response


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
