"""Ticketing FastAPI application.

Processes commands synchronously via HTTP. Every request runs inside the
ticketing domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay ("production" → PostgreSQL).
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from ticketing.domain import ticketing
from ticketing.utils.logging import add_context, clear_context

ticketing.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Ticketing API",
    description="Ticket lifecycle core: pricing, door scanning, refunds",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the ticketing domain context for each request."""
    if request.url.path in ("/health", "/docs", "/openapi.json"):
        return await call_next(request)
    add_context(method=request.method, path=request.url.path)
    try:
        with ticketing.domain_context():
            response = await call_next(request)
    finally:
        clear_context()
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from ticketing.api import (  # noqa: E402
    event_router,
    gateway_router,
    order_router,
    pricing_router,
    refund_request_router,
    refund_router,
)

app.include_router(pricing_router)
app.include_router(event_router)
app.include_router(order_router)
app.include_router(refund_request_router)
app.include_router(refund_router)
app.include_router(gateway_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": {"name": ticketing.name}})
