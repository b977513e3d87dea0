"""
Dependency Injection
FastAPI dependencies for settings and the product workflow.
"""

import logging
from typing import Optional

import httpx

from ..config import get_settings
from ..workflow import ProductWorkflow, build_workflow

logger = logging.getLogger(__name__)

# Shared HTTP client and workflow
_http_client: Optional[httpx.AsyncClient] = None
_workflow: Optional[ProductWorkflow] = None


def get_http_client() -> httpx.AsyncClient:
    """Get the HTTP client used by moderation providers (singleton)."""
    global _http_client
    if _http_client is None:
        settings = get_settings()
        _http_client = httpx.AsyncClient(timeout=settings.provider_timeout_seconds)
    return _http_client


def get_workflow() -> ProductWorkflow:
    """
    Get product workflow instance (singleton).

    Use as FastAPI dependency:
        @app.post("/endpoint")
        async def endpoint(workflow: ProductWorkflow = Depends(get_workflow)):
            ...
    """
    global _workflow
    if _workflow is None:
        _workflow = build_workflow(get_http_client(), settings=get_settings())
    return _workflow


async def shutdown_workflow() -> None:
    """Drain background validations and close the HTTP client."""
    global _http_client, _workflow
    if _workflow is not None:
        pending = _workflow.pending_validations
        if pending:
            logger.info(f"Waiting for {pending} background validations")
        await _workflow.wait_for_validations()
        _workflow = None
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None
