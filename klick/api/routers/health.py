"""
Health Check Endpoints
Endpoints for health checks and status monitoring.
"""

import logging
from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from ...config import ModerationSettings, get_settings
from ...workflow import ProductWorkflow
from ..dependencies import get_workflow

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check() -> Dict[str, str]:
    """
    Basic health check.

    Returns:
        Simple health status
    """
    return {"status": "healthy", "timestamp": datetime.utcnow().isoformat()}


@router.get("/status", status_code=status.HTTP_200_OK)
async def status_check(
    settings: ModerationSettings = Depends(get_settings),
    workflow: ProductWorkflow = Depends(get_workflow),
) -> Dict[str, Any]:
    """
    Detailed status check.

    Reports:
    - Configured moderation providers (in fallback order)
    - Repository backend and validation mode
    - Background validations in flight
    - Pending review queue size

    Returns:
        Detailed status information
    """
    orchestrator = workflow.orchestrator
    status_info = {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": settings.version,
        "components": {
            "moderation": {
                "text_providers": [p.name for p in orchestrator.text_providers],
                "image_providers": [p.name for p in orchestrator.image_providers],
                "keyword_only": not orchestrator.text_providers,
            },
            "workflow": {
                "repository_backend": settings.repository_backend,
                "validation_mode": settings.validation_mode,
                "pending_validations": workflow.pending_validations,
            },
        },
    }

    try:
        pending = await workflow.pending_queue()
        status_info["components"]["repository"] = {
            "status": "healthy",
            "pending_products": len(pending),
        }
    except Exception as e:
        logger.error(f"Repository health check failed: {e}")
        status_info["components"]["repository"] = {"status": "unhealthy", "error": str(e)}
        status_info["status"] = "degraded"

    return status_info
