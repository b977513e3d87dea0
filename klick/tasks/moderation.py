"""
Moderation Tasks
Automatic product validation on a Celery worker.
"""

import asyncio
import logging
from typing import Any, Dict

import httpx

from .celery_app import app

logger = logging.getLogger(__name__)


async def _run_validation(product_id: str) -> Dict[str, Any]:
    # Import here to avoid circular dependencies
    from ..config import get_settings
    from ..workflow.factory import build_workflow

    settings = get_settings()
    async with httpx.AsyncClient(timeout=settings.provider_timeout_seconds) as client:
        # The worker always writes to the shared database
        settings = settings.model_copy(update={"repository_backend": "sql"})
        workflow = build_workflow(client, settings=settings)
        fields = await workflow.run_validation(product_id)

    return {
        "ai_status": fields.status.value,
        "confidence": fields.confidence,
        "flagged_categories": list(fields.flagged_categories),
        "reason": fields.reason,
    }


@app.task(bind=True, name="tasks.validate_product")
def validate_product(self, product_id: str) -> Dict[str, Any]:
    """
    Run one automatic validation pass for a product.

    Args:
        product_id: Product to validate

    Returns:
        Dictionary with the stored AI validation fields
    """
    try:
        logger.info(f"Starting validation for product {product_id}")
        result = asyncio.run(_run_validation(product_id))
        logger.info(f"Validation completed for {product_id}: {result['ai_status']}")
        return {"status": "success", "product_id": product_id, **result}

    except Exception as e:
        logger.error(f"Error validating product {product_id}: {e}", exc_info=True)
        return {"status": "error", "product_id": product_id, "error": str(e)}
