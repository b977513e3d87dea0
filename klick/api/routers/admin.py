"""
Admin Review Endpoints
GET /api/v1/admin/products/pending - Pending products, newest first
GET /api/v1/admin/products/attention - Pending products flagged by the AI
POST /api/v1/admin/products/{product_id}/approve - Approve (override when AI rejected)
POST /api/v1/admin/products/{product_id}/reject - Reject with a reason
POST /api/v1/admin/products/{product_id}/reopen - Send a rejected product back to review
POST /api/v1/admin/products/{product_id}/revalidate - Run automatic validation again
"""

import logging

from fastapi import APIRouter, Depends, status

from ...workflow import ProductWorkflow, TransitionOutcome
from ..dependencies import get_workflow
from ..schemas.products import (
    ApproveRequest,
    ProductQueueResponse,
    ProductResponse,
    RejectRequest,
    ReopenRequest,
    TransitionResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/admin/products", tags=["admin"])


def _transition_response(outcome: TransitionOutcome) -> TransitionResponse:
    return TransitionResponse(
        product=ProductResponse.from_listing(outcome.product),
        changed=outcome.changed,
        note=outcome.note,
    )


@router.get("/pending", response_model=ProductQueueResponse)
async def pending_products(workflow: ProductWorkflow = Depends(get_workflow)) -> ProductQueueResponse:
    products = await workflow.pending_queue()
    return ProductQueueResponse(
        products=[ProductResponse.from_listing(p) for p in products], total=len(products)
    )


@router.get("/attention", response_model=ProductQueueResponse)
async def attention_products(
    workflow: ProductWorkflow = Depends(get_workflow),
) -> ProductQueueResponse:
    """Pending products the AI rejected, failed to analyze, or never analyzed."""
    products = await workflow.attention_queue()
    return ProductQueueResponse(
        products=[ProductResponse.from_listing(p) for p in products], total=len(products)
    )


@router.post("/{product_id}/approve", response_model=TransitionResponse)
async def approve_product(
    product_id: str,
    request: ApproveRequest,
    workflow: ProductWorkflow = Depends(get_workflow),
) -> TransitionResponse:
    """
    Approve a pending product.

    Returns 409 when the AI rejected the product and override is false, or when
    the product was already reviewed. While the AI verdict is pending or
    errored, approval without override is deferred (changed=false).
    """
    outcome = await workflow.approve(product_id, request.admin_id, override=request.override)
    return _transition_response(outcome)


@router.post("/{product_id}/reject", response_model=TransitionResponse)
async def reject_product(
    product_id: str,
    request: RejectRequest,
    workflow: ProductWorkflow = Depends(get_workflow),
) -> TransitionResponse:
    outcome = await workflow.reject(product_id, request.admin_id, request.reason)
    return _transition_response(outcome)


@router.post("/{product_id}/reopen", response_model=TransitionResponse)
async def reopen_product(
    product_id: str,
    request: ReopenRequest,
    workflow: ProductWorkflow = Depends(get_workflow),
) -> TransitionResponse:
    outcome = await workflow.reopen(product_id, request.admin_id, note=request.note)
    return _transition_response(outcome)


@router.post(
    "/{product_id}/revalidate",
    response_model=ProductResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def revalidate_product(
    product_id: str,
    workflow: ProductWorkflow = Depends(get_workflow),
) -> ProductResponse:
    product = await workflow.revalidate(product_id)
    logger.info(f"Revalidation requested for {product_id}")
    return ProductResponse.from_listing(product)
