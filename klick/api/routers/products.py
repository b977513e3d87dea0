"""
Seller Product Endpoints
POST /api/v1/products - Submit a product for review
GET /api/v1/products/{product_id} - Read a product and its review state
"""

import logging

from fastapi import APIRouter, Depends, status

from ...models.product import ProductSubmission
from ...workflow import ProductWorkflow
from ..dependencies import get_workflow
from ..schemas.products import ProductResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/products", tags=["products"])


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def submit_product(
    submission: ProductSubmission,
    workflow: ProductWorkflow = Depends(get_workflow),
) -> ProductResponse:
    """
    Submit a product listing.

    The product is created in pending state and automatic validation starts
    in the background. It stays invisible to buyers until an admin approves it.
    """
    product = await workflow.submit(submission)
    return ProductResponse.from_listing(product)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: str,
    workflow: ProductWorkflow = Depends(get_workflow),
) -> ProductResponse:
    product = await workflow.get(product_id)
    return ProductResponse.from_listing(product)
