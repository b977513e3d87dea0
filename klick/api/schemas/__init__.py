from .products import (
    ApproveRequest,
    ProductQueueResponse,
    ProductResponse,
    RejectRequest,
    ReopenRequest,
    TransitionResponse,
)

__all__ = [
    "ApproveRequest",
    "ProductQueueResponse",
    "ProductResponse",
    "RejectRequest",
    "ReopenRequest",
    "TransitionResponse",
]
