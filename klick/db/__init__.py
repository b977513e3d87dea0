"""
Persistence for product listings.
"""

from .repository import InMemoryProductRepository, ProductRepository
from .sql_repository import SqlProductRepository

__all__ = ["ProductRepository", "InMemoryProductRepository", "SqlProductRepository"]
