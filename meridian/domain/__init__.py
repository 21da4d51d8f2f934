"""
Domain Layer - configuration value objects and connector contracts
"""

from .models import Query, FetchTarget
from .document import Document, parse_document
from .interfaces import BackingStoreClient, ValueReferenceConnector

__all__ = [
    "Query",
    "FetchTarget",
    "Document",
    "parse_document",
    "BackingStoreClient",
    "ValueReferenceConnector",
]
