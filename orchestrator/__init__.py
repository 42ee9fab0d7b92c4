"""Orchestrator module: document sessions and document storage."""

from .document_store import JsonDocumentStore
from .session import FILL_ORDER, RESULTS_FLOW, DocumentSession, set_path_value

__all__ = [
    "JsonDocumentStore",
    "DocumentSession",
    "FILL_ORDER",
    "RESULTS_FLOW",
    "set_path_value",
]
