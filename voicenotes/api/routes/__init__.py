"""API route modules."""

from voicenotes.api.routes.ingest import router as ingest_router
from voicenotes.api.routes.notes import router as notes_router
from voicenotes.api.routes.search import router as search_router
from voicenotes.api.routes.summary import router as summary_router

__all__ = ["ingest_router", "notes_router", "search_router", "summary_router"]
