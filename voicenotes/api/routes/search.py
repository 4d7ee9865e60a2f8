"""Search endpoints."""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from voicenotes.api.deps import ApiKeyDep, NoteServiceDep
from voicenotes.schemas.search import SearchResponse

router = APIRouter(prefix="/api", tags=["search"], dependencies=[ApiKeyDep])

QueryParam = Annotated[str | None, Query(description="Search term")]


def _require_query(q: str | None) -> str:
    if not q or not q.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Query parameter "q" required',
        )
    return q


@router.get("/search", response_model=SearchResponse)
def keyword_search(note_service: NoteServiceDep, q: QueryParam = None) -> SearchResponse:
    """
    Case-insensitive keyword search over transcripts.
    """
    query = _require_query(q)
    results = note_service.search(query)
    return SearchResponse(query=query, matches=len(results), results=results)


@router.get("/search/semantic", response_model=SearchResponse)
async def semantic_search(
    note_service: NoteServiceDep, q: QueryParam = None
) -> SearchResponse:
    """
    Keyword search with results re-ordered by AI relevance.

    Falls back to keyword order when AI processing is disabled or fails.
    """
    query = _require_query(q)
    results = await note_service.semantic_search(query)
    return SearchResponse(query=query, matches=len(results), results=results)
