"""Keyword search and AI-ranked search over stored notes."""

import logging

from voicenotes.schemas.note import Note
from voicenotes.services.enrichment import EnrichmentBackend

logger = logging.getLogger(__name__)

# Ranking cost grows with the candidate count; larger sets keep filter order.
RANK_CANDIDATE_LIMIT = 20


def keyword_search(query: str, notes: list[Note]) -> list[Note]:
    """
    Case-insensitive substring match against transcript text.

    Args:
        query: Search term; an empty query matches every note
        notes: Notes to filter, in the order results should keep

    Returns:
        Matching notes in input order
    """
    needle = query.lower()
    return [note for note in notes if needle in note.transcript_text.lower()]


async def ranked_search(
    query: str, notes: list[Note], enricher: EnrichmentBackend | None
) -> list[Note]:
    """
    Keyword filter, then re-order the matches by AI relevance.

    Ranking is only attempted for fewer than ``RANK_CANDIDATE_LIMIT``
    matches. Any ranking failure returns the filter order. Matches the
    ranker leaves out are appended in filter order.
    """
    matches = keyword_search(query, notes)
    if enricher is None or not 0 < len(matches) < RANK_CANDIDATE_LIMIT:
        return matches

    try:
        order = await enricher.rank(query, [n.transcript_text for n in matches])
    except Exception as e:
        logger.warning(f"Ranking failed for query '{query}', keeping filter order: {e}")
        return matches

    seen = set()
    ranked = []
    for index in order:
        if 0 <= index < len(matches) and index not in seen:
            seen.add(index)
            ranked.append(matches[index])
    ranked.extend(note for i, note in enumerate(matches) if i not in seen)
    return ranked
