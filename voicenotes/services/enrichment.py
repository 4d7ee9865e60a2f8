"""AI enrichment of transcripts through an OpenAI-compatible chat API."""

import json
import logging
import re
from abc import ABC, abstractmethod

import httpx
from pydantic import ValidationError

from voicenotes.config import Settings
from voicenotes.schemas.note import Analysis
from voicenotes.schemas.search import DigestPeriod
from voicenotes.utils.datetime import utc_now
from voicenotes.utils.exceptions import EnrichmentError

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 60
MAX_CATEGORIES = 5
DIGEST_CHAR_BUDGET = 4000
DIGEST_SEPARATOR = "\n\n---\n\n"

SENTIMENTS = {"positive", "neutral", "negative"}
PRIORITIES = {"high", "medium", "low"}


def build_digest_input(texts: list[str], budget: int = DIGEST_CHAR_BUDGET) -> str:
    """Join transcripts and cut the result at the character budget."""
    return DIGEST_SEPARATOR.join(texts)[:budget]


def fallback_title(text: str) -> str:
    """First sentence truncated to the title length, ellipsis appended."""
    return text.split(".")[0][:TITLE_MAX_LENGTH] + "..."


def _as_str_list(value) -> list[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


def normalize_analysis(raw: dict, model: str | None = None) -> Analysis:
    """
    Coerce a loosely shaped model reply into an ``Analysis``.

    Categories are capped at five, unknown sentiment or priority values fall
    back to neutral and medium.
    """
    sentiment = str(raw.get("sentiment", "")).strip().lower()
    priority = str(raw.get("priority", "")).strip().lower()
    summary = str(raw.get("summary") or "").strip()
    if not summary:
        raise EnrichmentError("AI analysis contained no summary")

    try:
        return Analysis(
            summary=summary,
            key_points=_as_str_list(raw.get("key_points", raw.get("keyPoints"))),
            action_items=_as_str_list(
                raw.get("action_items", raw.get("actionItems"))
            ),
            categories=_as_str_list(raw.get("categories"))[:MAX_CATEGORIES],
            sentiment=sentiment if sentiment in SENTIMENTS else "neutral",
            priority=priority if priority in PRIORITIES else "medium",
            processed_at=utc_now(),
            model=model,
        )
    except ValidationError as e:
        raise EnrichmentError(f"Invalid AI analysis: {e}") from e


def parse_ranking(reply: str, candidate_count: int) -> list[int]:
    """Turn "3, 1, 2" into 0-based indices, dropping junk and repeats."""
    order: list[int] = []
    for number in re.findall(r"\d+", reply):
        index = int(number) - 1
        if 0 <= index < candidate_count and index not in order:
            order.append(index)
    return order


def _strip_code_fences(content: str) -> str:
    # Some models wrap the JSON in markdown code blocks
    if "```json" in content:
        return content.split("```json")[1].split("```")[0].strip()
    if "```" in content:
        return content.split("```")[1].split("```")[0].strip()
    return content.strip()


class EnrichmentBackend(ABC):
    """Derives summaries, titles, rankings and digests from transcripts."""

    @abstractmethod
    async def analyze(self, text: str) -> Analysis:
        """Summary, key points, action items, categories, sentiment, priority."""

    @abstractmethod
    async def generate_title(self, text: str) -> str:
        """A title of at most 60 characters."""

    @abstractmethod
    async def rank(self, query: str, texts: list[str]) -> list[int]:
        """Indices into ``texts``, most relevant first."""

    @abstractmethod
    async def digest(self, texts: list[str], period: DigestPeriod) -> str:
        """Narrative summary of many transcripts."""


class LLMEnrichmentBackend(EnrichmentBackend):
    """Enrichment through an OpenAI-compatible ``/chat/completions`` API."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        model: str = "gpt-4-turbo-preview",
        title_model: str | None = None,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the LLM backend.

        Args:
            base_url: API base URL including the version path
            api_key: Optional API key sent as a bearer token
            model: Model for analysis and digests
            title_model: Cheaper model for titles and ranking
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.title_model = title_model or model
        self.timeout = timeout
        self.transport = transport

    def _get_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _chat(
        self,
        messages: list[dict[str, str]],
        model: str,
        temperature: float,
        max_tokens: int | None = None,
        json_mode: bool = False,
    ) -> str:
        """Send one chat completion and return the reply text."""
        payload: dict = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "stream": False,
        }
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers=self._get_headers(),
                    json=payload,
                    timeout=self.timeout,
                )
                response.raise_for_status()
                result = response.json()
        except httpx.HTTPStatusError as e:
            raise EnrichmentError(
                f"LLM API error {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise EnrichmentError(f"LLM request failed: {e}") from e
        except json.JSONDecodeError as e:
            raise EnrichmentError("LLM returned a non-JSON response") from e

        try:
            content = result["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise EnrichmentError("LLM response had no message content") from e
        if not isinstance(content, str):
            raise EnrichmentError("LLM response had no message content")
        return content

    async def analyze(self, text: str) -> Analysis:
        prompt = f'''Analyze this voice note transcript and provide:

1. **Summary** (2-3 sentences)
2. **Key Points** (bullet points)
3. **Action Items** (tasks mentioned, if any)
4. **Categories** (relevant tags, max 5)
5. **Sentiment** (positive/neutral/negative)
6. **Priority** (high/medium/low based on content)

Transcript:
"""
{text}
"""

Respond in JSON format:
{{
  "summary": "...",
  "key_points": ["...", "..."],
  "action_items": ["...", "..."],
  "categories": ["...", "..."],
  "sentiment": "...",
  "priority": "..."
}}'''

        content = await self._chat(
            [
                {
                    "role": "system",
                    "content": "You are an AI assistant that analyzes voice notes. "
                    "Extract structured information and provide concise, actionable insights.",
                },
                {"role": "user", "content": prompt},
            ],
            model=self.model,
            temperature=0.3,
            json_mode=True,
        )

        try:
            raw = json.loads(_strip_code_fences(content))
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse LLM analysis: {content[:200]}")
            raise EnrichmentError("AI analysis was not valid JSON") from e
        if not isinstance(raw, dict):
            raise EnrichmentError("AI analysis was not a JSON object")

        return normalize_analysis(raw, model=self.model)

    async def generate_title(self, text: str) -> str:
        prompt = f'''Generate a concise, descriptive title (max {TITLE_MAX_LENGTH} characters) for this voice note:

"""
{text[:500]}
"""

Title:'''

        content = await self._chat(
            [{"role": "user", "content": prompt}],
            model=self.title_model,
            temperature=0.7,
            max_tokens=20,
        )
        title = content.strip().strip("\"'").strip()
        if not title:
            raise EnrichmentError("LLM returned an empty title")
        return title[:TITLE_MAX_LENGTH]

    async def rank(self, query: str, texts: list[str]) -> list[int]:
        listing = "\n".join(
            f"{i}. {text[:200]}..." for i, text in enumerate(texts, 1)
        )
        prompt = f'''Rank these voice notes by relevance to query: "{query}"

Voice notes:
{listing}

Respond with just the numbers in order of relevance (most relevant first), comma-separated:'''

        content = await self._chat(
            [{"role": "user", "content": prompt}],
            model=self.title_model,
            temperature=0,
            max_tokens=50,
        )
        order = parse_ranking(content, len(texts))
        if not order:
            raise EnrichmentError(f"Unusable ranking reply: {content[:100]}")
        return order

    async def digest(self, texts: list[str], period: DigestPeriod) -> str:
        combined = build_digest_input(texts)
        prompt = f"""Create a {period.value} summary of these voice notes:

{combined}

Provide:
1. Overall themes
2. Key insights
3. Action items across all notes
4. Important decisions or ideas

Keep it concise and actionable."""

        content = await self._chat(
            [
                {
                    "role": "system",
                    "content": "You are an AI assistant that creates concise summaries of voice notes.",
                },
                {"role": "user", "content": prompt},
            ],
            model=self.model,
            temperature=0.5,
        )
        return content.strip()


def get_enrichment_backend(settings: Settings) -> LLMEnrichmentBackend | None:
    """
    Build the enrichment backend, or ``None`` when AI processing is disabled.

    Args:
        settings: Application settings

    Returns:
        Configured backend instance or None
    """
    if not settings.enable_ai_processing:
        return None
    return LLMEnrichmentBackend(
        base_url=settings.resolved_llm_base_url,
        api_key=settings.resolved_llm_api_key,
        model=settings.llm_model,
        title_model=settings.llm_title_model,
        timeout=settings.enrichment_timeout,
    )
