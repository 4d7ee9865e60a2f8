"""Tests for AI enrichment helpers and the LLM backend."""

import json

import httpx
import pytest

from voicenotes.schemas.search import DigestPeriod
from voicenotes.services.enrichment import (
    DIGEST_CHAR_BUDGET,
    DIGEST_SEPARATOR,
    LLMEnrichmentBackend,
    build_digest_input,
    fallback_title,
    get_enrichment_backend,
    normalize_analysis,
    parse_ranking,
)
from voicenotes.utils.exceptions import EnrichmentError


def chat_reply(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def make_backend(handler) -> LLMEnrichmentBackend:
    return LLMEnrichmentBackend(
        base_url="https://llm.test/v1",
        api_key="sk-test",
        model="big-model",
        title_model="small-model",
        transport=httpx.MockTransport(handler),
    )


def test_digest_input_truncated_to_budget():
    """The combined digest input is cut at exactly the budget."""
    texts = ["x" * 1500 for _ in range(5)]

    combined = build_digest_input(texts)

    assert len(combined) == DIGEST_CHAR_BUDGET
    assert combined.startswith("x" * 1500 + DIGEST_SEPARATOR)


def test_digest_input_short():
    assert build_digest_input(["one", "two"]) == "one\n\n---\n\ntwo"


def test_fallback_title():
    assert fallback_title("Short one. More text.") == "Short one..."
    assert fallback_title("a" * 100) == "a" * 60 + "..."


def test_parse_ranking():
    """Numbers are 1-based in the reply; junk and repeats are dropped."""
    assert parse_ranking("3, 1, 2", 3) == [2, 0, 1]
    assert parse_ranking("2, 2, 9, 0, 1", 3) == [1, 0]
    assert parse_ranking("none of them", 3) == []


def test_normalize_analysis():
    analysis = normalize_analysis(
        {
            "summary": " Plans for the week. ",
            "keyPoints": ["gym", "taxes"],
            "actionItems": "file taxes",
            "categories": ["a", "b", "c", "d", "e", "f", "g"],
            "sentiment": "Ecstatic",
            "priority": "HIGH",
        },
        model="big-model",
    )

    assert analysis.summary == "Plans for the week."
    assert analysis.key_points == ["gym", "taxes"]
    assert analysis.action_items == ["file taxes"]
    assert analysis.categories == ["a", "b", "c", "d", "e"]
    assert analysis.sentiment == "neutral"
    assert analysis.priority == "high"
    assert analysis.model == "big-model"


def test_normalize_analysis_requires_summary():
    with pytest.raises(EnrichmentError):
        normalize_analysis({"key_points": ["x"]})


@pytest.mark.asyncio
async def test_analyze_uses_json_mode_and_strips_fences():
    requests: list[dict] = []
    reply = {
        "summary": "Call mom about the trip.",
        "key_points": ["trip"],
        "action_items": ["call mom"],
        "categories": ["family"],
        "sentiment": "positive",
        "priority": "medium",
    }

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(json.loads(request.content))
        return httpx.Response(
            200, json=chat_reply(f"```json\n{json.dumps(reply)}\n```")
        )

    analysis = await make_backend(handler).analyze("I should call mom about the trip.")

    assert analysis.summary == "Call mom about the trip."
    assert analysis.sentiment == "positive"
    assert requests[0]["model"] == "big-model"
    assert requests[0]["response_format"] == {"type": "json_object"}
    assert "I should call mom" in requests[0]["messages"][1]["content"]


@pytest.mark.asyncio
async def test_analyze_invalid_json():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=chat_reply("not json at all"))

    with pytest.raises(EnrichmentError):
        await make_backend(handler).analyze("text")


@pytest.mark.asyncio
async def test_api_error_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="internal error")

    with pytest.raises(EnrichmentError):
        await make_backend(handler).generate_title("text")


@pytest.mark.asyncio
async def test_generate_title():
    """Quotes are stripped and the title is capped at 60 characters."""
    requests: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(json.loads(request.content))
        return httpx.Response(200, json=chat_reply('"' + "T" * 80 + '"'))

    title = await make_backend(handler).generate_title("x" * 1000)

    assert title == "T" * 60
    assert requests[0]["model"] == "small-model"
    assert requests[0]["max_tokens"] == 20
    assert "x" * 501 not in requests[0]["messages"][0]["content"]


@pytest.mark.asyncio
async def test_rank():
    prompts: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        prompts.append(json.loads(request.content)["messages"][0]["content"])
        return httpx.Response(200, json=chat_reply("2, 1"))

    order = await make_backend(handler).rank("milk", ["buy bread", "buy milk"])

    assert order == [1, 0]
    assert "1. buy bread..." in prompts[0]
    assert "2. buy milk..." in prompts[0]


@pytest.mark.asyncio
async def test_rank_unusable_reply():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=chat_reply("I cannot decide"))

    with pytest.raises(EnrichmentError):
        await make_backend(handler).rank("milk", ["a", "b"])


@pytest.mark.asyncio
async def test_digest_prompt_is_truncated():
    prompts: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        prompts.append(json.loads(request.content)["messages"][1]["content"])
        return httpx.Response(200, json=chat_reply("  Busy week.  "))

    summary = await make_backend(handler).digest(["y" * 3000, "z" * 3000], DigestPeriod.WEEKLY)

    assert summary == "Busy week."
    assert "weekly summary" in prompts[0]
    assert "z" * (DIGEST_CHAR_BUDGET - 3000 - len(DIGEST_SEPARATOR)) in prompts[0]
    assert "z" * (DIGEST_CHAR_BUDGET - 3000 - len(DIGEST_SEPARATOR) + 1) not in prompts[0]


def test_enrichment_disabled_by_default(settings):
    assert get_enrichment_backend(settings) is None

    enabled = settings.model_copy(
        update={"enable_ai_processing": True, "openai_api_key": "sk-openai"}
    )
    backend = get_enrichment_backend(enabled)
    assert backend.api_key == "sk-openai"
    assert backend.base_url == "https://api.openai.com/v1"
