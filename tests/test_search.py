"""Tests for keyword and AI-ranked search."""

from datetime import timedelta

import pytest
from fakes import FakeEnricher
from fastapi.testclient import TestClient

from voicenotes.services.search import keyword_search, ranked_search


def test_keyword_search_case_insensitive(note_factory):
    first = note_factory("Buy MILK on the way home")
    note_factory("Dentist appointment on Friday")
    third = note_factory("milkshake recipe")

    results = keyword_search("Milk", [first, third])

    assert [n.id for n in results] == [first.id, third.id]


def test_keyword_search_empty_query_matches_all(note_factory):
    notes = [note_factory("one"), note_factory("two")]
    assert keyword_search("", notes) == notes


def test_keyword_search_skips_pending(note_factory):
    pending = note_factory(text=None)
    assert keyword_search("anything", [pending]) == []


@pytest.mark.asyncio
async def test_ranked_search_reorders(note_factory):
    notes = [note_factory(f"milk note {i}") for i in range(3)]
    enricher = FakeEnricher(ranking=[2, 0])

    results = await ranked_search("milk", notes, enricher)

    # The note the ranker left out is appended, nothing disappears
    assert [n.id for n in results] == [notes[2].id, notes[0].id, notes[1].id]
    assert enricher.rank_calls[0][1] == [n.transcript_text for n in notes]


@pytest.mark.asyncio
async def test_ranked_search_skips_large_candidate_sets(note_factory):
    """Twenty or more matches keep filter order without calling the ranker."""
    notes = [note_factory(f"milk note {i}") for i in range(25)]
    enricher = FakeEnricher(ranking=[24])

    results = await ranked_search("milk", notes, enricher)

    assert results == notes
    assert enricher.rank_calls == []


@pytest.mark.asyncio
async def test_ranked_search_no_matches(note_factory):
    enricher = FakeEnricher()

    results = await ranked_search("milk", [note_factory("bread")], enricher)

    assert results == []
    assert enricher.rank_calls == []


@pytest.mark.asyncio
async def test_ranked_search_failure_keeps_filter_order(note_factory):
    notes = [note_factory("milk a"), note_factory("milk b")]

    results = await ranked_search("milk", notes, FakeEnricher(rank_error=True))

    assert results == notes


def test_search_requires_auth(client: TestClient):
    response = client.get("/api/search", params={"q": "milk"})
    assert response.status_code == 401


def test_search_requires_query(client: TestClient, auth_headers):
    assert client.get("/api/search", headers=auth_headers).status_code == 400
    response = client.get("/api/search", headers=auth_headers, params={"q": "  "})
    assert response.status_code == 400


def test_search_endpoint(client: TestClient, auth_headers, note_factory):
    match = note_factory("Pick up the dry cleaning")
    note_factory("Nothing relevant here")

    response = client.get("/api/search", headers=auth_headers, params={"q": "DRY"})

    assert response.status_code == 200
    data = response.json()
    assert data["query"] == "DRY"
    assert data["matches"] == 1
    assert data["results"][0]["id"] == match.id


def test_semantic_search_without_ai(client: TestClient, auth_headers, note_factory):
    """Without AI processing the semantic endpoint falls back to keyword order."""
    older = note_factory("milk first", age=timedelta(minutes=5))
    newer = note_factory("milk second")

    response = client.get(
        "/api/search/semantic", headers=auth_headers, params={"q": "milk"}
    )

    assert response.status_code == 200
    assert [r["id"] for r in response.json()["results"]] == [newer.id, older.id]


def test_semantic_search_with_ai(make_container, make_client, auth_headers, note_factory):
    older = note_factory("milk first", age=timedelta(minutes=5))
    newer = note_factory("milk second")
    client = make_client(make_container(enricher=FakeEnricher(ranking=[1, 0])))

    response = client.get(
        "/api/search/semantic", headers=auth_headers, params={"q": "milk"}
    )

    assert [r["id"] for r in response.json()["results"]] == [older.id, newer.id]
