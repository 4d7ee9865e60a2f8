"""Tests for digests and statistics."""

from datetime import timedelta

import pytest
from fakes import FakeEnricher
from fastapi.testclient import TestClient

from voicenotes.schemas.note import ProcessingStatus
from voicenotes.schemas.search import DigestPeriod
from voicenotes.services.note_service import NoteService
from voicenotes.utils.exceptions import BackendUnavailableError


@pytest.mark.asyncio
async def test_digest_empty_period(storage):
    """An empty period answers with a message and never calls the model."""
    enricher = FakeEnricher()
    service = NoteService(storage, enricher)

    digest = await service.generate_digest(DigestPeriod.DAILY)

    assert digest.note_count == 0
    assert digest.summary == "No voice notes found in the daily period."
    assert enricher.digest_calls == []


@pytest.mark.asyncio
async def test_digest_window_and_order(storage, note_factory):
    """Only real transcripts inside the window are summarized, oldest first."""
    note_factory("too old", age=timedelta(days=2))
    note_factory(failed=True)
    note_factory(text=None, status=ProcessingStatus.PENDING)
    note_factory("second", age=timedelta(hours=1))
    note_factory("first", age=timedelta(hours=5))
    enricher = FakeEnricher()
    service = NoteService(storage, enricher)

    digest = await service.generate_digest(DigestPeriod.DAILY)

    assert digest.note_count == 2
    assert digest.summary == "daily digest of 2 notes"
    texts, period = enricher.digest_calls[0]
    assert texts == ["first", "second"]
    assert period == DigestPeriod.DAILY


@pytest.mark.asyncio
async def test_weekly_digest_window(storage, note_factory):
    note_factory("this week", age=timedelta(days=3))
    note_factory("last month", age=timedelta(days=30))
    enricher = FakeEnricher()

    digest = await NoteService(storage, enricher).generate_digest(DigestPeriod.WEEKLY)

    assert digest.note_count == 1
    assert enricher.digest_calls[0][0] == ["this week"]


@pytest.mark.asyncio
async def test_digest_without_ai(storage, note_factory):
    note_factory("something happened")

    with pytest.raises(BackendUnavailableError):
        await NoteService(storage).generate_digest(DigestPeriod.DAILY)


def test_stats(storage, note_factory):
    note_factory("one two three", duration=30.0)
    note_factory("four five", duration=15.0)
    note_factory(failed=True)

    stats = NoteService(storage).get_stats()

    assert stats.total_notes == 3
    assert stats.total_duration_seconds == 45.0
    assert stats.total_words == 5
    assert stats.average_duration_seconds == 15.0
    assert stats.average_words == 1


def test_stats_empty(storage):
    stats = NoteService(storage).get_stats()
    assert stats.total_notes == 0
    assert stats.average_duration_seconds == 0.0
    assert stats.average_words == 0


def test_summary_endpoint_invalid_period(client: TestClient, auth_headers):
    response = client.post("/api/summary/monthly", headers=auth_headers)
    assert response.status_code == 400


def test_summary_endpoint_empty(client: TestClient, auth_headers):
    response = client.post("/api/summary/weekly", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {
        "period": "weekly",
        "note_count": 0,
        "summary": "No voice notes found in the weekly period.",
    }


def test_summary_endpoint_without_ai(client: TestClient, auth_headers, note_factory):
    note_factory("recent note")
    response = client.post("/api/summary/daily", headers=auth_headers)
    assert response.status_code == 503


def test_summary_endpoint(make_container, make_client, auth_headers, note_factory):
    note_factory("recent note")
    client = make_client(make_container(enricher=FakeEnricher()))

    response = client.post("/api/summary/daily", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["summary"] == "daily digest of 1 notes"


def test_stats_endpoint(client: TestClient, auth_headers, note_factory):
    note_factory("hello there", duration=8.0)
    response = client.get("/api/stats", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["total_words"] == 2
