"""API dependencies for dependency injection."""

import secrets
from typing import Annotated

from fastapi import Depends, Header, Query, Request

from voicenotes.config import Settings
from voicenotes.services.container import ServiceContainer
from voicenotes.services.note_service import NoteService
from voicenotes.services.pipeline import NotePipeline
from voicenotes.tasks.processing_tasks import PipelineWorker
from voicenotes.utils.exceptions import AuthenticationError


def get_container(request: Request) -> ServiceContainer:
    """Get the service container built at startup."""
    return request.app.state.container


ContainerDep = Annotated[ServiceContainer, Depends(get_container)]


def get_settings(container: ContainerDep) -> Settings:
    return container.settings


def get_pipeline(container: ContainerDep) -> NotePipeline:
    return container.pipeline


def get_note_service(container: ContainerDep) -> NoteService:
    return container.note_service


def get_worker(container: ContainerDep) -> PipelineWorker:
    return container.worker


SettingsDep = Annotated[Settings, Depends(get_settings)]
PipelineDep = Annotated[NotePipeline, Depends(get_pipeline)]
NoteServiceDep = Annotated[NoteService, Depends(get_note_service)]
WorkerDep = Annotated[PipelineWorker, Depends(get_worker)]


def require_api_key(
    settings: SettingsDep,
    x_api_key: Annotated[str | None, Header()] = None,
    api_key: Annotated[str | None, Query(alias="apiKey")] = None,
) -> None:
    """
    Check the shared API secret.

    Accepts the ``X-API-Key`` header or the ``apiKey`` query parameter.
    When no secret is configured every request is rejected.

    Raises:
        HTTPException: 401 if the key is missing or wrong
    """
    provided = x_api_key or api_key
    expected = settings.api_secret_key
    if not expected or not provided:
        raise AuthenticationError().to_http_exception()
    if not secrets.compare_digest(provided.encode(), expected.encode()):
        raise AuthenticationError().to_http_exception()


ApiKeyDep = Depends(require_api_key)
