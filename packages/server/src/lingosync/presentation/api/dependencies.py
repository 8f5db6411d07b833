# packages/server/src/lingosync/presentation/api/dependencies.py
from __future__ import annotations

from fastapi import Request

from lingosync.application import (
    Orchestrator,
    TranslationQueryService,
    WebhookIngestor,
)
from lingosync.di import AppContainer


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


def get_orchestrator(request: Request) -> Orchestrator:
    return get_container(request).orchestrator()


def get_query_service(request: Request) -> TranslationQueryService:
    return get_container(request).query_service()


def get_webhook_ingestor(request: Request) -> WebhookIngestor:
    return get_container(request).webhook_ingestor()
