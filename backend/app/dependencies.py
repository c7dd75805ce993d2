"""Process-scoped services, created once by create_app and reached from routes via app.state."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from app.config import Settings
from services.coordinator import RecapCoordinator
from services.retention import RetentionSweeper
from services.store import ChannelStore


@dataclass
class RecapServices:
    settings: Settings
    store: ChannelStore
    coordinator: RecapCoordinator
    sweeper: RetentionSweeper


def get_services(request: Request) -> RecapServices:
    return request.app.state.services


def get_settings(request: Request) -> Settings:
    return get_services(request).settings


def get_store(request: Request) -> ChannelStore:
    return get_services(request).store


def get_coordinator(request: Request) -> RecapCoordinator:
    return get_services(request).coordinator
