"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from healthsync.config import Settings, get_settings
from healthsync.sync.availability import AvailabilityProber, AvailabilityStore
from healthsync.sync.client import RemoteStoreClient


def get_remote_client(request: Request) -> RemoteStoreClient:
    return request.app.state.remote_client


def get_availability_store(request: Request) -> AvailabilityStore:
    return request.app.state.availability_store


def get_prober(request: Request) -> AvailabilityProber:
    return request.app.state.prober


# Annotated shortcuts for route signatures
RemoteClient = Annotated[RemoteStoreClient, Depends(get_remote_client)]
Availability = Annotated[AvailabilityStore, Depends(get_availability_store)]
Prober = Annotated[AvailabilityProber, Depends(get_prober)]
AppSettings = Annotated[Settings, Depends(get_settings)]
