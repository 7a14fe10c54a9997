"""Router registration helpers."""
from __future__ import annotations

from fastapi import APIRouter

from .tests import router as tests_router
from .ws import router as websocket_router


def get_routers() -> list[APIRouter]:
    return [
        tests_router,
        websocket_router,
    ]
