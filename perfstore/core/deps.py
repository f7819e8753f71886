# perfstore/core/deps.py
from fastapi import Request

from perfstore.database import Store


async def get_store(request: Request) -> Store:
    """The store opened at startup; tests override this dependency with their own handle."""
    return request.app.state.store
