from unittest.mock import AsyncMock, MagicMock

import pytest

from services.recipes import main
from shared.config import Settings


@pytest.fixture
def database():
    db = MagicMock()
    db.close = AsyncMock()
    return db


@pytest.fixture
def redis_client():
    client = MagicMock()
    client.aclose = AsyncMock()
    return client


@pytest.mark.unit
@pytest.mark.asyncio
async def test_startup_refuses_production_without_jwt_secret(monkeypatch, database):
    create_database = AsyncMock(return_value=database)
    monkeypatch.setattr(main, "get_settings", lambda: Settings(environment="production"))
    monkeypatch.setattr(main, "create_database", create_database)

    with pytest.raises(ValueError, match="SUPABASE_JWT_SECRET"):
        async with main.lifespan(main.app):
            pass

    create_database.assert_not_awaited()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_database_closed_when_redis_startup_fails(monkeypatch, database):
    monkeypatch.setattr(main, "get_settings", lambda: Settings(supabase_jwt_secret="secret"))
    monkeypatch.setattr(main, "create_database", AsyncMock(return_value=database))
    monkeypatch.setattr(main, "create_redis", AsyncMock(side_effect=ConnectionError("redis down")))

    with pytest.raises(ConnectionError):
        async with main.lifespan(main.app):
            pass

    database.close.assert_awaited_once()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_lifespan_wires_state_and_closes_resources(monkeypatch, database, redis_client):
    monkeypatch.setattr(main, "get_settings", lambda: Settings(supabase_jwt_secret="secret"))
    monkeypatch.setattr(main, "create_database", AsyncMock(return_value=database))
    monkeypatch.setattr(main, "create_redis", AsyncMock(return_value=redis_client))

    async with main.lifespan(main.app):
        assert main.app.state.identity_client is not None
        assert main.app.state.favorites_repository.identity_client is main.app.state.identity_client
        database.close.assert_not_awaited()

    redis_client.aclose.assert_awaited_once()
    database.close.assert_awaited_once()
