import json
import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from services.recipes.errors import PersistenceError
from services.recipes.favorites_repository import FavoritesRepository, FeedbackRepository
from shared.supabase_admin import SupabaseAdminError


@pytest.fixture
def db():
    return AsyncMock()


@pytest.fixture
def identity_client():
    return AsyncMock()


@pytest.fixture
def repository(db, identity_client) -> FavoritesRepository:
    return FavoritesRepository(db, identity_client)


@pytest.fixture
def favorite_row(test_user, recipe_payloads):
    return {
        "id": uuid.uuid4(),
        "user_id": uuid.UUID(test_user["id"]),
        "recipe_id": "tomato-soup-1700000000000-0",
        "recipe_data": json.dumps(recipe_payloads[0]),
        "created_at": datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc),
    }


@pytest.mark.unit
@pytest.mark.asyncio
async def test_upsert_favorite_uses_conflict_update(repository, db, favorite_row, test_user, recipe_payloads):
    db.fetch_one.return_value = favorite_row

    favorite = await repository.upsert_favorite(
        test_user["id"], favorite_row["recipe_id"], recipe_payloads[0]
    )

    query, *args = db.fetch_one.await_args.args
    assert "ON CONFLICT (user_id, recipe_id)" in query
    assert "DO UPDATE SET recipe_data = EXCLUDED.recipe_data" in query
    assert args == [test_user["id"], favorite_row["recipe_id"], json.dumps(recipe_payloads[0])]
    assert favorite.user_id == test_user["id"]
    assert favorite.recipe_data == recipe_payloads[0]
    assert favorite.model_dump(by_alias=True)["recipeId"] == favorite_row["recipe_id"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_upsert_failure_becomes_persistence_error(repository, db, test_user):
    db.fetch_one.side_effect = ConnectionRefusedError("connection refused on 10.0.0.5")

    with pytest.raises(PersistenceError) as exc_info:
        await repository.upsert_favorite(test_user["id"], "recipe-1", {"name": "Soup"})

    assert "connection refused" in str(exc_info.value)
    assert "connection refused" not in exc_info.value.public_message
    assert exc_info.value.status_code == 500


@pytest.mark.unit
@pytest.mark.asyncio
async def test_delete_favorite_returns_removed_record(repository, db, favorite_row, test_user):
    db.fetch_one.return_value = favorite_row

    removed = await repository.delete_favorite(test_user["id"], favorite_row["recipe_id"])

    assert removed.recipe_id == favorite_row["recipe_id"]
    assert db.fetch_one.await_args.args[0].strip().startswith("DELETE FROM favorites")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_delete_missing_favorite_returns_none(repository, db, test_user):
    db.fetch_one.return_value = None

    assert await repository.delete_favorite(test_user["id"], "unknown") is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_list_favorites_newest_first(repository, db, favorite_row, test_user):
    db.fetch_all.return_value = [favorite_row, {**favorite_row, "recipe_id": "older"}]

    favorites = await repository.list_favorites(test_user["id"])

    assert [f.recipe_id for f in favorites] == [favorite_row["recipe_id"], "older"]
    assert "ORDER BY created_at DESC" in db.fetch_all.await_args.args[0]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_favorite_exists(repository, db, test_user):
    db.fetch_one.return_value = {"found": 1}
    assert await repository.favorite_exists(test_user["id"], "recipe-1") is True

    db.fetch_one.return_value = None
    assert await repository.favorite_exists(test_user["id"], "recipe-1") is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_favorite_exists_failure_is_not_false(repository, db, test_user):
    db.fetch_one.side_effect = TimeoutError("statement timeout")

    with pytest.raises(PersistenceError):
        await repository.favorite_exists(test_user["id"], "recipe-1")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_delete_all_favorites_returns_count(repository, db, test_user):
    db.execute.return_value = "DELETE 3"

    assert await repository.delete_all_favorites_for_user(test_user["id"]) == 3
    db.execute.assert_awaited_once_with("DELETE FROM favorites WHERE user_id = $1", test_user["id"])


@pytest.mark.unit
@pytest.mark.asyncio
async def test_delete_identity_wraps_admin_errors(repository, identity_client, test_user):
    identity_client.delete_user.side_effect = SupabaseAdminError("Supabase Auth error 500", 500)

    with pytest.raises(PersistenceError):
        await repository.delete_identity(test_user["id"])

    identity_client.delete_user.assert_awaited_once_with(test_user["id"])


@pytest.mark.unit
@pytest.mark.asyncio
async def test_add_feedback_returns_id(db):
    feedback_id = uuid.uuid4()
    db.fetch_one.return_value = {"id": feedback_id}

    result = await FeedbackRepository(db).add_feedback(
        "The soup recipe was great", email="cook@chefia.app"
    )

    assert result == str(feedback_id)
    query, *args = db.fetch_one.await_args.args
    assert "INSERT INTO recipe_feedback" in query
    assert args == [None, "cook@chefia.app", "The soup recipe was great"]
