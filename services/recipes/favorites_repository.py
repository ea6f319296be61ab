# services/recipes/favorites_repository.py
import json
import logging
from typing import Any, Optional

from services.recipes.errors import PersistenceError
from services.recipes.models import Favorite
from shared.database import Database
from shared.json_utils import parse_jsonb_field
from shared.supabase_admin import SupabaseAdminClient

logger = logging.getLogger(__name__)

FAVORITE_COLUMNS = "id, user_id, recipe_id, recipe_data, created_at"


def _row_to_favorite(row: dict[str, Any]) -> Favorite:
    return Favorite(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        recipe_id=row["recipe_id"],
        recipe_data=parse_jsonb_field(row.get("recipe_data"), field_name="recipe_data"),
        created_at=row["created_at"],
    )


class FavoritesRepository:
    """
    Per-user favorite recipes in Postgres plus identity removal through the
    Supabase Auth admin API.

    Every remote failure is re-raised as ``PersistenceError`` with the original
    message, which is meant for logs only.
    """

    def __init__(self, db: Database, identity_client: SupabaseAdminClient):
        self.db = db
        self.identity_client = identity_client

    async def upsert_favorite(
        self, user_id: str, recipe_id: str, recipe_data: dict[str, Any]
    ) -> Favorite:
        """Insert a favorite, replacing data and timestamp if the pair already exists"""
        logger.info(f"FAVORITES: Adding recipe {recipe_id} for user {user_id}")
        try:
            row = await self.db.fetch_one(
                f"""
                INSERT INTO favorites (user_id, recipe_id, recipe_data, created_at)
                VALUES ($1, $2, $3::jsonb, CURRENT_TIMESTAMP)
                ON CONFLICT (user_id, recipe_id)
                DO UPDATE SET recipe_data = EXCLUDED.recipe_data,
                              created_at = EXCLUDED.created_at
                RETURNING {FAVORITE_COLUMNS}
                """,
                user_id,
                recipe_id,
                json.dumps(recipe_data),
            )
        except Exception as e:
            raise PersistenceError(f"upsert_favorite failed: {e}") from e

        if row is None:
            raise PersistenceError("upsert_favorite returned no row")
        return _row_to_favorite(row)

    async def delete_favorite(self, user_id: str, recipe_id: str) -> Optional[Favorite]:
        """Remove one favorite; returns the removed record or None if there was none"""
        logger.info(f"FAVORITES: Removing recipe {recipe_id} for user {user_id}")
        try:
            row = await self.db.fetch_one(
                f"""
                DELETE FROM favorites
                WHERE user_id = $1 AND recipe_id = $2
                RETURNING {FAVORITE_COLUMNS}
                """,
                user_id,
                recipe_id,
            )
        except Exception as e:
            raise PersistenceError(f"delete_favorite failed: {e}") from e

        return _row_to_favorite(row) if row else None

    async def list_favorites(self, user_id: str) -> list[Favorite]:
        """All favorites of a user, newest first"""
        try:
            rows = await self.db.fetch_all(
                f"""
                SELECT {FAVORITE_COLUMNS}
                FROM favorites
                WHERE user_id = $1
                ORDER BY created_at DESC
                """,
                user_id,
            )
        except Exception as e:
            raise PersistenceError(f"list_favorites failed: {e}") from e

        logger.info(f"FAVORITES: Retrieved {len(rows)} favorites for user {user_id}")
        return [_row_to_favorite(row) for row in rows]

    async def favorite_exists(self, user_id: str, recipe_id: str) -> bool:
        try:
            row = await self.db.fetch_one(
                "SELECT 1 AS found FROM favorites WHERE user_id = $1 AND recipe_id = $2",
                user_id,
                recipe_id,
            )
        except Exception as e:
            raise PersistenceError(f"favorite_exists failed: {e}") from e

        return row is not None

    async def delete_all_favorites_for_user(self, user_id: str) -> int:
        """Remove every favorite of a user, returns how many rows were deleted"""
        logger.info(f"FAVORITES: Clearing all favorites for user {user_id}")
        try:
            result = await self.db.execute("DELETE FROM favorites WHERE user_id = $1", user_id)
        except Exception as e:
            raise PersistenceError(f"delete_all_favorites_for_user failed: {e}") from e

        # asyncpg returns the command tag, e.g. "DELETE 3"
        try:
            return int(result.split()[-1])
        except (AttributeError, IndexError, ValueError):
            return 0

    async def delete_identity(self, user_id: str) -> None:
        logger.info(f"FAVORITES: Deleting identity {user_id}")
        try:
            await self.identity_client.delete_user(user_id)
        except Exception as e:
            raise PersistenceError(f"delete_identity failed: {e}") from e


class FeedbackRepository:
    """Stores free-text feedback submitted from the app."""

    def __init__(self, db: Database):
        self.db = db

    async def add_feedback(
        self, message: str, email: Optional[str] = None, user_id: Optional[str] = None
    ) -> str:
        try:
            row = await self.db.fetch_one(
                """
                INSERT INTO recipe_feedback (user_id, email, message)
                VALUES ($1, $2, $3)
                RETURNING id
                """,
                user_id,
                email,
                message,
            )
        except Exception as e:
            raise PersistenceError(f"add_feedback failed: {e}") from e

        if row is None:
            raise PersistenceError("add_feedback returned no row")
        return str(row["id"])
