import fnmatch
import os
import time
import uuid
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx
import jwt
import pytest
from faker import Faker

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["SUPABASE_JWT_SECRET"] = "test-secret-key"
os.environ["GEMINI_API_KEY"] = "test-gemini-key"
os.environ["SKIP_SCHEMA_INIT"] = "true"

TEST_JWT_SECRET = os.environ["SUPABASE_JWT_SECRET"]

fake = Faker()


class FakePipeline:
    """Queues commands and replays them against FakeRedis on execute()"""

    def __init__(self, redis: "FakeRedis"):
        self._redis = redis
        self._commands: list[tuple[str, tuple, dict]] = []

    def __getattr__(self, name: str):
        def queue(*args, **kwargs):
            self._commands.append((name, args, kwargs))
            return self

        return queue

    async def execute(self) -> list[Any]:
        if self._redis.fail_with is not None:
            raise self._redis.fail_with
        results = []
        for name, args, kwargs in self._commands:
            results.append(await getattr(self._redis, name)(*args, **kwargs))
        self._commands = []
        return results


class FakeRedis:
    """In-memory subset of the redis.asyncio client used by the service"""

    def __init__(self):
        self.values: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.sorted_sets: dict[str, dict[str, float]] = {}
        self.fail_with: Optional[Exception] = None
        self.calls: list[str] = []

    def _check(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_with is not None:
            raise self.fail_with

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)

    async def get(self, key: str) -> Optional[str]:
        self._check("get")
        return self.values.get(key)

    async def set(self, key: str, value: str) -> bool:
        self._check("set")
        self.values[key] = value
        return True

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        self._check("setex")
        self.values[key] = value
        self.ttls[key] = ttl
        return True

    async def delete(self, *keys: str) -> int:
        self._check("delete")
        removed = 0
        for key in keys:
            if self.values.pop(key, None) is not None:
                removed += 1
            elif self.sorted_sets.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def exists(self, *keys: str) -> int:
        self._check("exists")
        return sum(1 for key in keys if key in self.values or key in self.sorted_sets)

    async def incr(self, key: str) -> int:
        self._check("incr")
        value = int(self.values.get(key, 0)) + 1
        self.values[key] = str(value)
        return value

    async def expire(self, key: str, seconds: int) -> bool:
        self._check("expire")
        self.ttls[key] = seconds
        return True

    async def zadd(self, key: str, mapping: dict[str, float]) -> int:
        self._check("zadd")
        members = self.sorted_sets.setdefault(key, {})
        added = sum(1 for member in mapping if member not in members)
        members.update(mapping)
        return added

    async def zcard(self, key: str) -> int:
        self._check("zcard")
        return len(self.sorted_sets.get(key, {}))

    async def zrange(self, key: str, start: int, end: int) -> list[str]:
        self._check("zrange")
        ordered = sorted(self.sorted_sets.get(key, {}).items(), key=lambda item: item[1])
        members = [member for member, _ in ordered]
        return members[start:] if end == -1 else members[start : end + 1]

    async def zrem(self, key: str, *members: str) -> int:
        self._check("zrem")
        current = self.sorted_sets.get(key, {})
        return sum(1 for member in members if current.pop(member, None) is not None)

    async def zremrangebyscore(self, key: str, minimum: float, maximum: float) -> int:
        self._check("zremrangebyscore")
        current = self.sorted_sets.get(key, {})
        stale = [member for member, score in current.items() if minimum <= score <= maximum]
        for member in stale:
            del current[member]
        return len(stale)

    async def scan_iter(self, match: str = "*"):
        self._check("scan_iter")
        for key in list(self.values) + list(self.sorted_sets):
            if fnmatch.fnmatchcase(key, match):
                yield key

    async def aclose(self) -> None:
        pass


class FakeGeminiClient:
    """Stands in for GeminiClient; returns canned text or raises a canned error"""

    def __init__(self, text: str = "", error: Optional[Exception] = None, configured: bool = True):
        self.text = text
        self.error = error
        self.configured = configured
        self.prompts: list[str] = []
        self.schemas: list[Optional[dict]] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def generate_content(self, prompt: str, response_schema: Optional[dict] = None):
        self.prompts.append(prompt)
        self.schemas.append(response_schema)
        if self.error is not None:
            raise self.error
        return self.text, {"model_id": "gemini-test", "generation_time_ms": 5}

    @property
    def call_count(self) -> int:
        return len(self.prompts)


class FakeIdentityClient:
    """Stands in for SupabaseAdminClient; users live until delete_user is called"""

    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.deleted: set[str] = set()
        self.lookups: list[str] = []

    @property
    def is_configured(self) -> bool:
        return True

    async def get_user(self, access_token: str) -> Optional[dict[str, Any]]:
        if self.error is not None:
            raise self.error
        claims = jwt.decode(access_token, options={"verify_signature": False})
        self.lookups.append(claims["sub"])
        if claims["sub"] in self.deleted:
            return None
        return {
            "id": claims["sub"],
            "email": claims.get("email"),
            "app_metadata": claims.get("app_metadata") or {},
        }

    async def delete_user(self, user_id: str) -> None:
        if self.error is not None:
            raise self.error
        self.deleted.add(user_id)


def make_recipe_payload(name: Optional[str] = None, **overrides) -> dict[str, Any]:
    """A model-shaped recipe dict using camelCase wire names"""
    payload = {
        "name": name if name is not None else fake.catch_phrase(),
        "description": fake.sentence(nb_words=8),
        "prepTime": f"{fake.random_int(10, 90)} min",
        "difficulty": fake.random_element(["Easy", "Medium", "Hard"]),
        "servings": fake.random_int(1, 8),
        "ingredients": [f"{fake.random_int(1, 500)}g {fake.word()}" for _ in range(4)],
        "steps": [f"{index}. {fake.sentence()}" for index in range(1, 5)],
        "tip": fake.sentence(),
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def limiter_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def identity_client() -> FakeIdentityClient:
    return FakeIdentityClient()


@pytest.fixture
def gemini_factory():
    return FakeGeminiClient


@pytest.fixture
def recipe_payload_factory():
    return make_recipe_payload


@pytest.fixture
def recipe_payloads() -> list[dict[str, Any]]:
    return [make_recipe_payload() for _ in range(3)]


@pytest.fixture
def test_user() -> dict[str, Any]:
    """A Supabase-style user for authentication tests."""
    return {
        "id": str(uuid.uuid4()),
        "email": fake.email(),
    }


@pytest.fixture
def make_token():
    """Factory for Supabase-style HS256 access tokens"""

    def _make_token(
        user_id: str,
        email: Optional[str] = None,
        admin: bool = False,
        expires_in: int = 3600,
        secret: str = TEST_JWT_SECRET,
        audience: str = "authenticated",
    ) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "email": email,
            "role": "authenticated",
            "aud": audience,
            "iat": int(time.time()),
            "exp": now + timedelta(seconds=expires_in),
            "app_metadata": {"provider": "email", "role": "admin"} if admin else {"provider": "email"},
        }
        return jwt.encode(payload, secret, algorithm="HS256")

    return _make_token


@pytest.fixture
def auth_headers(make_token, test_user) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(test_user['id'], test_user['email'])}"}


@pytest.fixture
async def http_client(identity_client) -> AsyncGenerator[httpx.AsyncClient, None]:
    """In-process HTTP client against the recipes app (lifespan not run)."""
    from services.recipes.main import app

    app.state.identity_client = identity_client

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
