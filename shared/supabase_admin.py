# shared/supabase_admin.py
import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


class SupabaseAdminError(Exception):
    """Raised when the Supabase Auth admin API rejects a request"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SupabaseAdminClient:
    """
    Service-role client for Supabase Auth (GoTrue).

    Resolves access tokens to live users and deletes users through the admin
    endpoints.
    """

    def __init__(
        self,
        supabase_url: Optional[str],
        service_role_key: Optional[str],
        http_client: httpx.AsyncClient,
    ):
        self.base_url = (supabase_url or "").rstrip("/")
        self.service_role_key = service_role_key
        self.http_client = http_client

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url and self.service_role_key)

    def _headers(self) -> dict:
        return {
            "apikey": self.service_role_key,
            "Authorization": f"Bearer {self.service_role_key}",
            "Content-Type": "application/json",
        }

    async def get_user(self, access_token: str) -> Optional[dict]:
        """
        Resolve an access token to its user.

        Returns None when Supabase rejects the token or the user no longer
        exists; any other failure raises SupabaseAdminError.
        """
        if not self.is_configured:
            raise SupabaseAdminError("Supabase admin credentials not configured")

        try:
            response = await self.http_client.get(
                f"{self.base_url}/auth/v1/user",
                headers={
                    "apikey": self.service_role_key,
                    "Authorization": f"Bearer {access_token}",
                },
            )
        except httpx.HTTPError as e:
            raise SupabaseAdminError(f"Connection error to Supabase Auth: {e}")

        if response.status_code in (401, 403, 404):
            return None
        if response.status_code != 200:
            raise SupabaseAdminError(
                f"Supabase Auth error {response.status_code}: {response.text[:300]}",
                status_code=response.status_code,
            )

        try:
            user = response.json()
        except ValueError as e:
            raise SupabaseAdminError(f"Invalid Supabase Auth response: {e}")

        if not isinstance(user, dict) or not user.get("id"):
            return None
        return user

    async def delete_user(self, user_id: str) -> None:
        """Permanently delete an auth user"""
        if not self.is_configured:
            raise SupabaseAdminError("Supabase admin credentials not configured")

        try:
            response = await self.http_client.delete(
                f"{self.base_url}/auth/v1/admin/users/{user_id}",
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            raise SupabaseAdminError(f"Connection error to Supabase Auth: {e}")

        if response.status_code not in (200, 204):
            try:
                error_data = response.json()
                error_message = error_data.get("msg") or error_data.get("message") or response.text
            except (ValueError, AttributeError):
                error_message = response.text
            raise SupabaseAdminError(
                f"Supabase Auth error {response.status_code}: {error_message}",
                status_code=response.status_code,
            )

        logger.info(f"SUPABASE: Deleted auth user {user_id}")
