"""
Identity-provider test fixtures (Supabase).

``identityAuth`` flow steps create a throwaway confirmed user through the
GoTrue admin API, sign in with the public key, and inject the resulting
session into the page the way the app's client library stores it (a
localStorage entry, or chunked cookies for SSR helpers).

Usage:
    fixture = IdentityFixture(config.identity, origin=config.origin)
    await fixture.authenticate(page, email="qa@example.com", password="pw")
    ...
    await fixture.sign_out(page)
"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import quote

import httpx

from uxcheck.config import IdentityConfig
from uxcheck.errors import IdentityProviderError

logger = logging.getLogger("uxcheck.identity")

REQUEST_TIMEOUT = 30.0
NAVIGATION_TIMEOUT_MS = 15_000
# Browsers cap a cookie at ~4KB; Supabase SSR splits sessions into numbered chunks.
COOKIE_CHUNK_SIZE = 3180
MAX_COOKIE_CHUNKS = 10
PROFILE_FIELDS = ("role", "full_name")

_JS_SET_COOKIE = (
    "([name, value]) => { document.cookie = `${name}=${value}; path=/; SameSite=Lax;`; }"
)
_JS_CLEAR_COOKIES = """
([key, count]) => {
    const expired = 'path=/; expires=Thu, 01 Jan 1970 00:00:00 GMT;';
    document.cookie = `${key}=; ${expired}`;
    for (let i = 0; i < count; i++) {
        document.cookie = `${key}.${i}=; ${expired}`;
    }
}
""".strip()
_JS_SET_STORAGE = "([key, value]) => localStorage.setItem(key, value)"
_JS_REMOVE_STORAGE = "(key) => localStorage.removeItem(key)"


def _encode_uri_component(value: str) -> str:
    return quote(value, safe="-_.!~*'()")


class IdentityFixture:
    """Creates test users and manages browser sessions for one identity config."""

    def __init__(
        self,
        config: IdentityConfig,
        origin: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.origin = origin
        self._transport = transport

    def _client(self, key: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.url.rstrip("/"),
            headers={"apikey": key, "Authorization": f"Bearer {key}"},
            timeout=REQUEST_TIMEOUT,
            transport=self._transport,
        )

    # =========================================================================
    # Provider API
    # =========================================================================

    async def create_test_user(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Create a confirmed user, deleting any existing user with that email.

        When metadata carries profile fields (``role``, ``full_name``) they are
        also upserted into the ``profiles`` table; a failed upsert is logged,
        not raised.
        """
        metadata = metadata or {}
        async with self._client(self.config.service_role_key) as admin:
            existing = await admin.get("/auth/v1/admin/users")
            self._raise_for_status(existing, "list users")
            for user in existing.json().get("users", []):
                if user.get("email") == email:
                    resp = await admin.delete(f"/auth/v1/admin/users/{user['id']}")
                    self._raise_for_status(resp, "delete existing user")
                    logger.debug("Deleted existing test user %s", email)

            resp = await admin.post(
                "/auth/v1/admin/users",
                json={
                    "email": email,
                    "password": password,
                    "email_confirm": True,
                    "user_metadata": metadata,
                },
            )
            self._raise_for_status(resp, "create user")
            created = resp.json()
            user = created.get("user", created)

            if any(metadata.get(k) for k in PROFILE_FIELDS):
                profile = await admin.post(
                    "/rest/v1/profiles",
                    json={**metadata, "id": user["id"]},
                    headers={"Prefer": "resolution=merge-duplicates"},
                )
                if profile.is_error:
                    logger.warning("Profile upsert warning: %s", _error_text(profile))

        return user

    async def sign_in(self, email: str, password: str) -> dict[str, Any]:
        """Sign in with email/password and return the session object."""
        async with self._client(self.config.anon_key) as anon:
            resp = await anon.post(
                "/auth/v1/token",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
            )
        self._raise_for_status(resp, "sign in")
        return resp.json()

    @staticmethod
    def _raise_for_status(resp: httpx.Response, operation: str) -> None:
        if resp.is_error:
            raise IdentityProviderError(f"Failed to {operation}: {_error_text(resp)}")

    # =========================================================================
    # Page session handling
    # =========================================================================

    async def authenticate(
        self,
        page: Any,
        email: str,
        password: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Create a user, sign in, and store the session in the page."""
        await self.create_test_user(email, password, metadata)
        session = await self.sign_in(email, password)
        await self._ensure_on_app_origin(page)

        serialized = json.dumps(session, separators=(",", ":"))
        if self.config.storage_type == "cookie":
            await self._inject_session_cookies(page, serialized)
        else:
            await page.evaluate(_JS_SET_STORAGE, [self.config.storage_key, serialized])

        await page.reload(wait_until="load")
        await page.wait_for_timeout(1000)
        logger.info("Authenticated test user %s", email)

    async def sign_out(self, page: Any) -> None:
        """Remove the stored session from the page."""
        await self._ensure_on_app_origin(page)
        if self.config.storage_type == "cookie":
            await self._clear_session_cookies(page)
        else:
            await page.evaluate(_JS_REMOVE_STORAGE, self.config.storage_key)

        await page.reload(wait_until="load")
        await page.wait_for_timeout(500)

    async def _ensure_on_app_origin(self, page: Any) -> None:
        """Storage writes are per-origin, so leave about:blank first."""
        if not page.url or page.url == "about:blank":
            await page.goto(self.origin, wait_until="load", timeout=NAVIGATION_TIMEOUT_MS)

    async def _inject_session_cookies(self, page: Any, serialized: str) -> None:
        encoded = _encode_uri_component(serialized)
        chunks = [
            encoded[i : i + COOKIE_CHUNK_SIZE] for i in range(0, len(encoded), COOKIE_CHUNK_SIZE)
        ]
        await self._clear_session_cookies(page)
        key = self.config.storage_key
        for i, chunk in enumerate(chunks):
            name = key if len(chunks) == 1 else f"{key}.{i}"
            await page.evaluate(_JS_SET_COOKIE, [name, chunk])

    async def _clear_session_cookies(self, page: Any) -> None:
        await page.evaluate(_JS_CLEAR_COOKIES, [self.config.storage_key, MAX_COOKIE_CHUNKS])


def _error_text(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return f"HTTP {resp.status_code}"
    if isinstance(body, dict):
        for key in ("msg", "message", "error_description", "error"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {resp.status_code}"
