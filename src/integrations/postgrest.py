# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Profile and permission lookups against a PostgREST API (e.g. Supabase)."""

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from src.rbac.permissions import Identity, Permission, Role
from src.services.stores import PermissionStoreError, ProfileStoreError

logger = logging.getLogger(__name__)


class PostgrestDirectory:
    """Implements both the profile and the permission store over HTTP.

    Expects the hosted schema: ``users`` rows with ``company_id``, ``role_id``
    and a ``meta.custom_permissions`` id list, ``roles`` rows carrying their
    grants in a JSON ``permissions`` column, and a ``permissions`` table.
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        access_token: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.url = url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=f"{self.url}/rest/v1",
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {access_token or api_key}",
                "Accept": "application/json",
            },
            timeout=timeout,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def health_check(self) -> tuple[bool, str]:
        """Check connectivity to the REST endpoint."""
        try:
            resp = await self._client.get("/")
            if resp.status_code == 200:
                return True, "Connected"
            return False, f"HTTP {resp.status_code}"
        except httpx.ConnectError:
            return False, "Connection failed"
        except httpx.TimeoutException:
            return False, "Connection timeout"

    async def fetch_profile(self, identity_ref: str) -> Identity | None:
        """Fetch a user together with its role."""
        try:
            resp = await self._client.get(
                "/users",
                params={
                    "select": "*,role:roles(*)",
                    "id": f"eq.{identity_ref}",
                },
            )
            resp.raise_for_status()
            rows = resp.json()
        except httpx.HTTPError as e:
            logger.error(f"Profile lookup for {identity_ref} failed: {e}")
            raise ProfileStoreError(f"Profile lookup failed: {e}") from e

        if not rows:
            return None

        try:
            return self._to_identity(rows[0])
        except (KeyError, TypeError, ValueError) as e:
            raise ProfileStoreError(f"Malformed profile {identity_ref}: {e}") from e

    async def fetch_permissions(self, ids: Sequence[str]) -> list[Permission]:
        """Resolve permission ids; a missing table surfaces as a store error."""
        if not ids:
            return []
        try:
            resp = await self._client.get(
                "/permissions",
                params={"select": "*", "id": f"in.({','.join(ids)})"},
            )
            resp.raise_for_status()
            rows = resp.json()
        except httpx.HTTPError as e:
            raise PermissionStoreError(f"Permission lookup failed: {e}") from e

        permissions = []
        for row in rows:
            try:
                permissions.append(Permission.from_record(row))
            except ValueError as e:
                logger.warning(f"Skipping malformed permission {row.get('id')}: {e}")
        return permissions

    def _to_identity(self, row: dict[str, Any]) -> Identity:
        role_row = row.get("role")
        role = None
        if role_row:
            role = Role(
                id=str(role_row["id"]),
                name=role_row["name"],
                company_id=role_row.get("company_id"),
                description=role_row.get("description"),
                permissions=tuple(
                    Permission.from_record(p) for p in role_row.get("permissions") or []
                ),
            )

        meta = row.get("meta") or {}
        return Identity(
            id=str(row["id"]),
            email=row["email"],
            name=row.get("name"),
            company_id=row.get("company_id"),
            role=role,
            custom_permission_refs=tuple(
                str(ref) for ref in meta.get("custom_permissions") or []
            ),
        )
