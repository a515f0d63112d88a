# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Per-session authentication state and capability checks.

A :class:`SessionContext` owns one session's lifecycle::

    UNAUTHENTICATED -> LOADING -> AUTHENTICATED -> SIGNING_OUT -> UNAUTHENTICATED
                          |
                          +-> UNAUTHENTICATED (profile missing, lookup error, timeout)

It is created by its owner (a request handler, a client, a test) and handed to
callers; there is no process-wide instance. The resolved state is held in an
immutable :class:`SessionSnapshot` that is swapped wholesale, so readers see
either the old or the new snapshot and never a mix.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

from src.events import AppEvent, EventBus, EventPayload
from src.models import ActivityAction, ActivityResource
from src.rbac.evaluator import has_permission
from src.rbac.permissions import Identity, Permission, PermissionScope, Role
from src.services.activity_service import ActivityEntry, AuditSink
from src.services.rbac_service import resolve_effective_permissions
from src.services.stores import PermissionStore, ProfileStore, ProfileStoreError

logger = logging.getLogger(__name__)

DEFAULT_RESOLUTION_TIMEOUT = 10.0


class AuthState(str, Enum):
    """Lifecycle states of a session."""

    UNAUTHENTICATED = "unauthenticated"
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    SIGNING_OUT = "signing_out"


class ResolutionError(Exception):
    """Profile resolution failed; the sign-in attempt is over."""


class ProfileNotFoundError(ResolutionError):
    """The identity is authenticated upstream but has no profile."""


class ResolutionTimeoutError(ResolutionError):
    """Resolution did not finish within the configured timeout."""


@dataclass(frozen=True)
class SessionSnapshot:
    """Everything resolved for one authentication event."""

    state: AuthState
    identity: Identity | None = None
    permissions: tuple[Permission, ...] = ()

    @property
    def role(self) -> Role | None:
        return self.identity.role if self.identity else None


_SIGNED_OUT = SessionSnapshot(state=AuthState.UNAUTHENTICATED)


class SessionContext:
    """Authentication lifecycle plus the single capability-check entry point."""

    def __init__(
        self,
        profiles: ProfileStore,
        permissions: PermissionStore,
        audit: AuditSink | None = None,
        resolution_timeout: float = DEFAULT_RESOLUTION_TIMEOUT,
    ) -> None:
        """Initialize an unauthenticated session.

        Args:
            profiles: Profile/role datastore
            permissions: Store used to resolve custom permission references
            audit: Optional sink for sign-in/sign-out activity
            resolution_timeout: Seconds allowed for one resolution
        """
        self._profiles = profiles
        self._permission_store = permissions
        self._audit = audit
        self._resolution_timeout = resolution_timeout

        self._snapshot = _SIGNED_OUT
        self._attempt = 0
        self._identity_ref: str | None = None
        self.last_error: Exception | None = None
        self._subscriptions: list[tuple[AppEvent, object]] = []

    # Read-only views -----------------------------------------------------

    @property
    def state(self) -> AuthState:
        return self._snapshot.state

    @property
    def snapshot(self) -> SessionSnapshot:
        return self._snapshot

    @property
    def identity(self) -> Identity | None:
        return self._snapshot.identity

    @property
    def role(self) -> Role | None:
        return self._snapshot.role

    @property
    def company_id(self) -> str | None:
        identity = self._snapshot.identity
        return identity.company_id if identity else None

    @property
    def permissions(self) -> tuple[Permission, ...]:
        return self._snapshot.permissions

    @property
    def is_authenticated(self) -> bool:
        return self._snapshot.state == AuthState.AUTHENTICATED

    def check_capability(
        self,
        resource: str,
        action: str,
        scope: str = PermissionScope.COMPANY.value,
    ) -> bool:
        """Check a capability against the current effective permission set.

        Always False unless the session is authenticated.
        """
        snapshot = self._snapshot
        if snapshot.state != AuthState.AUTHENTICATED:
            return False
        return has_permission(snapshot.permissions, resource, action, scope)

    # Lifecycle -----------------------------------------------------------

    async def sign_in(self, identity_ref: str) -> bool:
        """Resolve an identity after an explicit sign-in."""
        resolved = await self._resolve(identity_ref)
        if resolved:
            self._record(ActivityAction.LOGIN, "Signed in")
        return resolved

    async def restore(self, identity_ref: str) -> bool:
        """Resolve an identity from a restored provider session."""
        return await self._resolve(identity_ref)

    async def refresh(self) -> bool:
        """Recompute the snapshot for the held identity (e.g. after a role change)."""
        identity = self._snapshot.identity
        if identity is None:
            return False
        return await self._resolve(identity.id)

    async def sign_out(self) -> None:
        """Leave the session, recording the sign-out on a best-effort basis."""
        # Any resolution still in flight is superseded
        self._attempt += 1

        if self._snapshot.state == AuthState.AUTHENTICATED:
            self._snapshot = SessionSnapshot(
                state=AuthState.SIGNING_OUT,
                identity=self._snapshot.identity,
                permissions=self._snapshot.permissions,
            )
            self._record(ActivityAction.LOGOUT, "Signed out")

        self._snapshot = _SIGNED_OUT
        self.last_error = None
        logger.debug("Session signed out")

    async def _resolve(self, identity_ref: str) -> bool:
        self._attempt += 1
        attempt = self._attempt
        self._identity_ref = identity_ref

        self._snapshot = SessionSnapshot(state=AuthState.LOADING)
        self.last_error = None

        try:
            identity, permissions = await asyncio.wait_for(
                self._load(identity_ref), timeout=self._resolution_timeout
            )
        except asyncio.TimeoutError:
            error: ResolutionError = ResolutionTimeoutError(
                f"Resolution for {identity_ref} timed out "
                f"after {self._resolution_timeout}s"
            )
            return self._fail(attempt, error)
        except ResolutionError as e:
            return self._fail(attempt, e)
        except ProfileStoreError as e:
            return self._fail(attempt, ResolutionError(str(e)))

        if attempt != self._attempt:
            logger.warning(f"Discarding superseded resolution for {identity_ref}")
            return False

        self._snapshot = SessionSnapshot(
            state=AuthState.AUTHENTICATED,
            identity=identity,
            permissions=permissions,
        )
        logger.debug(
            f"Session authenticated for {identity.id} "
            f"with {len(permissions)} permissions"
        )
        return True

    async def _load(self, identity_ref: str) -> tuple[Identity, tuple[Permission, ...]]:
        identity = await self._profiles.fetch_profile(identity_ref)
        if identity is None:
            raise ProfileNotFoundError(f"No profile for {identity_ref}")

        # An identity without a role is authenticated but authorized for nothing
        permissions = await resolve_effective_permissions(
            identity.role, identity.custom_permission_refs, self._permission_store
        )
        return identity, permissions

    def _fail(self, attempt: int, error: ResolutionError) -> bool:
        if attempt != self._attempt:
            logger.warning(f"Ignoring failure of superseded resolution: {error}")
            return False

        logger.error(f"Session resolution failed: {error}")
        self.last_error = error
        self._snapshot = _SIGNED_OUT
        return False

    def _record(self, action: ActivityAction, description: str) -> None:
        if self._audit is None:
            return
        identity = self._snapshot.identity
        entry = ActivityEntry(
            action_type=action,
            resource_type=ActivityResource.SYSTEM,
            user_id=identity.id if identity else None,
            company_id=identity.company_id if identity else None,
            description=description,
        )
        try:
            self._audit.record(entry)
        except Exception as e:
            logger.warning(f"Audit sink failed for {action.value}: {e}")

    # Event wiring --------------------------------------------------------

    def bind(self, bus: EventBus, identity_ref: str | None = None) -> None:
        """Follow identity provider and authorization events published on ``bus``.

        Sign-in and restore events are only followed for the identity this
        context was last asked to resolve, or ``identity_ref`` when given.
        Events for any other user are ignored.
        """
        if identity_ref is not None:
            self._identity_ref = identity_ref
        handlers = {
            AppEvent.USER_LOGIN: self._on_sign_in,
            AppEvent.SESSION_RESTORED: self._on_restore,
            AppEvent.USER_LOGOUT: self._on_sign_out,
            AppEvent.USER_ROLE_CHANGED: self._on_authorization_change,
            AppEvent.USER_PERMISSIONS_CHANGED: self._on_authorization_change,
            AppEvent.ROLE_UPDATED: self._on_role_updated,
        }
        for event_type, handler in handlers.items():
            bus.subscribe(event_type, handler)
            self._subscriptions.append((event_type, handler))

    def unbind(self, bus: EventBus) -> None:
        for event_type, handler in self._subscriptions:
            bus.unsubscribe(event_type, handler)
        self._subscriptions.clear()

    def _holds(self, user_id: str | None) -> bool:
        identity = self._snapshot.identity
        return identity is not None and user_id is not None and identity.id == user_id

    def _follows(self, user_id: str | None) -> bool:
        if self._snapshot.identity is not None:
            return self._holds(user_id)
        return user_id is not None and user_id == self._identity_ref

    async def _on_sign_in(self, payload: EventPayload) -> None:
        user_id = str(payload.data.get("user_id"))
        if self._follows(user_id):
            await self.sign_in(user_id)

    async def _on_restore(self, payload: EventPayload) -> None:
        user_id = str(payload.data.get("user_id"))
        if self._follows(user_id):
            await self.restore(user_id)

    async def _on_sign_out(self, payload: EventPayload) -> None:
        if self._holds(str(payload.data.get("user_id"))):
            await self.sign_out()

    async def _on_authorization_change(self, payload: EventPayload) -> None:
        if self._holds(str(payload.data.get("user_id"))):
            await self.refresh()

    async def _on_role_updated(self, payload: EventPayload) -> None:
        role = self.role
        if role is not None and role.id == str(payload.data.get("role_id")):
            await self.refresh()
