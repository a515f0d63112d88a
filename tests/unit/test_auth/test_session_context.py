# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Tests for SessionContext."""

import asyncio
from collections.abc import Sequence

import pytest

from src.auth.session_context import (
    AuthState,
    ProfileNotFoundError,
    ResolutionError,
    ResolutionTimeoutError,
    SessionContext,
)
from src.events import AppEvent, EventBus
from src.models import ActivityAction
from src.rbac.permissions import Identity, Permission, Role
from src.services.activity_service import ActivityEntry
from src.services.stores import PermissionStoreError, ProfileStoreError

PM_ROLE = Role(
    id="r1",
    name="Project Manager",
    company_id="c1",
    permissions=(Permission("projects", "*", "company", id="p1"),),
)

ANNA = Identity(id="u1", email="anna@example.com", company_id="c1", role=PM_ROLE)
BEN = Identity(
    id="u2",
    email="ben@example.com",
    company_id="c1",
    role=None,
    custom_permission_refs=("p7",),
)
CARL = Identity(
    id="u3",
    email="carl@example.com",
    company_id="c1",
    role=PM_ROLE,
    custom_permission_refs=("p7", "p8"),
)


class FakeProfileStore:
    """Profile store backed by a dict, optionally gated per identity."""

    def __init__(self, *identities: Identity) -> None:
        self.profiles = {identity.id: identity for identity in identities}
        self.gates: dict[str, asyncio.Event] = {}
        self.error: Exception | None = None
        self.delay = 0.0

    async def fetch_profile(self, identity_ref: str) -> Identity | None:
        if identity_ref in self.gates:
            await self.gates[identity_ref].wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.profiles.get(identity_ref)


class FakePermissionStore:
    def __init__(self, *permissions: Permission) -> None:
        self.records = {p.id: p for p in permissions}
        self.fail = False

    async def fetch_permissions(self, ids: Sequence[str]) -> list[Permission]:
        if self.fail:
            raise PermissionStoreError("permissions table missing")
        return [self.records[i] for i in ids if i in self.records]


class RecordingSink:
    def __init__(self, context_ref: list | None = None) -> None:
        self.entries: list[ActivityEntry] = []
        self.states: list[AuthState] = []
        self.context_ref = context_ref

    def record(self, entry: ActivityEntry) -> None:
        self.entries.append(entry)
        if self.context_ref:
            self.states.append(self.context_ref[0].state)


class BrokenSink:
    def record(self, entry: ActivityEntry) -> None:
        raise RuntimeError("activity_logs is read-only")


@pytest.fixture
def profiles():
    return FakeProfileStore(ANNA, BEN, CARL)


@pytest.fixture
def permission_store():
    return FakePermissionStore(
        Permission("invoices", "delete", "all", id="p7"),
        Permission("reports", "export", "company", id="p8"),
    )


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def context(profiles, permission_store, sink):
    return SessionContext(profiles, permission_store, audit=sink)


class TestInitialState:
    def test_starts_unauthenticated(self, context):
        assert context.state == AuthState.UNAUTHENTICATED
        assert context.identity is None
        assert context.role is None
        assert context.company_id is None
        assert context.permissions == ()
        assert context.is_authenticated is False

    def test_check_capability_denied(self, context):
        assert context.check_capability("projects", "read") is False


class TestSignIn:
    @pytest.mark.asyncio
    async def test_success(self, context, sink):
        assert await context.sign_in("u1") is True

        assert context.state == AuthState.AUTHENTICATED
        assert context.identity == ANNA
        assert context.role == PM_ROLE
        assert context.company_id == "c1"
        assert context.permissions == PM_ROLE.permissions
        assert context.last_error is None
        assert [e.action_type for e in sink.entries] == [ActivityAction.LOGIN]
        assert sink.entries[0].user_id == "u1"
        assert sink.entries[0].company_id == "c1"

    @pytest.mark.asyncio
    async def test_capability_end_to_end(self, context):
        await context.sign_in("u1")

        assert context.check_capability("projects", "create") is True
        assert context.check_capability("invoices", "create") is False

    @pytest.mark.asyncio
    async def test_custom_grants_extend_role(self, context):
        assert await context.sign_in("u3") is True

        assert [p.id for p in context.permissions] == ["p1", "p7", "p8"]
        assert context.check_capability("invoices", "delete", "all") is True
        assert context.check_capability("reports", "export") is True

    @pytest.mark.asyncio
    async def test_identity_without_role_is_denied_everything(self, context):
        assert await context.sign_in("u2") is True

        assert context.is_authenticated
        assert context.role is None
        assert context.permissions == ()
        assert context.check_capability("invoices", "delete", "all") is False
        assert context.check_capability("reports", "export") is False

    @pytest.mark.asyncio
    async def test_profile_not_found(self, context, sink):
        assert await context.sign_in("ghost") is False

        assert context.state == AuthState.UNAUTHENTICATED
        assert isinstance(context.last_error, ProfileNotFoundError)
        assert sink.entries == []

    @pytest.mark.asyncio
    async def test_profile_store_error(self, context, profiles):
        profiles.error = ProfileStoreError("connection refused")

        assert await context.sign_in("u1") is False

        assert context.state == AuthState.UNAUTHENTICATED
        assert isinstance(context.last_error, ResolutionError)
        assert "connection refused" in str(context.last_error)

    @pytest.mark.asyncio
    async def test_custom_permission_failure_is_soft(self, context, permission_store):
        permission_store.fail = True

        assert await context.sign_in("u3") is True

        assert context.state == AuthState.AUTHENTICATED
        assert context.permissions == PM_ROLE.permissions

    @pytest.mark.asyncio
    async def test_timeout(self, profiles, permission_store):
        profiles.delay = 1.0
        context = SessionContext(profiles, permission_store, resolution_timeout=0.01)

        assert await context.sign_in("u1") is False

        assert context.state == AuthState.UNAUTHENTICATED
        assert isinstance(context.last_error, ResolutionTimeoutError)

    @pytest.mark.asyncio
    async def test_loading_while_resolving(self, context, profiles):
        profiles.gates["u1"] = asyncio.Event()

        task = asyncio.create_task(context.sign_in("u1"))
        await asyncio.sleep(0)
        assert context.state == AuthState.LOADING
        assert context.check_capability("projects", "read") is False

        profiles.gates["u1"].set()
        assert await task is True
        assert context.state == AuthState.AUTHENTICATED

    @pytest.mark.asyncio
    async def test_raising_audit_sink_is_harmless(self, profiles, permission_store):
        context = SessionContext(profiles, permission_store, audit=BrokenSink())

        assert await context.sign_in("u1") is True
        assert context.is_authenticated

        await context.sign_out()
        assert context.state == AuthState.UNAUTHENTICATED


class TestSupersededResolutions:
    @pytest.mark.asyncio
    async def test_older_resolution_is_discarded(self, context, profiles):
        profiles.gates["u1"] = asyncio.Event()

        slow = asyncio.create_task(context.sign_in("u1"))
        await asyncio.sleep(0)
        assert await context.sign_in("u2") is True

        profiles.gates["u1"].set()
        assert await slow is False

        assert context.identity == BEN
        assert context.state == AuthState.AUTHENTICATED

    @pytest.mark.asyncio
    async def test_older_failure_does_not_sign_out(self, context, profiles):
        profiles.gates["ghost"] = asyncio.Event()

        slow = asyncio.create_task(context.sign_in("ghost"))
        await asyncio.sleep(0)
        await context.sign_in("u1")

        profiles.gates["ghost"].set()
        assert await slow is False

        assert context.is_authenticated
        assert context.last_error is None

    @pytest.mark.asyncio
    async def test_sign_out_supersedes_resolution(self, context, profiles):
        profiles.gates["u1"] = asyncio.Event()

        pending = asyncio.create_task(context.sign_in("u1"))
        await asyncio.sleep(0)
        await context.sign_out()

        profiles.gates["u1"].set()
        assert await pending is False
        assert context.state == AuthState.UNAUTHENTICATED


class TestSignOut:
    @pytest.mark.asyncio
    async def test_passes_through_signing_out(self, profiles, permission_store):
        holder: list = []
        sink = RecordingSink(holder)
        context = SessionContext(profiles, permission_store, audit=sink)
        holder.append(context)

        await context.sign_in("u1")
        await context.sign_out()

        assert [e.action_type for e in sink.entries] == [
            ActivityAction.LOGIN,
            ActivityAction.LOGOUT,
        ]
        assert sink.states[-1] == AuthState.SIGNING_OUT
        assert sink.entries[-1].user_id == "u1"
        assert context.state == AuthState.UNAUTHENTICATED
        assert context.identity is None
        assert context.permissions == ()

    @pytest.mark.asyncio
    async def test_sign_out_when_not_signed_in(self, context, sink):
        await context.sign_out()

        assert context.state == AuthState.UNAUTHENTICATED
        assert sink.entries == []


class TestRefreshAndRestore:
    @pytest.mark.asyncio
    async def test_restore_does_not_audit(self, context, sink):
        assert await context.restore("u1") is True

        assert context.is_authenticated
        assert sink.entries == []

    @pytest.mark.asyncio
    async def test_refresh_replaces_snapshot(self, context, profiles):
        await context.sign_in("u1")
        before = context.snapshot

        viewer = Role(
            id="r2",
            name="Viewer",
            company_id="c1",
            permissions=(Permission("projects", "read", "company", id="p2"),),
        )
        profiles.profiles["u1"] = Identity(
            id="u1", email="anna@example.com", company_id="c1", role=viewer
        )

        assert await context.refresh() is True

        assert context.check_capability("projects", "create") is False
        assert context.check_capability("projects", "read") is True
        assert before.role == PM_ROLE
        assert before.permissions == PM_ROLE.permissions

    @pytest.mark.asyncio
    async def test_refresh_without_identity(self, context):
        assert await context.refresh() is False


class TestEventBinding:
    @pytest.fixture
    def bus(self):
        return EventBus()

    @pytest.mark.asyncio
    async def test_login_and_logout_events(self, context, bus):
        context.bind(bus, identity_ref="u1")

        await bus.publish(AppEvent.USER_LOGIN, {"user_id": "u1"})
        assert context.is_authenticated

        await bus.publish(AppEvent.USER_LOGOUT, {"user_id": "someone-else"})
        assert context.is_authenticated

        await bus.publish(AppEvent.USER_LOGOUT, {"user_id": "u1"})
        assert context.state == AuthState.UNAUTHENTICATED

    @pytest.mark.asyncio
    async def test_session_restored_event(self, context, bus, sink):
        context.bind(bus, identity_ref="u2")

        await bus.publish(AppEvent.SESSION_RESTORED, {"user_id": "u2"})

        assert context.identity == BEN
        assert sink.entries == []

    @pytest.mark.asyncio
    async def test_login_of_another_user_is_ignored(self, context, bus):
        await context.sign_in("u1")
        context.bind(bus)

        await bus.publish(AppEvent.USER_LOGIN, {"user_id": "u3"})
        await bus.publish(AppEvent.SESSION_RESTORED, {"user_id": "u3"})

        assert context.identity == ANNA
        assert context.permissions == PM_ROLE.permissions

    @pytest.mark.asyncio
    async def test_unclaimed_context_ignores_logins(self, context, bus):
        context.bind(bus)

        await bus.publish(AppEvent.USER_LOGIN, {"user_id": "u1"})

        assert context.state == AuthState.UNAUTHENTICATED

    @pytest.mark.asyncio
    async def test_follows_own_identity_after_sign_out(self, context, bus):
        await context.sign_in("u1")
        context.bind(bus)
        await bus.publish(AppEvent.USER_LOGOUT, {"user_id": "u1"})
        assert context.state == AuthState.UNAUTHENTICATED

        await bus.publish(AppEvent.USER_LOGIN, {"user_id": "u3"})
        assert context.state == AuthState.UNAUTHENTICATED

        await bus.publish(AppEvent.USER_LOGIN, {"user_id": "u1"})
        assert context.identity == ANNA

    @pytest.mark.asyncio
    async def test_role_change_for_held_identity_refreshes(
        self, context, bus, profiles
    ):
        await context.sign_in("u1")
        context.bind(bus)
        profiles.profiles["u1"] = Identity(
            id="u1", email="anna@example.com", company_id="c1", role=None
        )

        await bus.publish(AppEvent.USER_ROLE_CHANGED, {"user_id": "u2"})
        assert context.role == PM_ROLE

        await bus.publish(AppEvent.USER_ROLE_CHANGED, {"user_id": "u1"})
        assert context.role is None
        assert context.permissions == ()

    @pytest.mark.asyncio
    async def test_role_updated_refreshes_holders(self, context, bus, profiles):
        await context.sign_in("u1")
        context.bind(bus)
        updated = Role(
            id="r1",
            name="Project Manager",
            company_id="c1",
            permissions=(Permission("invoices", "read", "company", id="p3"),),
        )
        profiles.profiles["u1"] = Identity(
            id="u1", email="anna@example.com", company_id="c1", role=updated
        )

        await bus.publish(AppEvent.ROLE_UPDATED, {"role_id": "r1"})

        assert context.check_capability("invoices", "read") is True
        assert context.check_capability("projects", "create") is False

    def test_unbind(self, context, bus):
        context.bind(bus)
        assert bus.get_subscriber_count(AppEvent.USER_LOGIN) == 1

        context.unbind(bus)

        for event_type in AppEvent:
            assert bus.get_subscriber_count(event_type) == 0
