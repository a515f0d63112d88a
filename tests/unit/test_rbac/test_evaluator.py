# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Tests for the capability evaluator."""

import pytest

from src.rbac.evaluator import has_permission
from src.rbac.permissions import Permission


class TestDenyByDefault:
    """Empty or unusable inputs never authorize."""

    @pytest.mark.parametrize(
        ("resource", "action", "scope"),
        [
            ("projects", "read", "company"),
            ("*", "*", "all"),
            ("invoices", "delete", "own"),
        ],
    )
    def test_empty_set_denies(self, resource, action, scope):
        assert has_permission([], resource, action, scope) is False

    def test_none_denies(self):
        assert has_permission(None, "projects", "read") is False

    def test_malformed_entries_are_skipped(self):
        permissions = [object(), {"resource": "*"}, Permission("projects", "read")]

        assert has_permission(permissions, "projects", "read") is True
        assert has_permission(permissions[:2], "projects", "read") is False


class TestWildcards:
    """Rules 1-3 ignore the requested scope."""

    @pytest.mark.parametrize("scope", ["own", "company", "all", "galaxy"])
    def test_full_wildcard_grants_everything(self, scope):
        permissions = [Permission("*", "*", "company")]

        assert has_permission(permissions, "anything", "whatever", scope) is True

    def test_resource_wildcard_with_specific_action(self):
        permissions = [Permission("*", "update", "company")]

        assert has_permission(permissions, "invoices", "update", "company") is True
        assert has_permission(permissions, "projects", "update", "all") is True
        assert has_permission(permissions, "invoices", "delete", "company") is False

    def test_action_wildcard_on_resource_bypasses_scope(self):
        permissions = [Permission("projects", "*", "own")]

        assert has_permission(permissions, "projects", "delete", "all") is True
        assert has_permission(permissions, "invoices", "read", "own") is False


class TestManage:
    """Manage covers every action on its resource and scope."""

    def test_manage_implies_all_actions(self):
        permissions = [Permission("projects", "manage", "company")]

        assert has_permission(permissions, "projects", "delete", "company") is True
        assert has_permission(permissions, "projects", "read", "company") is True
        assert has_permission(permissions, "invoices", "delete", "company") is False

    def test_manage_stays_inside_scope(self):
        permissions = [Permission("projects", "manage", "company")]

        assert has_permission(permissions, "projects", "read", "all") is False


class TestScopes:
    """Rule 4 is scope sensitive."""

    def test_scope_escalation_denied(self):
        permissions = [Permission("invoices", "read", "own")]

        assert has_permission(permissions, "invoices", "read", "company") is False
        assert has_permission(permissions, "invoices", "read", "all") is False

    @pytest.mark.parametrize("scope", ["own", "company", "all"])
    def test_all_scope_authorizes_any_requested_scope(self, scope):
        permissions = [Permission("invoices", "read", "all")]

        assert has_permission(permissions, "invoices", "read", scope) is True

    def test_default_scope_is_company(self):
        permissions = [Permission("invoices", "read", "company")]

        assert has_permission(permissions, "invoices", "read") is True

    def test_any_matching_entry_authorizes(self):
        permissions = [
            Permission("invoices", "read", "own"),
            Permission("projects", "create", "company"),
            Permission("invoices", "read", "company"),
        ]

        assert has_permission(permissions, "invoices", "read", "company") is True
