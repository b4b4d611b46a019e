"""Unit tests for role and relationship authorization."""

import pytest

from admission.services.authorization_service import (
    PUBLIC,
    AuthorizationRule,
    AuthorizationRuleTable,
    DenyReason,
    ResourceContext,
    authorize,
    filter_user_fields,
)
from admission.services.identity_service import AnonymousIdentity, AuthenticatedIdentity, Role

USER = AuthenticatedIdentity(user_id=1, role=Role.USER)
OTHER_USER = AuthenticatedIdentity(user_id=9, role=Role.USER)
ADMIN = AuthenticatedIdentity(user_id=2, role=Role.ADMIN)
SUPERADMIN = AuthenticatedIdentity(user_id=3, role=Role.SUPERADMIN)
GUEST = AnonymousIdentity("10.0.0.1")


class TestRolePath:
    def test_public_rule_admits_anonymous(self) -> None:
        assert authorize(GUEST, PUBLIC).allowed is True

    def test_anonymous_denied_as_unauthenticated(self) -> None:
        decision = authorize(GUEST, AuthorizationRule(minimum_role=Role.USER))

        assert decision.allowed is False
        assert decision.reason is DenyReason.UNAUTHENTICATED

    def test_anonymous_denied_on_relationship_only_rule(self) -> None:
        decision = authorize(GUEST, AuthorizationRule(relationship="owner"), ResourceContext(owner_id=1))

        assert decision.reason is DenyReason.UNAUTHENTICATED

    def test_higher_role_satisfies_lower_rule(self) -> None:
        assert authorize(ADMIN, AuthorizationRule(minimum_role=Role.USER)).allowed is True

    def test_lower_role_denied(self) -> None:
        decision = authorize(USER, AuthorizationRule(minimum_role=Role.ADMIN))

        assert decision.allowed is False
        assert decision.reason is DenyReason.INSUFFICIENT_ROLE

    @pytest.mark.parametrize(
        "rule",
        [
            AuthorizationRule(minimum_role=Role.SUPERADMIN),
            AuthorizationRule(relationship="owner"),
            AuthorizationRule(minimum_role=Role.ADMIN, relationship="author"),
        ],
    )
    def test_superadmin_always_passes(self, rule: AuthorizationRule) -> None:
        assert authorize(SUPERADMIN, rule, ResourceContext(owner_id=99, author_id=99)).allowed is True

    def test_role_name_string_is_parsed(self) -> None:
        assert AuthorizationRule(minimum_role="admin").minimum_role is Role.ADMIN


class TestRelationshipPath:
    def test_owner_admitted_below_minimum_role(self) -> None:
        rule = AuthorizationRule(minimum_role=Role.ADMIN, relationship="owner")

        assert authorize(USER, rule, ResourceContext(owner_id=1)).allowed is True

    def test_unrelated_user_denied_as_not_related(self) -> None:
        rule = AuthorizationRule(minimum_role=Role.ADMIN, relationship="owner")
        decision = authorize(OTHER_USER, rule, ResourceContext(owner_id=1))

        assert decision.allowed is False
        assert decision.reason is DenyReason.NOT_RESOURCE_RELATED

    def test_admin_passes_by_role_without_relationship(self) -> None:
        rule = AuthorizationRule(minimum_role=Role.ADMIN, relationship="owner")

        assert authorize(ADMIN, rule, ResourceContext(owner_id=1)).allowed is True

    def test_member_and_owner_or_member(self) -> None:
        context = ResourceContext(owner_id=5, member_ids=frozenset({1, 4}))

        assert authorize(USER, AuthorizationRule(relationship="member"), context).allowed is True
        assert authorize(USER, AuthorizationRule(relationship="owner_or_member"), context).allowed is True
        assert authorize(OTHER_USER, AuthorizationRule(relationship="owner_or_member"), context).allowed is False

    def test_self_and_author(self) -> None:
        assert authorize(USER, AuthorizationRule(relationship="self"), ResourceContext(target_user_id=1)).allowed
        assert authorize(USER, AuthorizationRule(relationship="author"), ResourceContext(author_id=1)).allowed
        assert not authorize(USER, AuthorizationRule(relationship="self"), ResourceContext()).allowed

    def test_relationship_only_rule_has_closed_role_path(self) -> None:
        rule = AuthorizationRule(relationship="owner")

        assert authorize(ADMIN, rule, ResourceContext(owner_id=1)).allowed is False

    def test_callable_predicate(self) -> None:
        rule = AuthorizationRule(relationship=lambda identity, context: identity.user_id == 1)

        assert authorize(USER, rule).allowed is True
        assert authorize(OTHER_USER, rule).allowed is False

    def test_predicate_errors_propagate(self) -> None:
        def broken(identity, context):
            raise RuntimeError("lookup failed")

        with pytest.raises(RuntimeError):
            authorize(USER, AuthorizationRule(relationship=broken))

    def test_unknown_predicate_name(self) -> None:
        with pytest.raises(ValueError):
            AuthorizationRule(relationship="friend")


class TestRuleTable:
    def test_from_config_and_default_public(self) -> None:
        table = AuthorizationRuleTable.from_config(
            {
                "DELETE /api/projects/:id": {"minimum_role": "ADMIN", "relationship": "owner"},
                "GET /api/users": {"minimum_role": "admin"},
            }
        )

        assert table.rule_for("GET /api/users").minimum_role is Role.ADMIN
        assert table.rule_for("DELETE /api/projects/:id").relationship == "owner"
        assert table.rule_for("GET /health").is_public

    def test_from_config_rejects_unknown_role(self) -> None:
        with pytest.raises(ValueError):
            AuthorizationRuleTable.from_config({"GET /api/users": {"minimum_role": "root"}})


class TestFilterUserFields:
    RECORD = {
        "id": 1,
        "email": "a@example.com",
        "role": "USER",
        "created_at": "2024-01-01",
        "updated_at": "2024-01-02",
        "password_hash": "x",
    }

    def test_user_sees_public_fields_only(self) -> None:
        assert filter_user_fields(self.RECORD, USER) == {"id": 1, "email": "a@example.com"}

    def test_admin_sees_role_and_timestamps(self) -> None:
        filtered = filter_user_fields(self.RECORD, ADMIN)

        assert "role" in filtered and "created_at" in filtered
        assert "password_hash" not in filtered

    def test_superadmin_sees_everything(self) -> None:
        assert filter_user_fields(self.RECORD, SUPERADMIN) == self.RECORD

    def test_none_record(self) -> None:
        assert filter_user_fields(None, GUEST) is None
