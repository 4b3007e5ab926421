"""Unit tests for the access policy — no database required."""

import os

import pytest

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-unit-tests")

from carecircle.core.errors import Unauthorized
from carecircle.enums import AccessLevel, AlertSeverity
from carecircle.models.family_member import FamilyMember
from carecircle.services.access_policy import (
    ALERT_OPERATIONS,
    Operation,
    can_act,
    require,
    visible_severities,
)

MANAGEMENT_OPERATIONS = [
    Operation.CREATE_MEMBERSHIP,
    Operation.REMOVE_MEMBERSHIP,
    Operation.CHANGE_ACCESS_LEVEL,
    Operation.TRANSFER_PRIMARY,
    Operation.GENERATE_CODE,
    Operation.REVOKE_CODE,
    Operation.VIEW_CODES,
    Operation.VIEW_AUDIT_LOG,
]


def _member(level: AccessLevel) -> FamilyMember:
    return FamilyMember(access_level=level, is_primary_contact=False, relationship="son")


class TestNonMember:
    @pytest.mark.parametrize("operation", list(Operation))
    def test_non_member_can_do_nothing(self, operation):
        assert not can_act(None, operation, AlertSeverity.CRITICAL)

    def test_non_member_sees_no_alerts(self):
        assert visible_severities(None) == ()


class TestFullAccess:
    @pytest.mark.parametrize("operation", list(Operation))
    def test_full_may_do_everything(self, operation):
        assert can_act(_member(AccessLevel.FULL), operation, AlertSeverity.LOW)


class TestStandardAccess:
    @pytest.mark.parametrize("operation", sorted(ALERT_OPERATIONS))
    @pytest.mark.parametrize("severity", list(AlertSeverity))
    def test_any_alert_transition(self, operation, severity):
        assert can_act(_member(AccessLevel.STANDARD), operation, severity)

    @pytest.mark.parametrize("operation", MANAGEMENT_OPERATIONS)
    def test_no_circle_management(self, operation):
        assert not can_act(_member(AccessLevel.STANDARD), operation)

    def test_sees_every_severity(self):
        assert set(visible_severities(_member(AccessLevel.STANDARD))) == set(AlertSeverity)


class TestMinimalAccess:
    @pytest.mark.parametrize(
        "operation", [Operation.ACKNOWLEDGE_ALERT, Operation.START_ALERT_PROGRESS],
    )
    def test_may_react_to_critical(self, operation):
        assert can_act(_member(AccessLevel.MINIMAL), operation, AlertSeverity.CRITICAL)

    @pytest.mark.parametrize(
        "severity", [AlertSeverity.LOW, AlertSeverity.MEDIUM, AlertSeverity.HIGH],
    )
    def test_may_not_acknowledge_non_critical(self, severity):
        assert not can_act(_member(AccessLevel.MINIMAL), Operation.ACKNOWLEDGE_ALERT, severity)

    @pytest.mark.parametrize(
        "operation", [Operation.RESOLVE_ALERT, Operation.MARK_ALERT_FALSE_POSITIVE],
    )
    def test_may_not_close_even_critical(self, operation):
        assert not can_act(_member(AccessLevel.MINIMAL), operation, AlertSeverity.CRITICAL)

    def test_may_view_senior(self):
        assert can_act(_member(AccessLevel.MINIMAL), Operation.VIEW_SENIOR)

    def test_only_sees_critical(self):
        assert visible_severities(_member(AccessLevel.MINIMAL)) == (AlertSeverity.CRITICAL,)


class TestRequire:
    def test_returns_membership_when_allowed(self):
        member = _member(AccessLevel.FULL)
        assert require(member, Operation.TRANSFER_PRIMARY) is member

    def test_raises_unauthorized(self):
        with pytest.raises(Unauthorized):
            require(_member(AccessLevel.STANDARD), Operation.GENERATE_CODE)
