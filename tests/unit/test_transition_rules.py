"""
Unit tests for the request lifecycle rules.
"""

from types import SimpleNamespace

import pytest

from equiptrack.schemas.enums import ItemStatus, RequestKind, RequestStatus, UserRole
from equiptrack.services.status_engine import (
    ALLOWED_TRANSITIONS,
    KIND_SPECS,
    authorize_transition,
    derive_item_status,
    is_transition_allowed,
)
from equiptrack.utils.errors import AuthorizationError

P, A, R, C, X = (
    RequestStatus.PENDING,
    RequestStatus.APPROVED,
    RequestStatus.REJECTED,
    RequestStatus.COMPLETED,
    RequestStatus.CANCELLED,
)

LEGAL = {(P, A), (P, R), (P, X), (A, C), (A, X)}


class TestTransitionTable:
    """Test cases for the shared transition table."""

    @pytest.mark.parametrize("current", list(RequestStatus))
    @pytest.mark.parametrize("target", list(RequestStatus))
    def test_only_listed_edges_are_allowed(self, current, target):
        assert is_transition_allowed(current, target) == ((current, target) in LEGAL)

    @pytest.mark.parametrize("terminal", [R, C, X])
    def test_terminal_statuses_have_no_exits(self, terminal):
        assert terminal not in ALLOWED_TRANSITIONS
        assert not any(is_transition_allowed(terminal, target) for target in RequestStatus)

    def test_accepts_plain_strings(self):
        assert is_transition_allowed("PENDING", "APPROVED")
        assert not is_transition_allowed("APPROVED", "PENDING")


class TestItemStatusDerivation:
    """Test cases for the item status implied by a transition."""

    @pytest.mark.parametrize("kind, busy", [
        (RequestKind.RENTAL, ItemStatus.RENTED),
        (RequestKind.CALIBRATION, ItemStatus.IN_CALIBRATION),
        (RequestKind.MAINTENANCE, ItemStatus.IN_MAINTENANCE),
    ])
    def test_approval_occupies_item_with_kind_status(self, kind, busy):
        spec = KIND_SPECS[kind]
        assert spec.busy_status == busy
        assert derive_item_status(spec.busy_status, P, A) == busy

    @pytest.mark.parametrize("target", [C, X])
    def test_leaving_approved_releases_item(self, target):
        assert derive_item_status(ItemStatus.RENTED, A, target) == ItemStatus.AVAILABLE

    @pytest.mark.parametrize("target", [R, X])
    def test_closing_pending_leaves_item_alone(self, target):
        assert derive_item_status(ItemStatus.RENTED, P, target) is None


class TestAuthorization:
    """Test cases for who may perform which transition."""

    def _actors(self):
        admin = SimpleNamespace(id="admin-1", role=UserRole.ADMIN.value)
        owner = SimpleNamespace(id="user-1", role=UserRole.USER.value)
        stranger = SimpleNamespace(id="user-2", role=UserRole.USER.value)
        return admin, owner, stranger

    @pytest.mark.parametrize("current, target", sorted(LEGAL))
    def test_admin_may_do_everything(self, current, target):
        admin, owner, _ = self._actors()
        record = SimpleNamespace(user_id=owner.id)
        for kind in RequestKind:
            authorize_transition(KIND_SPECS[kind], record, admin, current, target)

    @pytest.mark.parametrize("kind", list(RequestKind))
    def test_owner_may_cancel_pending(self, kind):
        _, owner, _ = self._actors()
        record = SimpleNamespace(user_id=owner.id)
        authorize_transition(KIND_SPECS[kind], record, owner, P, X)

    def test_owner_may_complete_own_maintenance(self):
        _, owner, _ = self._actors()
        record = SimpleNamespace(user_id=owner.id)
        authorize_transition(KIND_SPECS[RequestKind.MAINTENANCE], record, owner, A, C)

    @pytest.mark.parametrize("kind", [RequestKind.RENTAL, RequestKind.CALIBRATION])
    def test_owner_may_not_complete_rental_or_calibration(self, kind):
        _, owner, _ = self._actors()
        record = SimpleNamespace(user_id=owner.id)
        with pytest.raises(AuthorizationError):
            authorize_transition(KIND_SPECS[kind], record, owner, A, C)

    @pytest.mark.parametrize("current, target", [(P, A), (P, R), (A, X)])
    def test_owner_may_not_approve_reject_or_cancel_approved(self, current, target):
        _, owner, _ = self._actors()
        record = SimpleNamespace(user_id=owner.id)
        with pytest.raises(AuthorizationError):
            authorize_transition(KIND_SPECS[RequestKind.RENTAL], record, owner, current, target)

    def test_stranger_is_rejected_with_uniform_message(self):
        _, owner, stranger = self._actors()
        record = SimpleNamespace(user_id=owner.id)
        with pytest.raises(AuthorizationError) as own_exc:
            authorize_transition(KIND_SPECS[RequestKind.RENTAL], SimpleNamespace(user_id=owner.id), owner, P, A)
        with pytest.raises(AuthorizationError) as stranger_exc:
            authorize_transition(KIND_SPECS[RequestKind.RENTAL], record, stranger, P, X)
        assert own_exc.value.message == stranger_exc.value.message
