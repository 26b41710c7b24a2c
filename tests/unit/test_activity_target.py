"""
Unit tests for activity log targets.
"""

import pytest
from pydantic import ValidationError

from equiptrack.schemas.activity import ActivityTarget
from equiptrack.schemas.enums import ActivityTargetKind


class TestActivityTarget:
    """Test cases for ActivityTarget constructors."""

    @pytest.mark.parametrize("factory, kind", [
        (ActivityTarget.item, ActivityTargetKind.ITEM),
        (ActivityTarget.rental, ActivityTargetKind.RENTAL),
        (ActivityTarget.calibration, ActivityTargetKind.CALIBRATION),
        (ActivityTarget.maintenance, ActivityTargetKind.MAINTENANCE),
        (ActivityTarget.user, ActivityTargetKind.USER),
        (ActivityTarget.customer, ActivityTargetKind.CUSTOMER),
        (ActivityTarget.inventory_check, ActivityTargetKind.INVENTORY_CHECK),
    ])
    def test_constructor_sets_kind(self, factory, kind):
        target = factory("abc")
        assert target.kind == kind
        assert target.id == "abc"

    def test_target_is_immutable(self):
        target = ActivityTarget.rental("r-1")
        with pytest.raises(ValidationError):
            target.id = "r-2"

    def test_empty_id_rejected(self):
        with pytest.raises(ValidationError):
            ActivityTarget.item("")
