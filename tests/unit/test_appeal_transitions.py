"""Appeal state machine."""

from __future__ import annotations

import pytest

from wojak.moderation.ban_gate import (
    APPEAL_APPROVED,
    APPEAL_DENIED,
    APPEAL_NONE,
    APPEAL_PENDING,
    validate_appeal_transition,
)


class TestAppealTransitions:
    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (APPEAL_NONE, APPEAL_PENDING),
            (APPEAL_PENDING, APPEAL_APPROVED),
            (APPEAL_PENDING, APPEAL_DENIED),
            (APPEAL_DENIED, APPEAL_PENDING),
        ],
    )
    def test_allowed(self, current, target):
        validate_appeal_transition(current, target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (APPEAL_NONE, APPEAL_APPROVED),
            (APPEAL_NONE, APPEAL_DENIED),
            (APPEAL_PENDING, APPEAL_PENDING),
            (APPEAL_APPROVED, APPEAL_PENDING),
            (APPEAL_APPROVED, APPEAL_NONE),
            (APPEAL_DENIED, APPEAL_APPROVED),
        ],
    )
    def test_rejected(self, current, target):
        with pytest.raises(ValueError):
            validate_appeal_transition(current, target)
