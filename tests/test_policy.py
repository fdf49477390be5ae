"""
tests/test_policy.py — Moderation Policy Decisions
===================================================
Pure tests of studyhall.engine.policy: no database involved.
"""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from studyhall.engine.policy import (
    ADMIN_ACTIONS,
    CONTENT_ACTIONS,
    PARTICIPATION_ACTIONS,
    PUNITIVE_ACTIONS,
    Action,
    ensure_allowed,
    evaluate,
    should_auto_ban,
)
from studyhall.errors import ForbiddenError


@dataclass
class State:
    user_id: str = "u1"
    role: str = "student"
    is_banned: bool = False
    is_muted: bool = False


STUDENT = State()
ADMIN = State(user_id="a1", role="admin")
BANNED = State(is_banned=True)
MUTED = State(is_muted=True)


# ===========================================================================
# Content and participation
# ===========================================================================
class TestContentActions:
    @pytest.mark.parametrize("action", sorted(CONTENT_ACTIONS))
    def test_clean_student_allowed(self, action):
        assert evaluate(action, STUDENT).allowed

    @pytest.mark.parametrize("action", sorted(CONTENT_ACTIONS))
    def test_banned_denied(self, action):
        decision = evaluate(action, BANNED)
        assert not decision
        assert decision.reason == "You are banned"

    @pytest.mark.parametrize("action", sorted(CONTENT_ACTIONS))
    def test_muted_denied(self, action):
        decision = evaluate(action, MUTED)
        assert not decision.allowed
        assert decision.reason == "You are muted"

    def test_ban_reported_before_mute(self):
        both = State(is_banned=True, is_muted=True)
        assert evaluate(Action.CREATE_POST, both).reason == "You are banned"

    def test_admin_still_subject_to_own_mute(self):
        muted_admin = State(role="admin", is_muted=True)
        assert not evaluate(Action.REPLY, muted_admin).allowed


class TestParticipationActions:
    @pytest.mark.parametrize("action", sorted(PARTICIPATION_ACTIONS))
    def test_muted_user_may_participate(self, action):
        assert evaluate(action, MUTED).allowed

    @pytest.mark.parametrize("action", sorted(PARTICIPATION_ACTIONS))
    def test_banned_user_may_not(self, action):
        assert not evaluate(action, BANNED).allowed


def test_missing_actor_always_denied():
    for action in Action:
        decision = evaluate(action, None)
        assert not decision.allowed
        assert decision.reason == "Profile not found"


# ===========================================================================
# Admin-gated actions
# ===========================================================================
class TestAdminActions:
    @pytest.mark.parametrize("action", sorted(ADMIN_ACTIONS))
    def test_student_denied(self, action):
        decision = evaluate(action, STUDENT)
        assert not decision.allowed
        assert decision.reason == "Admin access required"

    @pytest.mark.parametrize("action", sorted(ADMIN_ACTIONS))
    def test_admin_allowed(self, action):
        assert evaluate(action, ADMIN).allowed


class TestPunitiveActions:
    @pytest.mark.parametrize("action", sorted(PUNITIVE_ACTIONS))
    def test_admin_may_act_on_student(self, action):
        assert evaluate(action, ADMIN, target=STUDENT).allowed

    @pytest.mark.parametrize("action", sorted(PUNITIVE_ACTIONS))
    def test_admins_are_immune(self, action):
        other_admin = State(user_id="a2", role="admin")
        decision = evaluate(action, ADMIN, target=other_admin)
        assert not decision.allowed
        assert "Admins cannot" in decision.reason

    @pytest.mark.parametrize("action", sorted(PUNITIVE_ACTIONS))
    def test_student_cannot_punish(self, action):
        assert not evaluate(action, STUDENT, target=State(user_id="u2")).allowed


# ===========================================================================
# Ownership
# ===========================================================================
class TestOwnership:
    def test_owner_may_delete_vault_item(self):
        assert evaluate(Action.DELETE_VAULT_ITEM, STUDENT, owner_id="u1").allowed

    def test_non_owner_may_not_even_if_admin(self):
        assert not evaluate(Action.DELETE_VAULT_ITEM, ADMIN, owner_id="u1").allowed

    def test_banned_owner_may_still_delete_vault_item(self):
        assert evaluate(Action.DELETE_VAULT_ITEM, BANNED, owner_id="u1").allowed

    def test_warnings_visible_to_self_and_admin(self):
        assert evaluate(Action.VIEW_WARNINGS, STUDENT, owner_id="u1").allowed
        assert evaluate(Action.VIEW_WARNINGS, ADMIN, owner_id="u1").allowed
        assert not evaluate(Action.VIEW_WARNINGS, State(user_id="u2"), owner_id="u1").allowed


# ===========================================================================
# ensure_allowed / escalation threshold
# ===========================================================================
def test_ensure_allowed_raises_forbidden():
    with pytest.raises(ForbiddenError, match="You are muted"):
        ensure_allowed(Action.CREATE_POST, MUTED)


def test_ensure_allowed_passes_silently():
    ensure_allowed(Action.CREATE_POST, STUDENT)


@pytest.mark.parametrize("count,expected", [(0, False), (1, False), (2, False), (3, True), (4, True)])
def test_should_auto_ban(count, expected):
    assert should_auto_ban(count) is expected
