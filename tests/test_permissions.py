"""Tests for approval authority."""

from uuid import uuid4

from talent_logistics.models import SystemSettings
from talent_logistics.services.permissions import (
    Actor,
    ApprovalSettings,
    Role,
    can_self_approve,
    has_approval_authority,
    load_approval_settings,
)


class TestHasApprovalAuthority:
    def test_fixed_roles_always_qualify(self):
        for role in ("admin", "in_house"):
            assert has_approval_authority(role) is True
            assert has_approval_authority(role, ApprovalSettings()) is True

    def test_delegable_roles_need_their_toggle(self):
        settings = ApprovalSettings(supervisor_can_approve_timecards=True)

        assert has_approval_authority("supervisor", settings) is True
        assert has_approval_authority("coordinator", settings) is False
        assert has_approval_authority("talent_escort", settings) is False

    def test_without_settings_only_fixed_roles_qualify(self):
        assert has_approval_authority("supervisor") is False
        assert has_approval_authority(None) is False

    def test_enum_roles_accepted(self):
        assert has_approval_authority(Role.ADMIN) is True
        settings = ApprovalSettings(coordinator_can_approve_timecards=True)
        assert has_approval_authority(Role.COORDINATOR, settings) is True

    def test_self_approval_limited_to_fixed_roles(self):
        assert can_self_approve("admin") is True
        assert can_self_approve("in_house") is True
        assert can_self_approve("supervisor") is False


class TestActor:
    def test_is_admin(self):
        assert Actor(user_id=uuid4(), role="admin").is_admin is True
        assert Actor(user_id=uuid4(), role="in_house").is_admin is False


class TestLoadApprovalSettings:
    async def test_missing_row_means_all_off(self, session):
        settings = await load_approval_settings(session)
        assert settings == ApprovalSettings()

    async def test_reads_toggles(self, session):
        session.add(SystemSettings(id=1, talent_escort_can_approve_timecards=True))
        await session.commit()

        settings = await load_approval_settings(session)

        assert settings.talent_escort_can_approve_timecards is True
        assert settings.grants("talent_escort") is True
        assert settings.grants("supervisor") is False
