"""
Tests: SLA policy resolution by exact (client type, priority) match and owning team.
"""

from datetime import timedelta

import pytest

from msp_itsm.config import ClientType, Priority
from msp_itsm.sla.domain import SLAPolicy, SLAResolver
from tests.conftest import T0, make_policy


class TestResolve:

    def test_exact_match(self):
        policy = make_policy()

        assert SLAResolver([policy]).resolve(ClientType.DIRECT, Priority.CRITICAL) is policy

    def test_no_policies(self):
        assert SLAResolver([]).resolve(ClientType.DIRECT, Priority.LOW) is None

    def test_no_fallback_across_client_type(self):
        resolver = SLAResolver([make_policy(client_type=ClientType.DIRECT)])

        assert resolver.resolve(ClientType.VIA_ESN, Priority.CRITICAL) is None

    def test_no_fallback_across_priority(self):
        resolver = SLAResolver([make_policy(priority=Priority.CRITICAL)])

        assert resolver.resolve(ClientType.DIRECT, Priority.HIGH) is None

    def test_inactive_policy_ignored(self):
        resolver = SLAResolver([make_policy(is_active=False)])

        assert resolver.resolve(ClientType.DIRECT, Priority.CRITICAL) is None

    def test_picks_pair_among_many(self):
        policies = [
            make_policy(policy_id=f"{c.value}-{p.value}", client_type=c, priority=p)
            for c in ClientType
            for p in Priority
        ]

        resolved = SLAResolver(policies).resolve(ClientType.VIA_ESN, Priority.MEDIUM)

        assert resolved.id == "via_esn-medium"


class TestTieBreak:

    def test_latest_updated_wins(self):
        older = make_policy(policy_id="older", updated_at=T0 - timedelta(days=10))
        newer = make_policy(policy_id="newer", updated_at=T0 - timedelta(days=1))

        assert SLAResolver([newer, older]).resolve(ClientType.DIRECT, Priority.CRITICAL).id == "newer"
        assert SLAResolver([older, newer]).resolve(ClientType.DIRECT, Priority.CRITICAL).id == "newer"

    def test_equal_timestamps_resolved_by_id(self):
        a = make_policy(policy_id="a")
        b = make_policy(policy_id="b")

        assert SLAResolver([a, b]).resolve(ClientType.DIRECT, Priority.CRITICAL).id == "b"
        assert SLAResolver([b, a]).resolve(ClientType.DIRECT, Priority.CRITICAL).id == "b"

    def test_inactive_newer_policy_does_not_win(self):
        active = make_policy(policy_id="active", updated_at=T0 - timedelta(days=10))
        retired = make_policy(policy_id="retired", updated_at=T0, is_active=False)

        assert SLAResolver([active, retired]).resolve(ClientType.DIRECT, Priority.CRITICAL).id == "active"


class TestTeamScope:

    def test_other_teams_policy_not_applied(self):
        resolver = SLAResolver([make_policy(team_id="team-a")])

        assert resolver.resolve(ClientType.DIRECT, Priority.CRITICAL, "team-b") is None
        assert resolver.resolve(ClientType.DIRECT, Priority.CRITICAL) is None

    def test_shared_policy_applies_to_any_team(self):
        shared = make_policy()

        assert SLAResolver([shared]).resolve(ClientType.DIRECT, Priority.CRITICAL, "team-b") is shared

    def test_team_policy_outranks_newer_shared_policy(self):
        own = make_policy(policy_id="own", team_id="team-a", updated_at=T0 - timedelta(days=10))
        shared = make_policy(policy_id="shared", updated_at=T0)
        resolver = SLAResolver([shared, own])

        assert resolver.resolve(ClientType.DIRECT, Priority.CRITICAL, "team-a").id == "own"
        assert resolver.resolve(ClientType.DIRECT, Priority.CRITICAL, "team-b").id == "shared"

    def test_latest_team_policy_wins(self):
        older = make_policy(policy_id="older", team_id="team-a", updated_at=T0 - timedelta(days=10))
        newer = make_policy(policy_id="newer", team_id="team-a", updated_at=T0 - timedelta(days=1))

        resolved = SLAResolver([newer, older]).resolve(ClientType.DIRECT, Priority.CRITICAL, "team-a")

        assert resolved.id == "newer"


class TestPolicyEntity:

    def test_negative_hours_rejected(self):
        with pytest.raises(ValueError):
            make_policy(response_time_hours=-1)

    def test_negative_escalation_rejected(self):
        with pytest.raises(ValueError):
            make_policy(escalation_time_hours=-0.5)

    def test_zero_hours_allowed(self):
        policy = make_policy(response_time_hours=0, resolution_time_hours=0)

        assert isinstance(policy, SLAPolicy)

    def test_to_dict_uses_enum_values(self):
        data = make_policy().to_dict()

        assert data["client_type"] == "direct"
        assert data["priority"] == "critical"
