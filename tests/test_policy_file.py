"""
Tests: YAML policy file loading, hot reload and the file-change handler.
"""

from datetime import datetime, timezone
from pathlib import Path

import pytest
from watchdog.events import FileModifiedEvent, FileMovedEvent

from msp_itsm.config import ClientType, Priority
from msp_itsm.core import ConfigurationException
from msp_itsm.sla.domain import SLAResolver
from msp_itsm.sla.infrastructure import PolicyFileWatcher, YAMLPolicyStore, load_policy_file
from msp_itsm.sla.infrastructure.external import PolicyFileHandler
from tests.conftest import make_policy

SHIPPED_POLICY_FILE = Path(__file__).resolve().parent.parent / "sla_policies.yaml"

TWO_POLICIES = """
policies:
  - id: direct-critical
    name: Direct critical
    client_type: direct
    priority: critical
    response_time_hours: 1
    resolution_time_hours: 4
    updated_at: 2026-01-01T00:00:00Z
  - id: esn-low
    name: ESN low
    client_type: via_esn
    priority: low
    response_time_hours: 24
    resolution_time_hours: 120
    is_active: false
"""


@pytest.fixture
def policy_path(tmp_path):
    path = tmp_path / "sla_policies.yaml"
    path.write_text(TWO_POLICIES)
    return path


class TestLoadPolicyFile:

    def test_parses_entries(self, policy_path):
        policies = load_policy_file(policy_path)

        assert [p.id for p in policies] == ["direct-critical", "esn-low"]
        assert policies[0].client_type == ClientType.DIRECT
        assert policies[0].updated_at == datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert not policies[1].is_active

    def test_missing_timestamps_default_to_mtime(self, policy_path):
        esn = load_policy_file(policy_path)[1]

        assert esn.created_at == esn.updated_at
        assert esn.created_at.tzinfo is not None

    def test_shipped_file_covers_every_pair(self):
        resolver = SLAResolver(load_policy_file(SHIPPED_POLICY_FILE))

        for client_type in ClientType:
            for priority in Priority:
                assert resolver.resolve(client_type, priority) is not None

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_policy_file(path) == []

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("policies: [unclosed")

        with pytest.raises(ConfigurationException):
            load_policy_file(path)

    def test_undecodable_bytes(self, tmp_path):
        path = tmp_path / "latin.yaml"
        path.write_bytes(b"policies:\n  - name: \xff\xfe\n")

        with pytest.raises(ConfigurationException):
            load_policy_file(path)

    def test_unreadable_path(self, tmp_path):
        with pytest.raises(ConfigurationException):
            load_policy_file(tmp_path)

    def test_vanished_file(self, tmp_path):
        with pytest.raises(ConfigurationException):
            load_policy_file(tmp_path / "deleted.yaml")

    def test_unknown_client_type(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text(TWO_POLICIES.replace("via_esn", "all"))

        with pytest.raises(ConfigurationException) as exc_info:
            load_policy_file(path)

        assert exc_info.value.details["errors"]

    def test_negative_hours(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text(TWO_POLICIES.replace("response_time_hours: 24", "response_time_hours: -1"))

        with pytest.raises(ConfigurationException):
            load_policy_file(path)

    def test_duplicate_ids(self, tmp_path):
        path = tmp_path / "dup.yaml"
        path.write_text(TWO_POLICIES.replace("id: esn-low", "id: direct-critical"))

        with pytest.raises(ConfigurationException) as exc_info:
            load_policy_file(path)

        assert exc_info.value.details["policy_id"] == "direct-critical"


class TestYAMLPolicyStore:

    async def test_active_policies(self, policy_path):
        store = YAMLPolicyStore(policy_path)

        active = await store.list_active_policies()

        assert [p.id for p in active] == ["direct-critical"]

    async def test_get_and_filter(self, policy_path):
        store = YAMLPolicyStore(policy_path)

        assert (await store.get_by_id("esn-low")).priority == Priority.LOW
        assert await store.get_by_id("missing") is None
        assert [p.id for p in await store.list({"is_active": False})] == ["esn-low"]

    async def test_missing_file_loads_nothing(self, tmp_path):
        store = YAMLPolicyStore(tmp_path / "absent.yaml")

        assert await store.list_active_policies() == []

    def test_broken_file_at_startup_raises(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("policies: [unclosed")

        with pytest.raises(ConfigurationException):
            YAMLPolicyStore(path)

    async def test_reload_picks_up_edits(self, policy_path):
        store = YAMLPolicyStore(policy_path)
        policy_path.write_text(TWO_POLICIES.replace("is_active: false", "is_active: true"))

        assert store.reload()
        assert len(await store.list_active_policies()) == 2

    async def test_reload_keeps_previous_policies_on_error(self, policy_path):
        store = YAMLPolicyStore(policy_path)
        policy_path.write_text("policies: [unclosed")

        assert not store.reload()
        assert [p.id for p in await store.list_active_policies()] == ["direct-critical"]

    async def test_reload_keeps_previous_policies_on_undecodable_file(self, policy_path):
        store = YAMLPolicyStore(policy_path)
        policy_path.write_bytes(b"policies:\n  - name: \xff\xfe\n")

        assert not store.reload()
        assert [p.id for p in await store.list_active_policies()] == ["direct-critical"]

    def test_reload_after_file_vanishes_between_check_and_read(self, policy_path, monkeypatch):
        store = YAMLPolicyStore(policy_path)
        monkeypatch.setattr(Path, "exists", lambda self: True)
        policy_path.unlink()

        assert not store.reload()
        assert [p.id for p in store.snapshot()] == ["direct-critical", "esn-low"]

    async def test_writes_rejected(self, policy_path):
        store = YAMLPolicyStore(policy_path)

        with pytest.raises(ConfigurationException):
            await store.create(make_policy())
        with pytest.raises(ConfigurationException):
            await store.update(make_policy(policy_id="direct-critical"))


class TestPolicyFileHandler:

    def test_modification_reloads(self, policy_path):
        store = YAMLPolicyStore(policy_path)
        policy_path.write_text(TWO_POLICIES.replace("is_active: false", "is_active: true"))

        PolicyFileHandler(store).on_modified(FileModifiedEvent(str(policy_path)))

        assert len([p for p in store.snapshot() if p.is_active]) == 2

    def test_other_files_ignored(self, policy_path, tmp_path):
        store = YAMLPolicyStore(policy_path)
        policy_path.write_text("")

        PolicyFileHandler(store).on_modified(FileModifiedEvent(str(tmp_path / "notes.txt")))

        assert len(store.snapshot()) == 2

    def test_atomic_rename_reloads(self, policy_path, tmp_path):
        store = YAMLPolicyStore(policy_path)
        policy_path.write_text("")

        PolicyFileHandler(store).on_moved(
            FileMovedEvent(str(tmp_path / ".sla_policies.yaml.swp"), str(policy_path))
        )

        assert store.snapshot() == []


class TestPolicyFileWatcher:

    def test_start_and_stop(self, policy_path):
        watcher = PolicyFileWatcher(YAMLPolicyStore(policy_path))

        watcher.start()
        try:
            assert watcher.is_watching
        finally:
            watcher.stop()

        assert not watcher.is_watching

    def test_missing_directory_skips_watch(self, tmp_path):
        watcher = PolicyFileWatcher(YAMLPolicyStore(tmp_path / "nowhere" / "policies.yaml"))

        watcher.start()

        assert not watcher.is_watching

    def test_stop_without_start(self, policy_path):
        PolicyFileWatcher(YAMLPolicyStore(policy_path)).stop()
