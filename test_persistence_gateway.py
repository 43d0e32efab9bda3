"""Tests for the persistence gateways."""

from pathlib import Path
from urllib.parse import unquote, urlparse

import pytest

from core.interfaces.persistence import (
    IMAGES,
    TEAM_MEMBERS,
    StorageError,
)
from core.registry.plugin_registry import PluginRegistry
from modules.persistence.providers.filesystem_store import FilesystemObjectStore
from modules.persistence.providers.sqlite_gateway import SQLiteGateway
from modules.persistence.providers.supabase_gateway import SupabaseGateway
import modules.persistence.plugin  # noqa: F401


def uri_to_path(url: str) -> Path:
    return Path(unquote(urlparse(url).path))


class TestSQLiteGateway:

    def test_insert_assigns_id_and_timestamps(self, gateway):
        row = gateway.insert(IMAGES, {"file_name": "leaf.jpg", "analysis_status": "pending"})

        assert row["id"]
        assert row["created_at"] == row["updated_at"]
        assert row["file_name"] == "leaf.jpg"
        assert gateway.get(IMAGES, row["id"]) == row

    def test_update_merges_patch(self, gateway):
        row = gateway.insert(IMAGES, {"file_name": "leaf.jpg", "analysis_status": "pending"})

        updated = gateway.update(IMAGES, row["id"], {"analysis_status": "processing"})

        assert updated["analysis_status"] == "processing"
        assert updated["file_name"] == "leaf.jpg"
        assert updated["created_at"] == row["created_at"]
        assert gateway.get(IMAGES, row["id"])["analysis_status"] == "processing"

    def test_update_missing_record_raises(self, gateway):
        with pytest.raises(StorageError, match="not found"):
            gateway.update(IMAGES, "missing", {"analysis_status": "failed"})

    def test_unknown_collection_raises(self, gateway):
        with pytest.raises(StorageError, match="Unknown collection"):
            gateway.insert("users", {"name": "x"})

    def test_select_filters_and_orders(self, gateway):
        gateway.insert(TEAM_MEMBERS, {"name": "C", "display_order": 3, "is_active": True})
        gateway.insert(TEAM_MEMBERS, {"name": "A", "display_order": 1, "is_active": True})
        gateway.insert(TEAM_MEMBERS, {"name": "Hidden", "display_order": 0, "is_active": False})
        gateway.insert(TEAM_MEMBERS, {"name": "B", "display_order": 2, "is_active": True})

        rows = gateway.select(TEAM_MEMBERS, filters={"is_active": True}, order_by="display_order")
        assert [r["name"] for r in rows] == ["A", "B", "C"]

        rows = gateway.select(TEAM_MEMBERS, filters={"is_active": True}, order_by="display_order", ascending=False)
        assert [r["name"] for r in rows] == ["C", "B", "A"]

    def test_select_puts_rows_without_order_field_last(self, gateway):
        gateway.insert(TEAM_MEMBERS, {"name": "Unordered"})
        gateway.insert(TEAM_MEMBERS, {"name": "First", "display_order": 1})

        rows = gateway.select(TEAM_MEMBERS, order_by="display_order", ascending=False)

        assert [r["name"] for r in rows] == ["First", "Unordered"]

    def test_upload_object_returns_retrievable_url(self, gateway):
        url = gateway.upload_object("crop-images", "abc.jpg", b"\xff\xd8data", "image/jpeg")

        assert url.startswith("file://")
        assert uri_to_path(url).read_bytes() == b"\xff\xd8data"

    def test_subscription_receives_changes_until_unsubscribed(self, gateway):
        changes = []
        subscription = gateway.subscribe(TEAM_MEMBERS, changes.append)

        row = gateway.insert(TEAM_MEMBERS, {"name": "A"})
        gateway.insert(IMAGES, {"file_name": "ignored.jpg"})
        gateway.update(TEAM_MEMBERS, row["id"], {"role": "Lead"})

        assert [c["action"] for c in changes] == ["insert", "update"]
        assert changes[1]["record"]["role"] == "Lead"

        subscription.unsubscribe()
        subscription.unsubscribe()
        gateway.insert(TEAM_MEMBERS, {"name": "B"})

        assert not subscription.active
        assert len(changes) == 2

    def test_operations_after_cleanup_raise(self, tmp_path, event_bus):
        gw = SQLiteGateway(event_bus=event_bus)
        assert gw.initialize({"base_path": str(tmp_path)})
        gw.cleanup()

        with pytest.raises(StorageError):
            gw.select(IMAGES)


class TestFilesystemObjectStore:

    @pytest.fixture
    def store(self, tmp_path):
        store = FilesystemObjectStore()
        assert store.initialize({"base_path": str(tmp_path)})
        return store

    def test_put_writes_under_bucket(self, store, tmp_path):
        url = store.put("crop-images", "a/b.png", b"png", "image/png")

        path = uri_to_path(url)
        assert path == (tmp_path / "objects" / "crop-images" / "a" / "b.png").resolve()
        assert path.read_bytes() == b"png"

    def test_rejects_empty_object(self, store):
        with pytest.raises(StorageError, match="empty"):
            store.put("crop-images", "empty.jpg", b"", "image/jpeg")

    def test_rejects_path_escaping_bucket(self, store):
        with pytest.raises(StorageError, match="escapes"):
            store.put("crop-images", "../other/x.jpg", b"data", "image/jpeg")


class TestSupabaseGateway:

    @pytest.fixture
    def client(self, mocker):
        return mocker.MagicMock()

    @pytest.fixture
    def supabase(self, client, event_bus):
        gw = SupabaseGateway(event_bus=event_bus, client=client)
        assert gw.initialize({})
        return gw

    def test_initialize_requires_credentials(self, event_bus):
        gw = SupabaseGateway(event_bus=event_bus)

        assert not gw.initialize({"supabase_url": "", "supabase_anon_key": ""})

    def test_initialize_builds_client(self, mocker, event_bus):
        create = mocker.patch("modules.persistence.providers.supabase_gateway.create_client")
        gw = SupabaseGateway(event_bus=event_bus)

        assert gw.initialize({"supabase_url": "https://x.supabase.co", "supabase_anon_key": "key"})
        create.assert_called_once_with("https://x.supabase.co", "key")

    def test_insert_returns_first_row(self, supabase, client):
        client.table.return_value.insert.return_value.execute.return_value.data = [
            {"id": "1", "name": "A"}
        ]

        row = supabase.insert(TEAM_MEMBERS, {"name": "A"})

        assert row == {"id": "1", "name": "A"}
        client.table.assert_called_with(TEAM_MEMBERS)

    def test_insert_failure_is_storage_error(self, supabase, client):
        client.table.return_value.insert.return_value.execute.side_effect = RuntimeError("boom")

        with pytest.raises(StorageError, match="boom"):
            supabase.insert(IMAGES, {"file_name": "x"})

    def test_update_filters_on_id(self, supabase, client):
        chain = client.table.return_value.update.return_value.eq.return_value
        chain.execute.return_value.data = [{"id": "7", "analysis_status": "completed"}]

        row = supabase.update(IMAGES, "7", {"analysis_status": "completed"})

        assert row["analysis_status"] == "completed"
        client.table.return_value.update.return_value.eq.assert_called_with("id", "7")
        patch = client.table.return_value.update.call_args[0][0]
        assert "updated_at" in patch

    def test_update_without_rows_raises(self, supabase, client):
        chain = client.table.return_value.update.return_value.eq.return_value
        chain.execute.return_value.data = []

        with pytest.raises(StorageError, match="not found"):
            supabase.update(IMAGES, "7", {"analysis_status": "failed"})

    def test_select_applies_filters_and_order(self, supabase, client):
        query = client.table.return_value.select.return_value
        query.eq.return_value = query
        query.order.return_value = query
        query.execute.return_value.data = [{"id": "1"}]

        rows = supabase.select(TEAM_MEMBERS, filters={"is_active": True}, order_by="display_order")

        assert rows == [{"id": "1"}]
        query.eq.assert_called_with("is_active", True)
        query.order.assert_called_with("display_order", desc=False)

    def test_upload_object_returns_public_url(self, supabase, client):
        bucket = client.storage.from_.return_value
        bucket.get_public_url.return_value = "https://cdn/crop-images/a.jpg"

        url = supabase.upload_object("crop-images", "a.jpg", b"data", "image/jpeg")

        assert url == "https://cdn/crop-images/a.jpg"
        bucket.upload.assert_called_once_with("a.jpg", b"data", {"content-type": "image/jpeg"})

    def test_upload_failure_is_storage_error(self, supabase, client):
        client.storage.from_.return_value.upload.side_effect = RuntimeError("bucket missing")

        with pytest.raises(StorageError, match="bucket missing"):
            supabase.upload_object("crop-images", "a.jpg", b"data", "image/jpeg")


def test_gateways_are_registered():
    registry = PluginRegistry()

    assert registry.get_persistence_gateway("sqlite") is SQLiteGateway
    assert registry.get_persistence_gateway("supabase") is SupabaseGateway
