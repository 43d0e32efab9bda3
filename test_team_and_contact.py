"""Tests for the team roster and the contact form."""

import pytest

from core.interfaces.persistence import CONTACT_MESSAGES, TEAM_MEMBERS, StorageError
from modules.contact.service import ContactService
from modules.team.roster import TeamRoster


def add_member(gateway, name, order, active=True, **extra):
    return gateway.insert(TEAM_MEMBERS, dict(
        name=name, role="Researcher", display_order=order, is_active=active, **extra
    ))


class TestTeamRoster:

    def test_fetch_lists_active_members_in_order(self, gateway):
        add_member(gateway, "Second", 2)
        add_member(gateway, "Inactive", 0, active=False)
        add_member(gateway, "First", 1, github_url="https://github.com/first")

        roster = TeamRoster(gateway)
        members = roster.fetch()

        assert [m.name for m in members] == ["First", "Second"]
        assert members[0].github_url == "https://github.com/first"
        assert roster.error is None
        assert not roster.loading

    def test_fetch_failure_keeps_previous_list(self, gateway, mocker):
        add_member(gateway, "Only", 1)
        roster = TeamRoster(gateway)
        roster.fetch()

        mocker.patch.object(gateway, "select", side_effect=StorageError("network down"))
        members = roster.fetch()

        assert roster.error == "network down"
        assert [m.name for m in members] == ["Only"]

    def test_changes_trigger_refetch_while_started(self, gateway):
        roster = TeamRoster(gateway)
        pushed = []
        roster.add_listener(pushed.append)
        roster.start()

        add_member(gateway, "New", 1)

        assert [m.name for m in roster.members] == ["New"]
        assert [m.name for m in pushed[-1]] == ["New"]

        roster.stop()
        add_member(gateway, "After stop", 2)

        assert [m.name for m in roster.members] == ["New"]

    def test_stop_is_idempotent(self, gateway):
        roster = TeamRoster(gateway)
        roster.start()

        roster.stop()
        roster.stop()

    def test_removed_listener_is_not_called(self, gateway):
        roster = TeamRoster(gateway)
        pushed = []
        roster.add_listener(pushed.append)
        roster.remove_listener(pushed.append)
        roster.start()

        add_member(gateway, "Someone", 1)

        assert pushed == []
        roster.stop()


class TestContactService:

    @pytest.mark.parametrize("name, email, message, error", [
        ("", "a@b.co", "Hi", "Name is required"),
        ("Ada", "not-an-email", "Hi", "A valid email address is required"),
        ("Ada", "a@b.co", "   ", "Message is required"),
    ])
    def test_validation(self, name, email, message, error):
        assert ContactService.validate(name, email, message) == error

    def test_submit_stores_unread_message(self, gateway):
        contact = ContactService(gateway)

        assert contact.submit(" Ada ", "ada@example.com", "Great project")

        rows = gateway.select(CONTACT_MESSAGES)
        assert len(rows) == 1
        assert rows[0]["name"] == "Ada"
        assert rows[0]["status"] == "unread"
        assert contact.last_error is None

    def test_invalid_form_is_not_stored(self, gateway):
        contact = ContactService(gateway)

        assert not contact.submit("Ada", "ada", "Hello")

        assert contact.last_error == "A valid email address is required"
        assert gateway.select(CONTACT_MESSAGES) == []

    def test_storage_failure_sets_error(self, gateway, mocker):
        mocker.patch.object(gateway, "insert", side_effect=StorageError("permission denied"))
        contact = ContactService(gateway)

        assert not contact.submit("Ada", "ada@example.com", "Hello")
        assert contact.last_error == "permission denied"
        assert not contact.submitting
