"""Tests for intake domain models and timestamp helpers."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from intake.models import (
    RECORD_ID_LENGTH,
    AdminSessionState,
    BroadcastMessage,
    DesignRequest,
    MessageType,
    OrderStatus,
    RequestStatus,
    SubmissionIdentity,
    format_timestamp,
    new_record_id,
    parse_timestamp,
)

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=UTC)


class TestTimestamps:
    def test_format_is_fixed_width_utc(self):
        assert format_timestamp(NOW) == "2026-10-19T12:00:00.000Z"

    def test_format_converts_other_offsets_to_utc(self):
        local = datetime(2026, 10, 19, 14, 30, tzinfo=timezone(timedelta(hours=2)))
        assert format_timestamp(local) == "2026-10-19T12:30:00.000Z"

    def test_naive_values_are_taken_as_utc(self):
        assert format_timestamp(datetime(2026, 1, 2, 3, 4, 5)) == "2026-01-02T03:04:05.000Z"
        assert parse_timestamp("2026-01-02 03:04:05") == datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)

    def test_round_trip_preserves_milliseconds(self):
        value = NOW + timedelta(milliseconds=250)
        assert parse_timestamp(format_timestamp(value)) == value

    def test_lexical_order_matches_chronological_order(self):
        earlier = format_timestamp(NOW)
        later = format_timestamp(NOW + timedelta(seconds=1))
        assert earlier < later

    @pytest.mark.parametrize("empty", [None, ""])
    def test_parse_empty_returns_none(self, empty):
        assert parse_timestamp(empty) is None


def test_record_ids_are_pocketbase_compatible():
    ids = {new_record_id() for _ in range(50)}
    assert len(ids) == 50
    for record_id in ids:
        assert len(record_id) == RECORD_ID_LENGTH
        assert record_id.isalnum() and record_id == record_id.lower()


class TestRequestDraft:
    def test_to_request_starts_pending_with_equal_timestamps(self, draft_factory):
        request = draft_factory(client_name="  Ana Lima  ", budget=" 50 USD ").to_request(now=NOW)

        assert request.status is RequestStatus.PENDING
        assert request.created_at == NOW
        assert request.updated_at == NOW
        assert request.client_name == "Ana Lima"
        assert request.budget == "50 USD"
        assert request.admin_notes is None

    def test_blank_budget_becomes_none(self, draft_factory):
        assert draft_factory(budget="   ").to_request(now=NOW).budget is None

    def test_explicit_id_is_kept(self, draft_factory):
        assert draft_factory().to_request(request_id="abc123", now=NOW).id == "abc123"


class TestDesignRequest:
    @pytest.fixture
    def request_obj(self, draft_factory) -> DesignRequest:
        return draft_factory().to_request(request_id="req000000000001", now=NOW)

    def test_record_round_trip(self, request_obj):
        record = request_obj.to_record()
        assert record["status"] == "pending"
        assert record["created_at"] == "2026-10-19T12:00:00.000Z"
        assert DesignRequest.from_record(record) == request_obj

    def test_with_status_keeps_notes_when_new_notes_empty(self, request_obj):
        later = NOW + timedelta(minutes=5)
        noted = request_obj.with_status(RequestStatus.ACCEPTED, "Great brief", later)
        again = noted.with_status(RequestStatus.IN_PROGRESS, "", later)

        assert noted.admin_notes == "Great brief"
        assert again.admin_notes == "Great brief"
        assert again.status is RequestStatus.IN_PROGRESS
        assert again.updated_at == later
        assert again.created_at == NOW

    def test_from_record_tolerates_missing_optional_fields(self):
        request = DesignRequest.from_record({"id": "x", "created_at": "2026-10-19T12:00:00.000Z"})
        assert request.status is RequestStatus.PENDING
        assert request.contact_handle == ""
        assert request.budget is None
        assert request.updated_at is None


class TestBroadcastMessage:
    def test_displayable_until_expiry(self):
        message = BroadcastMessage(id="m1", message="Hello", created_at=NOW, expires_at=NOW + timedelta(hours=1))
        assert message.is_displayable(NOW)
        assert not message.is_displayable(NOW + timedelta(hours=1))

    def test_inactive_never_displayable(self):
        message = BroadcastMessage(id="m1", message="Hello", is_active=False)
        assert not message.is_displayable(NOW)

    def test_record_round_trip(self):
        message = BroadcastMessage(
            id="m1", title="Heads up", message="Hello", type=MessageType.WARNING, created_at=NOW, expires_at=None
        )
        record = message.to_record()
        assert record["type"] == "warning"
        assert record["expires_at"] is None
        assert BroadcastMessage.from_record(record) == message


def test_submission_identity_is_case_insensitive():
    assert SubmissionIdentity.of(" Ana@Example.com ", "Ana#1234") == SubmissionIdentity.of("ana@example.com", "ana#1234")


class TestAdminSessionState:
    def test_start_and_expiry(self):
        state = AdminSessionState.start(NOW, timedelta(minutes=30))
        assert state.is_valid(NOW + timedelta(minutes=29))
        assert not state.is_valid(NOW + timedelta(minutes=30))

    def test_extended_moves_expiry_only(self):
        state = AdminSessionState.start(NOW, timedelta(minutes=30))
        extended = state.extended(NOW + timedelta(minutes=20), timedelta(minutes=30))
        assert extended.login_time == NOW
        assert extended.expires_at == NOW + timedelta(minutes=50)

    def test_from_record_requires_timestamps(self):
        with pytest.raises(ValueError):
            AdminSessionState.from_record({"is_authenticated": True})


def test_order_status_defaults_to_open_when_field_missing():
    status = OrderStatus.from_record({"id": "s1", "updated_at": "2026-10-19T12:00:00.000Z"})
    assert status.accepting_orders is True
    assert status.updated_at == NOW
