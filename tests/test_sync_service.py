"""Tests for offline gate log synchronization."""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from village_gate.models.tables import entry_exit_logs
from village_gate.services import CallerContext, SyncService
from village_gate.utils.exceptions import AuthorizationDenied, ValidationError

from conftest import BASE_TIME, OTHER_TENANT, count_rows, make_log


@pytest.fixture
def service(db):
    return SyncService(db)


def _assert_balanced(result):
    assert result.inserted + result.duplicates + result.errors == result.total


class TestSyncHappyPath:
    """Tests for batches the store accepts."""

    def test_inserts_new_logs(self, service, guard, db):
        """Test a fresh batch is stored in full."""
        result = service.sync_offline_logs(guard, [make_log(i) for i in range(3)])

        assert result.success is True
        assert (result.total, result.inserted, result.duplicates, result.errors) == (3, 3, 0, 0)
        assert result.error_details == []
        assert count_rows(db, "entry_exit_logs") == 3

    def test_one_already_persisted(self, service, guard, db):
        """Test 3 logs where one matches a stored record yields 2 inserted, 1 duplicate."""
        service.sync_offline_logs(guard, [make_log(1)])

        result = service.sync_offline_logs(guard, [make_log(0), make_log(1), make_log(2)])

        assert (result.total, result.inserted, result.duplicates, result.errors) == (3, 2, 1, 0)
        assert count_rows(db, "entry_exit_logs") == 3

    def test_resubmission_is_idempotent(self, service, guard, db):
        """Test submitting the same batch twice stores it once."""
        logs = [make_log(i) for i in range(25)]

        first = service.sync_offline_logs(guard, logs)
        second = service.sync_offline_logs(guard, logs)

        assert first.inserted == 25
        assert second.inserted == 0
        assert second.duplicates == second.total == 25
        assert count_rows(db, "entry_exit_logs") == 25

    def test_other_fields_do_not_affect_duplicate_detection(self, service, guard):
        """Test direction/notes differences do not make a stored crossing new."""
        service.sync_offline_logs(guard, [make_log(0)])

        result = service.sync_offline_logs(
            guard, [make_log(0, direction="exit", notes="re-sent from device")]
        )

        assert result.duplicates == 1
        assert result.inserted == 0

    def test_same_crossing_twice_in_one_batch(self, service, guard, db):
        """Test repeats within a single submission are inserted once."""
        result = service.sync_offline_logs(guard, [make_log(0), make_log(0), make_log(1)])

        assert (result.inserted, result.duplicates, result.errors) == (2, 1, 0)
        assert count_rows(db, "entry_exit_logs") == 2

    def test_blank_and_missing_plate_are_the_same_crossing(self, service, guard):
        """Test a pedestrian crossing sent with and without an empty plate."""
        result = service.sync_offline_logs(
            guard, [make_log(0, vehicle_plate=None), make_log(0, vehicle_plate="  ")]
        )

        assert result.inserted == 1
        assert result.duplicates == 1

    def test_pedestrian_crossing_resubmitted(self, service, guard):
        """Test a stored NULL plate still matches on resubmission."""
        service.sync_offline_logs(guard, [make_log(0, vehicle_plate=None)])

        result = service.sync_offline_logs(guard, [make_log(0, vehicle_plate="")])

        assert result.duplicates == 1
        assert result.inserted == 0

    def test_timezone_offsets_are_normalized(self, service, guard):
        """Test the same instant sent with different UTC offsets is a duplicate."""
        utc = make_log(0, timestamp=datetime(2026, 3, 14, 8, 0, tzinfo=timezone.utc))
        local = make_log(0, timestamp=datetime(2026, 3, 14, 10, 0, tzinfo=timezone(timedelta(hours=2))))

        result = service.sync_offline_logs(guard, [utc, local])

        assert result.inserted == 1
        assert result.duplicates == 1

    def test_duplicates_are_tenant_scoped(self, service, guard, db):
        """Test an identical crossing in another tenant is not a duplicate."""
        other = CallerContext(user_id="guard-x", tenant_id=OTHER_TENANT, role="security_head")
        service.sync_offline_logs(other, [make_log(0)])

        result = service.sync_offline_logs(guard, [make_log(0)])

        assert result.inserted == 1
        assert count_rows(db, "entry_exit_logs") == 2

    def test_tenant_and_guard_attached(self, service, guard, db):
        """Test tenant comes from the caller and guard defaults to the caller."""
        service.sync_offline_logs(
            guard, [make_log(0), make_log(1, guard_on_duty_id="guard-night-shift")]
        )

        rows = db.fetch_all(
            select(entry_exit_logs.c.tenant_id, entry_exit_logs.c.guard_on_duty_id)
            .order_by(entry_exit_logs.c.timestamp)
        )
        assert [r["tenant_id"] for r in rows] == [guard.tenant_id, guard.tenant_id]
        assert [r["guard_on_duty_id"] for r in rows] == [guard.user_id, "guard-night-shift"]

    def test_event_time_is_stored(self, service, guard, db):
        """Test the device's event time is persisted, not receipt time."""
        service.sync_offline_logs(guard, [make_log(0, purpose="Visiting family")])

        row = db.fetch_one(select(entry_exit_logs))
        assert row["timestamp"] == BASE_TIME
        assert row["purpose"] == "Visiting family"
        assert row["sticker_id"] is None


class TestSyncBatching:
    """Tests for batch partitioning and partial failure."""

    def test_large_submission_uses_three_inserts(self, service, guard, db):
        """Test 1200 logs are written as 500 + 500 + 200."""
        logs = [make_log(i) for i in range(1200)]

        with patch.object(db, "insert_many", wraps=db.insert_many) as insert_many:
            result = service.sync_offline_logs(guard, logs)

        assert insert_many.call_count == 3
        assert [len(c.args[1]) for c in insert_many.call_args_list] == [500, 500, 200]
        assert result.inserted == 1200
        assert result.success is True

    def test_failed_batch_does_not_stop_others(self, service, guard, db):
        """Test a store error in the second batch leaves the first and third stored."""
        real_insert = db.insert_many
        calls = []

        def flaky_insert(table, rows):
            calls.append(len(rows))
            if len(calls) == 2:
                raise OperationalError("INSERT INTO entry_exit_logs", {}, Exception("connection lost"))
            return real_insert(table, rows)

        logs = [make_log(i) for i in range(1200)]
        with patch.object(db, "insert_many", side_effect=flaky_insert):
            result = service.sync_offline_logs(guard, logs)

        assert calls == [500, 500, 200]
        assert result.success is False
        assert (result.inserted, result.duplicates, result.errors) == (700, 0, 500)
        _assert_balanced(result)
        assert count_rows(db, "entry_exit_logs") == 700

        assert len(result.error_details) == 1
        detail = result.error_details[0]
        assert detail.error == "connection lost"
        assert detail.batch_index == 1
        assert detail.failed_count == 500
        assert detail.log["vehicle_plate"] == "ABC-0500"

    def test_failed_batch_can_be_resubmitted(self, service, guard, db):
        """Test retrying after a partial failure stores only what was missing."""
        logs = [make_log(i) for i in range(1200)]
        real_insert = db.insert_many
        calls = []

        def flaky_insert(table, rows):
            calls.append(len(rows))
            if len(calls) == 1:
                raise OperationalError("INSERT", {}, Exception("timeout"))
            return real_insert(table, rows)

        with patch.object(db, "insert_many", side_effect=flaky_insert):
            service.sync_offline_logs(guard, logs)

        retry = service.sync_offline_logs(guard, logs)

        assert retry.inserted == 500
        assert retry.duplicates == 700
        assert count_rows(db, "entry_exit_logs") == 1200

    def test_duplicates_counted_in_failed_batch(self, service, guard, db):
        """Test a failing batch reports duplicates separately from errors."""
        service.sync_offline_logs(guard, [make_log(0)])

        with patch.object(db, "insert_many", side_effect=OperationalError("INSERT", {}, Exception("down"))):
            result = service.sync_offline_logs(guard, [make_log(0), make_log(1), make_log(2)])

        assert (result.inserted, result.duplicates, result.errors) == (0, 1, 2)
        _assert_balanced(result)

    def test_duplicate_lookup_failure_fails_the_batch(self, service, guard, db):
        """Test a failed existing-key query counts the whole batch as errors."""
        with patch.object(db, "fetch_all", side_effect=OperationalError("SELECT", {}, Exception("read timeout"))):
            result = service.sync_offline_logs(guard, [make_log(i) for i in range(4)])

        assert result.errors == 4
        assert result.error_details[0].error == "read timeout"
        assert count_rows(db, "entry_exit_logs") == 0

    def test_custom_batch_size(self, db, guard):
        """Test the batch size is tunable."""
        service = SyncService(db, batch_size=2)

        with patch.object(db, "insert_many", wraps=db.insert_many) as insert_many:
            result = service.sync_offline_logs(guard, [make_log(i) for i in range(5)])

        assert insert_many.call_count == 3
        assert result.inserted == 5

    @pytest.mark.parametrize("size", [0, -1, 1001])
    def test_batch_size_bounds(self, db, size):
        """Test batch size must fit the store's insert ceiling."""
        with pytest.raises(ValueError):
            SyncService(db, batch_size=size)

    def test_zero_batch_size_is_not_replaced_by_default(self, db):
        with pytest.raises(ValueError):
            SyncService(db, batch_size=0)


class TestSyncRejections:
    """Tests for calls rejected before any data is touched."""

    @pytest.mark.parametrize("role", ["household_head", "household_member", "admin_head", "super_admin"])
    def test_non_security_roles_denied(self, service, db, role):
        """Test only security roles may sync."""
        caller = CallerContext(user_id="someone", tenant_id="tenant-oakwood", role=role)

        with patch.object(db, "fetch_all", wraps=db.fetch_all) as fetch_all:
            with pytest.raises(AuthorizationDenied):
                service.sync_offline_logs(caller, [make_log(0)])

        fetch_all.assert_not_called()
        assert count_rows(db, "entry_exit_logs") == 0

    def test_security_head_allowed(self, service, head_guard):
        result = service.sync_offline_logs(head_guard, [make_log(0)])
        assert result.inserted == 1

    @pytest.mark.parametrize("logs", [None, []])
    def test_empty_submission_rejected(self, service, guard, logs):
        """Test an empty or absent list is a validation error."""
        with pytest.raises(ValidationError, match="logs array is required"):
            service.sync_offline_logs(guard, logs)
