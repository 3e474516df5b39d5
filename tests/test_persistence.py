"""
Tests for the persistence gateway and the SQLite slice store.

Each test uses its own SQLite file under ``tmp_path``.
"""

import json

import pytest

from budget_tracker.database import DatabaseManager
from budget_tracker.models import AuthSlice, Expense, ExpensesSlice, User, UsersSlice
from budget_tracker.repositories.slice_repository import SliceRepository
from budget_tracker.schema import CURRENT_SCHEMA_VERSION, initialize_schema
from budget_tracker.services.persistence import PersistenceGateway


@pytest.fixture
def db(tmp_path, logger):
    manager = DatabaseManager(sqlite_path=tmp_path / "slices.db", logger=logger)
    initialize_schema(manager.sqlite, logger)
    yield manager
    manager.close()


@pytest.fixture
def slice_repo(db, logger):
    return SliceRepository(db=db, logger=logger)


@pytest.fixture
def gateway(slice_repo, logger):
    persistence = PersistenceGateway(slice_repo=slice_repo, logger=logger)
    yield persistence
    persistence.close()


def _expense(expense_id="e1", amount=3.5) -> Expense:
    return Expense(
        id=expense_id, user_id="u1", name="Coffee", amount=amount, date_iso="2024-03-05T00:00:00Z",
    )


class TestSchema:
    """Idempotent schema creation."""

    def test_initialize_twice(self, db, logger):
        initialize_schema(db.sqlite, logger)
        version = db.sqlite.execute("SELECT MAX(version) FROM schema_version").fetchone()[0]
        assert version == CURRENT_SCHEMA_VERSION


class TestSliceRepository:
    """Sequence-guarded upserts."""

    def test_put_and_get(self, slice_repo):
        assert slice_repo.put("expenses", 1, 1, "{}") is True
        stored = slice_repo.get("expenses")
        assert stored.seq == 1
        assert stored.payload == "{}"

    def test_stale_write_never_overwrites(self, slice_repo):
        slice_repo.put("expenses", 1, 5, "newer")
        assert slice_repo.put("expenses", 1, 4, "older") is False
        assert slice_repo.get("expenses").payload == "newer"

    def test_latest_seq(self, slice_repo):
        assert slice_repo.latest_seq("auth") == 0
        slice_repo.put("auth", 1, 7, "{}")
        assert slice_repo.latest_seq("auth") == 7

    def test_get_missing(self, slice_repo):
        assert slice_repo.get("users") is None


class TestGatewayWrites:
    """Fire-and-forget writes through the writer thread."""

    def test_round_trip_expense(self, gateway):
        gateway.start()
        expense = _expense()
        gateway.schedule("expenses", ExpensesSlice(expenses=[expense]))
        gateway.flush()
        assert gateway.load_slice("expenses").expenses == [expense]

    def test_payload_uses_camel_case(self, gateway, slice_repo):
        gateway.schedule("expenses", ExpensesSlice(expenses=[_expense()]))
        gateway.flush()
        payload = json.loads(slice_repo.get("expenses").payload)
        assert payload["version"] == 1
        assert payload["expenses"][0]["userId"] == "u1"
        assert payload["expenses"][0]["dateISO"] == "2024-03-05T00:00:00Z"

    def test_last_write_wins(self, gateway):
        gateway.start()
        for index in range(20):
            gateway.schedule("expenses", ExpensesSlice(expenses=[_expense(amount=float(index))]))
        gateway.flush()
        assert gateway.load_slice("expenses").expenses[0].amount == 19.0
        assert gateway.pending_writes == 0

    def test_sequence_continues_after_restart(self, slice_repo, logger):
        first = PersistenceGateway(slice_repo=slice_repo, logger=logger)
        first.schedule("users", UsersSlice(users=[]))
        first.schedule("users", UsersSlice(users=[]))
        first.close()

        second = PersistenceGateway(slice_repo=slice_repo, logger=logger)
        assert second.schedule("users", UsersSlice(users=[])) == 3
        second.close()

    def test_unknown_slice_rejected(self, gateway):
        with pytest.raises(KeyError):
            gateway.schedule("ui", ExpensesSlice())

    def test_write_failure_is_logged_and_dropped(self, gateway, db, caplog):
        db.close()
        assert db.is_closed
        gateway.schedule("expenses", ExpensesSlice())
        gateway.flush()
        assert gateway.failed_writes == 1
        assert "Failed to persist slice expenses" in caplog.text


class TestGatewayRestore:
    """Startup restore with per-slice fallback."""

    def test_absent_slices_restore_as_none(self, gateway):
        restored = gateway.restore()
        assert restored.auth is None
        assert restored.expenses is None
        assert restored.users is None
        assert restored.malformed == ()

    def test_restores_stored_slices(self, gateway):
        user = User(id="u1", first_name="A", last_name="B", email="a@b.com")
        gateway.schedule("auth", AuthSlice(user=user, is_authenticated=True))
        gateway.schedule("users", UsersSlice(users=[user]))
        gateway.flush()
        restored = gateway.restore()
        assert restored.auth.user == user
        assert restored.users.users == [user]

    @pytest.mark.parametrize(
        "payload",
        [
            "{not json",
            json.dumps({"version": 1, "expenses": "nope"}),
            json.dumps({"version": 99, "expenses": []}),
            json.dumps({"version": 1, "expenses": [{"id": "e1"}]}),
        ],
    )
    def test_malformed_slice_falls_back(self, gateway, slice_repo, payload, caplog):
        slice_repo.put("expenses", 1, 1, payload)
        gateway.schedule("users", UsersSlice(users=[]))
        gateway.flush()

        restored = gateway.restore()
        assert restored.expenses is None
        assert restored.malformed == ("expenses",)
        assert restored.users is not None
        assert "Discarding persisted slice expenses" in caplog.text

    def test_broken_auth_invariant_falls_back(self, gateway, slice_repo):
        slice_repo.put("auth", 1, 1, json.dumps({"version": 1, "user": None, "isAuthenticated": True}))
        restored = gateway.restore()
        assert restored.auth is None
        assert restored.malformed == ("auth",)

    def test_unknown_row_version_falls_back(self, gateway, slice_repo):
        slice_repo.put("users", 2, 1, json.dumps({"version": 1, "users": []}))
        assert gateway.restore().malformed == ("users",)


class TestDisabledGateway:
    """PERSIST_ENABLED=false."""

    def test_noop(self, logger):
        persistence = PersistenceGateway(slice_repo=None, logger=logger, enabled=False)
        assert persistence.schedule("expenses", ExpensesSlice()) is None
        assert persistence.restore().malformed == ()
        persistence.start()
        assert not persistence.is_running
        persistence.close()
