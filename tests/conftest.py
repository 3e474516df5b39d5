"""Shared fixtures: isolated config, a temp SQLite file and wired stores."""

import pytest

from budget_tracker.bootstrap import create_store
from budget_tracker.config import AppConfig, get_config, reset_config
from budget_tracker.logger import StructuredLogger
from budget_tracker.repositories.expense_repository import ExpenseRepository
from budget_tracker.repositories.user_repository import UserRepository
from budget_tracker.services.credentials import Sha256DigestVerifier
from budget_tracker.services.entity_store import EntityStore


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Point every test at its own storage file with fast, quiet settings."""
    monkeypatch.setenv("STORAGE_PATH", str(tmp_path / "budget_tracker_test.db"))
    monkeypatch.setenv("PERSIST_ENABLED", "true")
    monkeypatch.setenv("SEED_DEMO_USERS", "false")
    monkeypatch.setenv("CREDENTIAL_SCHEME", "pbkdf2")
    monkeypatch.setenv("PBKDF2_ITERATIONS", "1000")
    monkeypatch.setenv("LOG_FILE", "")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    reset_config()
    yield
    reset_config()


@pytest.fixture
def config() -> AppConfig:
    return get_config()


@pytest.fixture
def logger() -> StructuredLogger:
    return StructuredLogger(name="budget_tracker.tests", log_file="")


@pytest.fixture
def user_repo(logger) -> UserRepository:
    return UserRepository(logger=logger)


@pytest.fixture
def expense_repo(logger) -> ExpenseRepository:
    return ExpenseRepository(logger=logger)


@pytest.fixture
def entity_store(user_repo, expense_repo, logger) -> EntityStore:
    return EntityStore(
        user_repo=user_repo,
        expense_repo=expense_repo,
        credentials=Sha256DigestVerifier(),
        logger=logger,
    )


@pytest.fixture
def store(config):
    budget_store = create_store(config)
    yield budget_store
    budget_store.close()


@pytest.fixture
def memory_store(monkeypatch):
    """A store with persistence switched off."""
    monkeypatch.setenv("PERSIST_ENABLED", "false")
    reset_config()
    budget_store = create_store(get_config())
    yield budget_store
    budget_store.close()


@pytest.fixture
def signed_up(store):
    """A store with user A B (a@b.com / secret1) signed in; yields (store, user)."""
    result = store.sign_up({
        "firstName": "A",
        "lastName": "B",
        "email": "a@b.com",
        "password": "secret1",
        "budgetLimit": 100.0,
    })
    assert result.success, result.error
    return store, result.data
