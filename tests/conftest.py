"""Shared test fixtures for keyrelay."""

import tempfile

import pytest
from loguru import logger


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def today(monkeypatch):
    """Pin the usage day.  Call the returned setter to move to another day."""
    current = {"day": "2026-10-19"}
    monkeypatch.setattr("keyrelay.rotation.usage._today", lambda: current["day"])

    def _set(day: str) -> None:
        current["day"] = day

    return _set


@pytest.fixture
def log_messages():
    """Collect loguru output (INFO and up) as plain strings."""
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="INFO")
    yield messages
    logger.remove(handler_id)
