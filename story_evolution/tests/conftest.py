"""
Pytest configuration and fixtures for story evolution tests.

This module provides:
- Network blocking fixture to prevent accidental API calls in CI
- Fresh tracker fixtures for each content format
- Record builders for extraction data
"""

import json
import socket
from unittest.mock import AsyncMock, patch

import pytest

from story_evolution.config.settings import EvolutionSettings
from story_evolution.core.character_arc import CharacterArcTracker
from story_evolution.core.discovery import DiscoveryTracker
from story_evolution.models import ExtractionRecord


class NetworkBlockedError(Exception):
    """Raised when a test attempts to make a network connection."""
    pass


def _block_socket_connect(*args, **kwargs):
    """Block all socket connections to prevent accidental API calls."""
    raise NetworkBlockedError(
        "Network access is blocked in unit tests. "
        "If you need to test network functionality, use mocks. "
        "This prevents accidental OpenAI/Anthropic API calls that cost money."
    )


@pytest.fixture(autouse=True)
def block_network():
    """
    Automatically block all network connections in tests.

    Text-service clients are always replaced by AsyncMock doubles; a real
    connection attempt is a bug in the test.
    """
    with patch.object(socket.socket, 'connect', _block_socket_connect):
        with patch.object(socket, 'create_connection', _block_socket_connect):
            yield


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    """Skip retry delays."""
    monkeypatch.setattr("story_evolution.core.extraction.backoff_delay", lambda attempt, base=3.0: 0)


@pytest.fixture
def settings():
    return EvolutionSettings()


@pytest.fixture
def book_tracker(settings):
    """Fresh book discovery tracker with a short outline."""
    return DiscoveryTracker(
        "story-1",
        "Mara searches for her lost brother. The storm destroys the harbor.",
        "book",
        settings=settings,
    )


@pytest.fixture
def comic_tracker(settings):
    return DiscoveryTracker("comic-1", "Page-turning heist comic.", "comic", settings=settings)


@pytest.fixture
def screenplay_tracker(settings):
    return DiscoveryTracker("script-1", "A two-hander thriller.", "screenplay", settings=settings)


@pytest.fixture
def book_arcs():
    """Fresh book arc tracker with Mara as protagonist."""
    tracker = CharacterArcTracker("story-1", "book")
    tracker.initialize("Mara", "protagonist")
    return tracker


def mock_llm(*responses):
    """AsyncMock text service returning each response in turn (dicts are JSON-encoded)."""
    client = AsyncMock()
    client.generate.side_effect = [
        r if isinstance(r, (str, Exception)) else json.dumps(r) for r in responses
    ]
    return client


def make_record(unit_number=1, format="book", **fields):
    """Build an ExtractionRecord from camelCase or snake_case fields."""
    return ExtractionRecord.model_validate({"unit_number": unit_number, "format": format, **fields})
