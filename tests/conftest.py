"""
Pytest configuration and fixtures for SchoolCal Events tests.

Provides shared fixtures for configuration files, viewers of each role,
raw event payloads, and a mock Events API client.
"""

import tempfile
from pathlib import Path
from typing import Callable, Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
import yaml

from schoolcal.models import CalendarEvent, Viewer
from schoolcal.result import Ok


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def temp_config_dir() -> Generator[Path, None, None]:
    """
    Create a temporary directory for client configuration files.

    Yields:
        Path to temporary configuration directory
    """
    with tempfile.TemporaryDirectory(prefix="schoolcal_test_") as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def client_config() -> dict:
    """Sample client configuration."""
    return {
        "server_url": "http://localhost:8000",
        "api_token": "tok_test_1234567890abcdef",
        "timezone": "Asia/Kolkata",
        "request_timeout": 15.0,
        "fan_out": "per_class",
        "log_level": "DEBUG",
    }


@pytest.fixture
def client_config_file(temp_config_dir: Path, client_config: dict) -> Path:
    """Write the sample configuration to a YAML file."""
    config_path = temp_config_dir / "calendar-config.yaml"
    with open(config_path, "w") as f:
        yaml.dump(client_config, f)
    return config_path


@pytest.fixture
def clean_environment(monkeypatch) -> None:
    """Remove SchoolCal environment variables for test isolation."""
    for var in (
        "SCHOOLCAL_SERVER_URL",
        "SCHOOLCAL_API_TOKEN",
        "SCHOOLCAL_LOG_LEVEL",
        "SCHOOLCAL_CONFIG_PATH",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def mock_server_url() -> str:
    return "http://localhost:8000"


@pytest.fixture
def mock_api_token() -> str:
    return "tok_test_1234567890abcdef"


# ============================================================================
# Viewer Fixtures
# ============================================================================


@pytest.fixture
def admin_viewer() -> Viewer:
    return Viewer(id="usr_admin", role="admin", full_name="Asha Admin")


@pytest.fixture
def principal_viewer() -> Viewer:
    return Viewer(id="usr_principal", role="principal", full_name="Priya Principal")


@pytest.fixture
def teacher_viewer() -> Viewer:
    return Viewer(id="usr_teacher_a", role="teacher", full_name="Teacher A")


@pytest.fixture
def other_teacher_viewer() -> Viewer:
    return Viewer(id="usr_teacher_b", role="teacher", full_name="Teacher B")


@pytest.fixture
def parent_viewer() -> Viewer:
    return Viewer(id="usr_parent", role="parent", full_name="Parent P")


# ============================================================================
# Event Fixtures
# ============================================================================


@pytest.fixture
def event_payload() -> Callable[..., dict]:
    """
    Factory for raw event dictionaries as the Events API returns them.

    Returns:
        Function accepting field overrides
    """
    counter = {"n": 0}

    def build(**overrides) -> dict:
        counter["n"] += 1
        payload = {
            "id": f"evt_{counter['n']:03d}",
            "title": "Parent Teacher Meeting",
            "description": "Term 1 review",
            "event_date": "2025-09-10T04:30:00.000Z",
            "event_type": "school_wide",
            "event_category": "meeting",
            "is_single_day": True,
            "start_time": "10:00:00",
            "end_time": "12:00:00",
            "timezone": "Asia/Kolkata",
            "status": "approved",
            "created_by": "usr_admin",
            "created_at": "2025-09-01T10:00:00Z",
        }
        payload.update(overrides)
        return payload

    return build


@pytest.fixture
def make_event(event_payload) -> Callable[..., CalendarEvent]:
    """Factory for parsed CalendarEvent models."""

    def build(**overrides) -> CalendarEvent:
        return CalendarEvent.model_validate(event_payload(**overrides))

    return build


@pytest.fixture
def mixed_events(make_event) -> list:
    """
    Events in every status from two teachers plus an admin.

    Returns:
        List of CalendarEvent models
    """
    return [
        make_event(id="approved_admin", status="approved", created_by="usr_admin"),
        make_event(id="approved_a", status="approved", created_by="usr_teacher_a"),
        make_event(id="pending_a", status="pending", created_by="usr_teacher_a"),
        make_event(id="rejected_a", status="rejected", created_by="usr_teacher_a"),
        make_event(id="approved_b", status="approved", created_by="usr_teacher_b"),
        make_event(id="pending_b", status="pending", created_by="usr_teacher_b"),
        make_event(id="rejected_b", status="rejected", created_by="usr_teacher_b"),
    ]


# ============================================================================
# Mock API Client Fixtures
# ============================================================================


@pytest.fixture
def mock_http_client() -> MagicMock:
    """
    Create a mock httpx.AsyncClient.

    Returns:
        Mock with an AsyncMock ``request`` method
    """
    client = MagicMock()
    client.request = AsyncMock()
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def mock_events_api() -> MagicMock:
    """Create a mock EventsApiClient whose calls succeed with empty data."""
    client = MagicMock()
    client.create_event = AsyncMock(return_value=Ok([]))
    client.update_event = AsyncMock()
    client.delete_event = AsyncMock(return_value=Ok(None))
    client.approve_event = AsyncMock(return_value=Ok(None))
    client.reject_event = AsyncMock(return_value=Ok(None))
    client.get_event = AsyncMock()
    client.list_events = AsyncMock(return_value=Ok([]))
    client.list_class_events = AsyncMock(return_value=Ok([]))
    client.list_teacher_events = AsyncMock(return_value=Ok([]))
    client.list_parent_events = AsyncMock(return_value=Ok([]))
    client.close = AsyncMock()
    return client
