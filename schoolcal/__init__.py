"""
SchoolCal Events - calendar event lifecycle for the school dashboard.

This package implements event creation with timezone-correct date/time
composition, class/school/teacher distribution, and the pending →
approved/rejected review flow on top of the dashboard's Events REST API.

Key modules:
- time_compositor: Local date/time → UTC instant composition
- distribution: Event type → single or multi-class plan
- approval: Review state machine
- visibility: Role-based listing filter
- api_client: Async HTTP client for the Events API
- event_service: Lifecycle operations composed from the above
- calendar_view: Display rows and date filters for calendar widgets
- config: Client configuration management
- logging_config: Console/JSON log formatting
"""

import os
from importlib.metadata import PackageNotFoundError, version


def _get_version() -> str:
    """
    Get version with priority: SCHOOLCAL_VERSION env var > installed metadata > fallback.
    """
    env_version = os.environ.get("SCHOOLCAL_VERSION")
    if env_version:
        return env_version

    try:
        return version("schoolcal-events")
    except PackageNotFoundError:
        pass

    return "0.0.0-dev+unknown"


__version__ = _get_version()
