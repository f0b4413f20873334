"""
Events API client.

Async HTTP client for the school dashboard's calendar endpoints. Every
call returns a ``Result``: ``Ok`` with parsed models when the API answered
``status: success``, ``Err`` with an ``ApiFailure`` otherwise. Transport
errors never escape as httpx exceptions.
"""

import logging
from datetime import date
from typing import Any, Callable, Dict, List, Optional

import httpx
from pydantic import ValidationError as ModelValidationError

from schoolcal import __version__
from schoolcal.models import CalendarEvent
from schoolcal.result import FAILURE_API, FAILURE_NETWORK, ApiFailure, Err, Ok, Result


logger = logging.getLogger("schoolcal.api")


# ============================================================================
# Constants
# ============================================================================

API_BASE_PATH = "/api/calendar"
EVENTS_PATH = f"{API_BASE_PATH}/events"
DEFAULT_TIMEOUT = 30.0  # seconds
USER_AGENT = f"SchoolCal-Events/{__version__}"

STATUS_MESSAGES = {
    401: "Authentication required",
    403: "Access denied",
    404: "Resource not found",
    500: "Internal server error",
}


# ============================================================================
# Response Handling
# ============================================================================


def _error_message(body: Any) -> Optional[str]:
    """Pick the API-provided message: message, then error, then detail."""
    if not isinstance(body, dict):
        return None
    for key in ("message", "error", "detail"):
        value = body.get(key)
        if value:
            return value if isinstance(value, str) else str(value)
    return None


def read_response(response: httpx.Response) -> Result:
    """
    Decide success or failure for an HTTP response.

    Returns:
        Ok(data) with the ``data`` member of a success body (or the whole
        body when it has none), Err(ApiFailure) otherwise
    """
    status_code = response.status_code

    if status_code in (204, 304):
        return Ok({})

    try:
        body = response.json()
    except ValueError:
        body = None

    if not 200 <= status_code < 300:
        message = _error_message(body)
        if message:
            return Err(ApiFailure(FAILURE_API, message, status_code, details=body))
        default = STATUS_MESSAGES.get(status_code, f"HTTP {status_code}")
        return Err(ApiFailure(FAILURE_NETWORK, default, status_code))

    if body is None:
        return Err(ApiFailure(
            FAILURE_NETWORK, "Response body is not valid JSON", status_code
        ))

    if isinstance(body, dict):
        if body.get("status") == "error":
            message = _error_message(body) or "Request failed"
            return Err(ApiFailure(FAILURE_API, message, status_code, details=body))
        if "data" in body:
            return Ok(body["data"] if body["data"] is not None else {})
    return Ok(body)


def _map(result: Result, parse: Callable[[Any], Any]) -> Result:
    """Parse the payload of an Ok result, turning bad payloads into Err."""
    if not result.is_ok:
        return result
    try:
        return Ok(parse(result.value))
    except (ModelValidationError, KeyError, TypeError, AttributeError) as e:
        logger.warning("Malformed event payload: %s", e)
        return Err(ApiFailure(FAILURE_API, f"Malformed event payload: {e}"))


def _parse_event(data: Dict[str, Any]) -> CalendarEvent:
    payload = data.get("event", data)
    return CalendarEvent.model_validate(payload)


def _parse_optional_event(data: Dict[str, Any]) -> Optional[CalendarEvent]:
    """Review endpoints may answer with only a message."""
    if isinstance(data, dict) and data.get("event"):
        return CalendarEvent.model_validate(data["event"])
    return None


def _parse_events(data: Any) -> List[CalendarEvent]:
    if isinstance(data, list):
        items = data
    elif "events" in data:
        items = data["events"] or []
    elif "event" in data:
        items = [data["event"]]
    else:
        items = []
    return [CalendarEvent.model_validate(item) for item in items]


def _query_value(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, date):
        return value.isoformat()
    return getattr(value, "value", value)


def build_params(**params: Any) -> Dict[str, Any]:
    """Drop unset query parameters and render the rest as strings."""
    return {key: _query_value(value) for key, value in params.items() if value is not None}


# ============================================================================
# EventsApiClient Class
# ============================================================================


class EventsApiClient:
    """
    HTTP client for the Events API.

    Attributes:
        server_url: Base URL of the dashboard API
        api_token: Bearer token of the signed-in user
    """

    def __init__(
        self,
        server_url: str,
        api_token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initialize the API client.

        Args:
            server_url: Base URL of the dashboard API
            api_token: Optional bearer token
            timeout: Request timeout in seconds

        Raises:
            ValueError: If server_url is empty
        """
        if not server_url:
            raise ValueError("server_url is required")

        self._server_url = server_url.rstrip("/")
        self._api_token = api_token
        self._timeout = timeout

        headers = {
            "User-Agent": USER_AGENT,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if api_token:
            headers["Authorization"] = f"Bearer {api_token}"

        self._client = httpx.AsyncClient(
            base_url=self._server_url,
            headers=headers,
            timeout=timeout,
        )

    @classmethod
    def from_config(cls, config) -> "EventsApiClient":
        """Build a client from a ``ClientConfig``."""
        return cls(
            server_url=config.server_url,
            api_token=config.api_token or None,
            timeout=config.request_timeout,
        )

    @property
    def server_url(self) -> str:
        return self._server_url

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "EventsApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    async def _send(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Result:
        """Send one request and classify the outcome."""
        kwargs: Dict[str, Any] = {}
        if json is not None:
            kwargs["json"] = json
        if params:
            kwargs["params"] = params

        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("%s %s timed out: %s", method, path, e)
            return Err(ApiFailure(FAILURE_NETWORK, f"Connection timed out: {e}"))
        except httpx.RequestError as e:
            logger.warning("%s %s failed to connect: %s", method, path, e)
            return Err(ApiFailure(FAILURE_NETWORK, f"Failed to connect to server: {e}"))

        result = read_response(response)
        if not result.is_ok:
            logger.warning(
                "%s %s failed (%s): %s",
                method, path, result.failure.status_code, result.failure.message,
            )
        else:
            logger.debug("%s %s -> %d", method, path, response.status_code)
        return result

    # -------------------------------------------------------------------------
    # Event Writes
    # -------------------------------------------------------------------------

    async def create_event(self, payload: Dict[str, Any]) -> Result:
        """
        Create an event (or a batched multi-class event).

        Returns:
            Ok(list[CalendarEvent]) with every stored event the API reported
        """
        result = await self._send("POST", EVENTS_PATH, json=payload)
        return _map(result, _parse_events)

    async def update_event(self, event_id: str, changes: Dict[str, Any]) -> Result:
        """Partially update an event. Returns Ok(CalendarEvent)."""
        result = await self._send("PATCH", f"{EVENTS_PATH}/{event_id}", json=changes)
        return _map(result, _parse_event)

    async def delete_event(self, event_id: str) -> Result:
        result = await self._send("DELETE", f"{EVENTS_PATH}/{event_id}")
        return _map(result, lambda data: None)

    async def approve_event(self, event_id: str) -> Result:
        """Approve a pending event. Returns Ok(CalendarEvent | None)."""
        result = await self._send("POST", f"{EVENTS_PATH}/{event_id}/approve", json={})
        return _map(result, _parse_optional_event)

    async def reject_event(self, event_id: str, rejection_reason: Optional[str]) -> Result:
        """Reject a pending event. Returns Ok(CalendarEvent | None)."""
        body: Dict[str, Any] = {}
        if rejection_reason:
            body["rejection_reason"] = rejection_reason
        result = await self._send("POST", f"{EVENTS_PATH}/{event_id}/reject", json=body)
        return _map(result, _parse_optional_event)

    # -------------------------------------------------------------------------
    # Event Reads
    # -------------------------------------------------------------------------

    async def get_event(self, event_id: str) -> Result:
        result = await self._send("GET", f"{EVENTS_PATH}/{event_id}")
        return _map(result, _parse_event)

    async def list_events(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        class_division_id: Optional[str] = None,
        event_type: Optional[str] = None,
        event_category: Optional[str] = None,
        status: Optional[str] = None,
        use_ist: Optional[bool] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Result:
        """
        List events with optional filters.

        Returns:
            Ok(list[CalendarEvent])
        """
        params = build_params(
            start_date=start_date,
            end_date=end_date,
            class_division_id=class_division_id,
            event_type=event_type,
            event_category=event_category,
            status=status,
            use_ist=use_ist,
            page=page,
            limit=limit,
        )
        result = await self._send("GET", EVENTS_PATH, params=params)
        return _map(result, _parse_events)

    async def list_class_events(
        self,
        class_division_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        event_category: Optional[str] = None,
    ) -> Result:
        params = build_params(
            start_date=start_date, end_date=end_date, event_category=event_category
        )
        result = await self._send(
            "GET", f"{EVENTS_PATH}/class/{class_division_id}", params=params
        )
        return _map(result, _parse_events)

    async def list_teacher_events(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        event_category: Optional[str] = None,
        use_ist: Optional[bool] = True,
    ) -> Result:
        params = build_params(
            start_date=start_date,
            end_date=end_date,
            event_category=event_category,
            use_ist=use_ist,
        )
        result = await self._send("GET", f"{EVENTS_PATH}/teacher", params=params)
        return _map(result, _parse_events)

    async def list_parent_events(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        use_ist: Optional[bool] = True,
    ) -> Result:
        params = build_params(start_date=start_date, end_date=end_date, use_ist=use_ist)
        result = await self._send("GET", f"{EVENTS_PATH}/parent", params=params)
        return _map(result, _parse_events)
