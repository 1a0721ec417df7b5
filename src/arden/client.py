"""HTTP client for delivering telemetry events to the Arden collection endpoint."""

import gzip
import json
import logging
from typing import Any, Iterable, Optional, Union

import requests
from pydantic import BaseModel, Field, ValidationError
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .agents import get_agent_by_id, wire_agent_id
from .config import DEFAULT_HOST
from .models.delivery import ChunkResponse, DeliveryResult, RejectedEvent
from .models.event import TelemetryData, TelemetryEvent
from .sanitize import sanitize
from .schema import SchemaError, build_event, flatten_data, validate_event, validate_events
from .time import now_millis, parse_timestamp_millis

logger = logging.getLogger(__name__)

EVENTS_ENDPOINT = "api/events"
CHUNK_SIZE = 100
GZIP_THRESHOLD_BYTES = 1024 * 1024
DEFAULT_TIMEOUT_MS = 30000
DEFAULT_MAX_RETRIES = 3
RETRY_STATUS_CODES = (408, 429, 500, 502, 503, 504)


class TransportError(RuntimeError):
    """Raised when a chunk cannot be delivered.

    Attributes:
        status_code: HTTP status of the failing response, if there was one
        failed_chunk: 0-based index of the chunk that failed
        delivered: Result aggregated from the chunks sent before the failure
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        failed_chunk: Optional[int] = None,
        delivered: Optional[DeliveryResult] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.failed_chunk = failed_chunk
        self.delivered = delivered


class DeliveryConfig(BaseModel):
    """Options for DeliveryClient."""

    host: str = Field(default=DEFAULT_HOST, description="Base URL of the Arden API")
    token: Optional[str] = Field(default=None, description="Bearer token")
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0, description="Per-request timeout")
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0, description="Per-request retries")


def chunk_events(events: list[TelemetryEvent], size: int = CHUNK_SIZE) -> list[list[TelemetryEvent]]:
    """Split events into consecutive chunks of at most ``size``."""
    return [events[i:i + size] for i in range(0, len(events), size)]


def combine_results(responses: Iterable[ChunkResponse]) -> DeliveryResult:
    """Aggregate per-chunk responses into one DeliveryResult.

    Rejected indices from each chunk are offset by the number of rejections
    already aggregated from earlier chunks.
    """
    accepted_count = 0
    rejected_count = 0
    event_ids: list[str] = []
    rejected: list[RejectedEvent] = []
    chunks_sent = 0

    for response in responses:
        chunks_sent += 1
        accepted_count += response.accepted_count

        if response.rejected_count is not None:
            rejected_count += response.rejected_count
        elif response.rejected:
            rejected_count += len(response.rejected)

        if response.event_ids:
            event_ids.extend(response.event_ids)

        if response.rejected:
            base_index = len(rejected)
            rejected.extend(
                RejectedEvent(index=item.index + base_index, error=item.error)
                for item in response.rejected
            )

    status = "accepted"
    if rejected_count > 0:
        status = "partial" if accepted_count > 0 else "rejected"

    return DeliveryResult(
        status=status,
        accepted_count=accepted_count,
        rejected_count=rejected_count,
        event_ids=event_ids,
        rejected=rejected,
        chunks_sent=chunks_sent,
    )


class DeliveryClient:
    """Sends validated events to ``<host>/api/events`` in ordered chunks.

    Chunks go out one at a time; each request has its own timeout and retry
    budget, handled by the session's urllib3 Retry policy.
    """

    def __init__(
        self,
        config: Optional[DeliveryConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize delivery client.

        Args:
            config: Delivery options. If None, uses defaults.
            session: Pre-built HTTP session (mainly for tests). If None, one
                is built lazily on first use.
        """
        self.config = config or DeliveryConfig()
        self.host = self.config.host.rstrip("/") or DEFAULT_HOST
        self._session = session

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = self._build_session()
        return self._session

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"
        return headers

    def _build_session(self) -> requests.Session:
        retry = Retry(
            total=self.config.max_retries,
            backoff_factor=0.5,
            status_forcelist=RETRY_STATUS_CODES,
            allowed_methods=frozenset({"GET", "POST"}),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)

        session = requests.Session()
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        logger.debug(f"Built HTTP session for {self.host}, headers: {sanitize(self._headers())}")
        return session

    def send_events(self, events: Iterable[Any]) -> DeliveryResult:
        """Validate and deliver events, returning the aggregated result.

        Args:
            events: TelemetryEvent instances or raw candidate mappings

        Returns:
            DeliveryResult combined across all chunks

        Raises:
            SchemaError: If any event is invalid (nothing is sent)
            TransportError: If a chunk fails; later chunks are not sent
        """
        validated = validate_events(events)

        responses: list[ChunkResponse] = []
        for chunk_index, chunk in enumerate(chunk_events(validated, CHUNK_SIZE)):
            try:
                responses.append(self._send_chunk(chunk))
            except TransportError as e:
                e.failed_chunk = chunk_index
                e.delivered = combine_results(responses)
                raise

        return combine_results(responses)

    def _send_chunk(self, chunk: list[TelemetryEvent]) -> ChunkResponse:
        wire = [event.to_wire() for event in chunk]
        # The endpoint expects a bare object for a single event
        body: Union[dict, list] = wire[0] if len(wire) == 1 else wire
        raw = json.dumps(body, separators=(",", ":"), ensure_ascii=False).encode("utf-8")

        headers = self._headers()
        if len(raw) > GZIP_THRESHOLD_BYTES:
            raw = gzip.compress(raw)
            headers["Content-Encoding"] = "gzip"

        url = f"{self.host}/{EVENTS_ENDPOINT}"
        logger.debug(f"Making POST request to: {url} ({len(chunk)} events, {len(raw)} bytes)")

        try:
            response = self.session.post(
                url,
                data=raw,
                headers=headers,
                timeout=self.config.timeout_ms / 1000,
            )
            response.raise_for_status()
        except requests.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            logger.error(f"Failed to send telemetry chunk: HTTP {status_code}")
            raise TransportError(
                f"Events endpoint returned HTTP {status_code}", status_code=status_code
            ) from e
        except requests.RequestException as e:
            logger.error(f"Failed to send telemetry chunk: {e}")
            raise TransportError(f"Failed to send telemetry chunk: {e}") from e

        try:
            result = ChunkResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise TransportError(f"Malformed response from events endpoint: {e}") from e

        logger.debug(f"Received response: {result.model_dump_json()}")
        return result


def send_events(events: Iterable[Any], config: Optional[DeliveryConfig] = None) -> DeliveryResult:
    """Deliver events with a one-off client."""
    return DeliveryClient(config).send_events(events)


def telemetry_to_event(data: TelemetryData, user: Optional[str] = None) -> TelemetryEvent:
    """Turn a loose telemetry record into an (unvalidated) event."""
    agent = data.provider
    if get_agent_by_id(agent) is not None:
        agent = wire_agent_id(agent)

    if isinstance(data.payload, dict):
        payload = flatten_data(data.payload)
        payload.setdefault("hook", data.hook)
    else:
        payload = {"hook": data.hook, "payload": json.dumps(data.payload, default=str)}

    return build_event(
        agent,
        user=user,
        time=parse_timestamp_millis(data.timestamp) or now_millis(),
        data=payload,
    )


def send_telemetry(
    name: str,
    data: Union[TelemetryData, dict],
    config: Optional[DeliveryConfig] = None,
    user: Optional[str] = None,
) -> bool:
    """Send one loose telemetry record, logging the outcome.

    Returns:
        True if the event was delivered, False if it was invalid or the
        transport failed
    """
    config = config or DeliveryConfig()
    try:
        record = data if isinstance(data, TelemetryData) else TelemetryData.model_validate(data)
        event = validate_event(telemetry_to_event(record, user=user))
        DeliveryClient(config).send_events([event])
    except (SchemaError, TransportError, ValidationError) as e:
        logger.error(f"[TELEMETRY] Failed to send {name} to {config.host}: {e}")
        return False

    logger.info(f"[TELEMETRY] {name} sent to {config.host}")
    return True
