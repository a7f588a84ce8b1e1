"""Machine status feed adapter.

Fetches the machine list, decodes each record's nested status payload and
produces normalized :class:`MachineSnapshot` objects. Records that fail to
decode are skipped for the cycle; the rest of the batch is kept.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

import aiohttp
from pydantic import ValidationError

from pylaundry._constants import DEFAULT_FEED_HEADERS, ORGANIZATION_HEADER, UNKNOWN_CYCLE
from pylaundry._transport import HttpTransport, Transport
from pylaundry.config import LaundryConfig
from pylaundry.exceptions import LaundryError, LaundryFeedError, LaundryTransportError, MalformedMachineError
from pylaundry.models.machine import MachineSnapshot, MachineStatus, RawMachineRecord, raw_record_summary

_logger = logging.getLogger(__name__)

# Feed status ids -> normalized status. The feed reports a finished cycle
# as ``COMPLETE``.
_STATUS_IDS: dict[str, MachineStatus] = {
    "AVAILABLE": MachineStatus.AVAILABLE,
    "IN_USE": MachineStatus.IN_USE,
    "COMPLETE": MachineStatus.FINISHED,
    "OUT_OF_ORDER": MachineStatus.OUT_OF_ORDER,
}


def build_headers(organization_id: str | None = None, additional_headers: str | None = None) -> dict[str, str]:
    """Build request headers for the status feed.

    *additional_headers* is a comma-separated list of ``key=value`` pairs;
    pairs without a key or a value are ignored.
    """
    headers = dict(DEFAULT_FEED_HEADERS)
    if organization_id:
        headers[ORGANIZATION_HEADER] = organization_id

    if additional_headers:
        for pair in additional_headers.split(","):
            key, sep, value = pair.partition("=")
            if not sep:
                continue
            key = key.strip()
            value = value.strip()
            if key and value:
                headers[key] = value
    return headers


def map_status_id(status_id: str) -> MachineStatus:
    """Map a feed status id to :class:`MachineStatus`.

    Unknown ids are logged and mapped to ``UNKNOWN``.
    """
    status = _STATUS_IDS.get(status_id.strip().upper())
    if status is None:
        _logger.warning("Unknown statusId %r, mapping to UNKNOWN", status_id)
        return MachineStatus.UNKNOWN
    return status


def snapshot_from_record(record: RawMachineRecord) -> MachineSnapshot:
    status = record.current_status
    cycle = status.selected_cycle.name if status.selected_cycle is not None else None
    return MachineSnapshot(
        id=record.id,
        name=record.machine_name,
        number=record.machine_number,
        is_washer=record.machine_type.is_washer,
        is_dryer=record.machine_type.is_dryer,
        status=map_status_id(status.status_id),
        remaining_seconds=status.remaining_seconds,
        is_door_open=status.is_door_open,
        selected_cycle=cycle or UNKNOWN_CYCLE,
        remaining_vend=status.remaining_vend,
        raw=record.raw,
    )


def parse_machine(item: Any) -> MachineSnapshot:
    """Parse one raw feed entry.

    Raises
    ------
    MalformedMachineError
        If the entry or its nested status payload cannot be decoded.
    """
    if not isinstance(item, dict):
        raise MalformedMachineError(f"Machine entry is not an object: {type(item).__name__}")
    machine_id = str(item.get("id") or "")
    try:
        record = RawMachineRecord.model_validate(item)
    except ValidationError as exc:
        raise MalformedMachineError(
            f"Could not decode machine {machine_id or '<no id>'}: {exc.error_count()} error(s)",
            machine_id=machine_id,
        ) from exc

    _logger.debug("Machine %s (%s) raw status: %s", record.machine_name, record.id, raw_record_summary(record))
    return snapshot_from_record(record)


def parse_machine_list(items: Iterable[Any]) -> list[MachineSnapshot]:
    """Parse a feed batch, skipping entries that fail to decode."""
    machines: list[MachineSnapshot] = []
    for item in items:
        try:
            machines.append(parse_machine(item))
        except MalformedMachineError as exc:
            _logger.warning("Skipping machine for this cycle: %s", exc, exc_info=_logger.isEnabledFor(logging.DEBUG))
    return machines


class LaundryFeed:
    """Async adapter for the machine status feed.

    Usage::

        async with LaundryFeed(config) as feed:
            machines = await feed.fetch_machines()
    """

    def __init__(
        self,
        config: LaundryConfig,
        *,
        transport: Transport | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config
        self._headers = build_headers(config.organization_id, config.additional_headers)
        self._transport = transport
        self._http_session = session
        self._owns_session = False

    async def __aenter__(self) -> LaundryFeed:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
                self._owns_session = True
            self._transport = HttpTransport(self._http_session, timeout=self._config.request_timeout)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._owns_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
            self._transport = None
            self._owns_session = False

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise LaundryError("Feed not initialized. Use 'async with LaundryFeed(...) as feed:'")
        return self._transport

    async def fetch_raw(self) -> list[Any]:
        """Fetch the raw machine list, retrying transport failures.

        Raises
        ------
        LaundryTransportError
            If every attempt failed at the HTTP level.
        LaundryFeedError
            If the feed answered with something other than a JSON list.
        """
        transport = self._require_transport()
        attempts = self._config.fetch_retries + 1
        last_exc: LaundryTransportError | None = None

        for attempt in range(1, attempts + 1):
            try:
                payload = await transport.get_json(self._config.api_url, self._headers)
            except LaundryTransportError as exc:
                last_exc = exc
                if attempt < attempts:
                    _logger.info(
                        "Feed request failed (attempt %d/%d), retrying in %.1fs: %s",
                        attempt,
                        attempts,
                        self._config.retry_delay,
                        exc,
                    )
                    await asyncio.sleep(self._config.retry_delay)
                continue

            if not isinstance(payload, list):
                raise LaundryFeedError(f"Expected a machine list from the feed, got {type(payload).__name__}")
            return payload

        assert last_exc is not None  # noqa: S101
        raise last_exc

    async def fetch_machines(self) -> list[MachineSnapshot]:
        """Fetch and normalize the current machine list."""
        return parse_machine_list(await self.fetch_raw())
