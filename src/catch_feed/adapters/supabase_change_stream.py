"""Supabase Realtime change stream for catch tables."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from uuid import uuid4

from realtime.exceptions import AuthorizationError, NotConnectedError
from supabase import AsyncClient
from websockets.exceptions import WebSocketException

from catch_feed.domain.changes import ChangeEvent, ChangeKind
from catch_feed.errors import NetworkError
from catch_feed.services.sync import ChangeStream, Subscription

SUBSCRIBED = "SUBSCRIBED"
_CONNECTION_ERRORS = (
    OSError,
    WebSocketException,
    NotConnectedError,
    AuthorizationError,
)

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseSubscription(Subscription):
    """A joined Realtime channel."""

    client: AsyncClient
    channel: object
    confirmed: bool

    async def unsubscribe(self) -> None:
        """Leave and remove the channel."""
        await self.client.remove_channel(self.channel)


@dataclass
class SupabaseChangeStream(ChangeStream):
    """Delivers ``postgres_changes`` events for a table."""

    client: AsyncClient
    schema: str = "public"
    confirm_timeout_seconds: float = 10.0

    async def subscribe(
        self, table: str, handler: Callable[[ChangeEvent], None]
    ) -> Subscription:
        """Join a channel for ``table`` and wait for the server to confirm."""
        confirmed = asyncio.Event()

        def on_status(status: object, error: Exception | None = None) -> None:
            state = getattr(status, "value", status)
            if state == SUBSCRIBED:
                confirmed.set()
                return
            _logger.warning(
                "Realtime subscription status for %s: %s (%s)", table, state, error
            )

        def on_change(payload: dict[str, object]) -> None:
            event = parse_change_payload(payload, table)
            if event is not None:
                handler(event)

        channel = self.client.channel(f"{table}_changes_{uuid4().hex[:8]}")
        channel.on_postgres_changes(
            "*", schema=self.schema, table=table, callback=on_change
        )
        try:
            await channel.subscribe(on_status)
            await asyncio.wait_for(
                confirmed.wait(), timeout=self.confirm_timeout_seconds
            )
        except TimeoutError:
            _logger.warning("Realtime subscription to %s was not confirmed", table)
        except _CONNECTION_ERRORS as exc:
            raise NetworkError(f"Realtime connection failed: {exc}") from exc
        return SupabaseSubscription(
            client=self.client, channel=channel, confirmed=confirmed.is_set()
        )


def parse_change_payload(
    payload: dict[str, object], table: str = "catches"
) -> ChangeEvent | None:
    """Parse a Realtime payload into a change event.

    Accepts both the nested ``data`` shape (``type``, ``record``,
    ``old_record``) and the flat shape (``eventType``, ``new``, ``old``).
    """
    data = payload.get("data")
    body = data if isinstance(data, dict) else payload
    raw_kind = body.get("type") or body.get("eventType")
    try:
        kind = ChangeKind(str(raw_kind).upper())
    except ValueError:
        return None
    if kind is ChangeKind.DELETE:
        row = body.get("old_record") or body.get("old")
    else:
        row = body.get("record") or body.get("new")
    record_id = row.get("id") if isinstance(row, dict) else None
    return ChangeEvent(
        kind=kind,
        record_id=str(record_id) if record_id is not None else None,
        table=str(body.get("table") or table),
    )
