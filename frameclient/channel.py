"""Art-app control channel over WebSocket.

Owns the single WebSocket connection to the TV.  Outbound commands are
queued and written in order by a writer task; inbound text frames are parsed
one at a time by a reader task and handed to the ``on_event`` callback.  A
malformed frame is logged and dropped without affecting the next one.

Uses :mod:`aiohttp` for the WebSocket transport.  There is no reconnect:
when the connection drops the channel moves to ``CLOSED`` and reports it
through ``on_closed``.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Any, Callable

import aiohttp

from frameclient.protocol import Envelope, build_request, parse_envelope

logger = logging.getLogger(__name__)


class ChannelState(enum.Enum):
    IDLE = "idle"
    OPENING = "opening"
    OPEN = "open"
    CLOSED = "closed"


class ControlChannel:
    """WebSocket command/event channel bound to one session id.

    Parameters
    ----------
    session_id:
        Stamped as ``id`` into every outbound command.
    on_event:
        Called with each parsed :class:`~frameclient.protocol.Envelope`.
    on_closed:
        Called once per close with ``was_open`` (``True`` if the transport
        had connected).
    """

    def __init__(
        self,
        session_id: str,
        on_event: Callable[[Envelope], None],
        on_closed: Callable[[bool], None] | None = None,
        *,
        connect_timeout: float = 10.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.session_id = session_id
        self.connect_timeout = connect_timeout
        self._on_event = on_event
        self._on_closed = on_closed
        self._session = session
        self._owns_session = session is None
        self._state = ChannelState.IDLE
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._outbox: asyncio.Queue[str] | None = None
        self._reader_task: asyncio.Task | None = None
        self._writer_task: asyncio.Task | None = None

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is ChannelState.OPEN

    async def open(self, url: str) -> bool:
        """Connect to *url*. Returns ``False`` if already active or on failure."""
        if self._state in (ChannelState.OPENING, ChannelState.OPEN):
            logger.debug("Control channel already %s", self._state.value)
            return False
        self._state = ChannelState.OPENING
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True

        try:
            ws = await asyncio.wait_for(
                self._session.ws_connect(url), timeout=self.connect_timeout,
            )
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as exc:
            logger.warning("Control channel connect to %s failed: %s", url, exc)
            self._set_closed(was_open=False)
            return False

        if self._state is not ChannelState.OPENING:
            # close() was called while connecting
            await ws.close()
            return False

        self._ws = ws
        self._outbox = asyncio.Queue()
        self._state = ChannelState.OPEN
        loop = asyncio.get_running_loop()
        self._reader_task = loop.create_task(self._read_loop(ws))
        self._writer_task = loop.create_task(self._write_loop(ws, self._outbox))
        logger.info("Control channel open: %s", url)
        return True

    def send(self, request: str, **params: Any) -> bool:
        """Queue one art-app command. No-op unless the channel is open."""
        if self._state is not ChannelState.OPEN or self._outbox is None:
            logger.debug("Channel not open, dropping %s", request)
            return False
        text = build_request(request, self.session_id, **params)
        logger.debug("Sending: %s", text)
        self._outbox.put_nowait(text)
        return True

    async def close(self) -> None:
        """Close the channel whatever state it is in."""
        was_open = self._state is ChannelState.OPEN
        ws, self._ws = self._ws, None
        for task in (self._reader_task, self._writer_task):
            if task and not task.done() and task is not asyncio.current_task():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._reader_task = None
        self._writer_task = None
        if ws is not None and not ws.closed:
            await ws.close()
        if self._state is not ChannelState.IDLE:
            self._set_closed(was_open)

    async def aclose(self) -> None:
        """Close the channel and an internally created HTTP session."""
        await self.close()
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def wait_closed(self) -> None:
        """Wait until the reader task finishes (the peer closed the socket)."""
        task = self._reader_task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    # ------------------------------------------------------------------ #
    # Internal loops
    # ------------------------------------------------------------------ #

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._dispatch(msg.data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    logger.warning("Control channel error: %s", ws.exception())
                    break
                else:
                    logger.debug("Ignoring %s frame", msg.type)
        except (aiohttp.ClientError, OSError) as exc:
            logger.warning("Control channel read failed: %s", exc)
        finally:
            if self._ws is ws:
                self._ws = None
                if self._writer_task:
                    self._writer_task.cancel()
                    self._writer_task = None
                self._set_closed(was_open=True)

    async def _write_loop(
        self, ws: aiohttp.ClientWebSocketResponse, outbox: asyncio.Queue[str],
    ) -> None:
        while True:
            text = await outbox.get()
            try:
                await ws.send_str(text)
            except (aiohttp.ClientError, OSError) as exc:
                logger.warning("Dropping command, send failed: %s", exc)

    def _dispatch(self, text: str) -> None:
        envelope = parse_envelope(text)
        if envelope is None:
            return
        logger.debug("Channel event: %s", envelope.event)
        try:
            self._on_event(envelope)
        except Exception:  # noqa: BLE001
            logger.exception("Error handling channel event %s", envelope.event)

    def _set_closed(self, was_open: bool) -> None:
        if self._state is ChannelState.CLOSED:
            return
        self._state = ChannelState.CLOSED
        logger.info("Control channel closed")
        if self._on_closed is None:
            return
        try:
            self._on_closed(was_open)
        except Exception:  # noqa: BLE001
            logger.exception("Error in channel close callback")
