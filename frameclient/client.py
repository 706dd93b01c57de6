"""Frame TV art-mode client: session state machine.

States: DISCONNECTED → CONNECTING → AWAITING_CHANNEL → READY

  connect() wakes the TV (best effort) and runs REST discovery
  discovery success opens the control channel → AWAITING_CHANNEL
  ms.channel.ready → READY (caches are refreshed, connected is published)
  channel close or discovery failure → DISCONNECTED

Command methods are synchronous: they queue one frame on the control channel
and return.  Results arrive later as notifications, see
:mod:`frameclient.events`.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import random
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable

from frameclient.channel import ControlChannel
from frameclient.config import DEFAULT_CLIENT_NAME, FrameConfig
from frameclient.errors import DiscoveryError, TransferError
from frameclient.events import EventEmitter, Signal
from frameclient.protocol import (
    D2D_SERVICE_MESSAGE,
    MS_CHANNEL_CONNECT,
    MS_CHANNEL_READY,
    MS_CHANNEL_UNAUTHORIZED,
    MS_ERROR,
    ApiVersionReported,
    ArtEvent,
    ArtModeChanged,
    ArtModeStatus,
    ContentListReported,
    CurrentArtwork,
    DeviceInfoReported,
    Envelope,
    FavoriteChanged,
    FilterListReported,
    GoToStandby,
    ImageAdded,
    ImageSelected,
    ImagesDeleted,
    MatteListReported,
    RequestError,
    RotationImageChanged,
    ThumbnailReady,
    UnknownArtEvent,
    UploadReady,
    parse_art_event,
)
from frameclient.rest import DiscoveryClient
from frameclient.transfer import fetch_thumbnail, send_image
from frameclient.wol import send_magic_packet

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AWAITING_CHANNEL = "awaiting_channel"
    READY = "ready"


@dataclass
class Target:
    """The device to talk to, set by the caller."""

    host: str = ""
    mac_address: str = ""
    client_name: str = DEFAULT_CLIENT_NAME


@dataclass
class Session:
    """Engine-owned state for one client instance."""

    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    device_info: dict[str, Any] = field(default_factory=dict)
    art_mode: bool = True

    def reset(self) -> None:
        """Drop cached device state; the session id is kept."""
        self.device_info = {}
        self.art_mode = True


@dataclass
class PendingUpload:
    """Image bytes held until the TV announces its upload endpoint."""

    payload: bytes
    matte_id: str = "none"
    file_type: str = "jpg"


class FrameClient:
    """Art-mode client for a single Frame TV.

    Parameters
    ----------
    config:
        Target and timeouts. Defaults to :meth:`FrameConfig.from_env`.
    discovery:
        REST client; one is created from *config* when omitted.
    wake:
        Callable sending the wake-on-LAN packet for a MAC address.
    """

    def __init__(
        self,
        config: FrameConfig | None = None,
        *,
        discovery: DiscoveryClient | None = None,
        wake: Callable[..., bool] = send_magic_packet,
    ) -> None:
        self.config = config or FrameConfig.from_env()
        self.target = Target(
            host=self.config.host,
            mac_address=self.config.mac_address,
            client_name=self.config.client_name,
        )
        self.session = Session()
        self.events = EventEmitter()

        self._state = SessionState.DISCONNECTED
        self._connecting = False
        self._wants_connect = False
        self._pending_upload: PendingUpload | None = None
        self._connect_task: asyncio.Task | None = None
        self._transfers: set[asyncio.Task] = set()
        self._wake = wake
        self._discovery = discovery or DiscoveryClient(
            port=self.config.api_port, timeout=self.config.connect_timeout,
        )
        self._channel = ControlChannel(
            self.session.session_id,
            self._handle_envelope,
            self._on_channel_closed,
            connect_timeout=self.config.connect_timeout,
        )
        self._art_handlers: dict[type, Callable[[Any], None]] = {
            ArtModeStatus: self._on_art_mode,
            ArtModeChanged: self._on_art_mode,
            FavoriteChanged: self._on_favorite_changed,
            DeviceInfoReported: self._on_device_info,
            RotationImageChanged: self._on_rotation_image_changed,
            ApiVersionReported: self._on_api_version,
            CurrentArtwork: self._on_current_artwork,
            ContentListReported: self._on_content_list,
            MatteListReported: self._on_matte_list,
            FilterListReported: self._on_filter_list,
            ImageSelected: self._on_image_selected,
            ThumbnailReady: self._on_thumbnail_ready,
            UploadReady: self._on_upload_ready,
            ImageAdded: self._on_image_added,
            ImagesDeleted: self._on_images_deleted,
            RequestError: self._on_request_error,
            GoToStandby: self._on_go_to_standby,
            UnknownArtEvent: self._on_unknown_art_event,
        }

    async def __aenter__(self) -> "FrameClient":
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def connected(self) -> bool:
        """``True`` once the channel has reported ready."""
        return self._state is SessionState.READY

    @property
    def connecting(self) -> bool:
        return self._connecting

    @property
    def session_id(self) -> str:
        return self.session.session_id

    @property
    def device_info(self) -> dict[str, Any]:
        return dict(self.session.device_info)

    @property
    def art_mode_status(self) -> bool:
        return self.session.art_mode

    @property
    def frame_name(self) -> str:
        return str(self.session.device_info.get("name", ""))

    @property
    def has_frame_tv_support(self) -> bool:
        return str(self.session.device_info.get("FrameTVSupport", "")) == "true"

    @property
    def thumbnail_dir(self) -> Path:
        return self.config.thumbnail_path

    def on(self, signal: Signal | str, callback: Callable) -> Callable:
        """Subscribe to a notification, see :class:`~frameclient.events.Signal`."""
        return self.events.on(signal, callback)

    # ------------------------------------------------------------------ #
    # Connection lifecycle
    # ------------------------------------------------------------------ #

    def set_target(
        self,
        host: str,
        mac_address: str | None = None,
        client_name: str | None = None,
    ) -> None:
        """Point the client at *host*; runs a deferred connect if one is waiting."""
        self.target.host = host or ""
        if mac_address is not None:
            self.target.mac_address = mac_address
        if client_name is not None:
            self.target.client_name = client_name
        if self._wants_connect and self.target.host:
            self._wants_connect = False
            self.connect()

    def connect(self) -> asyncio.Task | None:
        """Start connecting; returns the connect task, or ``None`` if not started.

        Requires a running event loop.  Calls made while an attempt is in
        progress or a session is up are ignored; :meth:`disconnect` first to
        reconnect.  Without a host the request is remembered until
        :meth:`set_target` supplies one.
        """
        if self._connecting or self._state is not SessionState.DISCONNECTED:
            logger.debug("Connect ignored, session is %s", self._state.value)
            return None
        if not self.target.host:
            logger.debug("No host yet, deferring connect")
            self._wants_connect = True
            return None
        self._connecting = True
        self._set_state(SessionState.CONNECTING)
        self._connect_task = asyncio.get_running_loop().create_task(self._establish())
        return self._connect_task

    async def disconnect(self) -> None:
        """Abandon any connect attempt and close the control channel."""
        self._connecting = False
        self._wants_connect = False
        task, self._connect_task = self._connect_task, None
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self._channel.close()
        self._set_state(SessionState.DISCONNECTED)
        self.session.reset()

    def set_connected(self, connected: bool) -> asyncio.Task | None:
        """Connect or disconnect to match *connected*."""
        loop = asyncio.get_running_loop()
        if connected and self._state is SessionState.DISCONNECTED:
            return self.connect()
        if not connected and (self._connecting or self._state is not SessionState.DISCONNECTED):
            return loop.create_task(self.disconnect())
        return None

    async def aclose(self) -> None:
        """Disconnect, abandon transfers and release network resources."""
        await self.disconnect()
        transfers = list(self._transfers)
        for task in transfers:
            task.cancel()
        if transfers:
            await asyncio.gather(*transfers, return_exceptions=True)
        await self._channel.aclose()
        await self._discovery.aclose()

    def wake(self) -> bool:
        """Send the wake-on-LAN packet for the target's MAC address."""
        return self._wake(
            self.target.mac_address,
            broadcast=self.config.wake_broadcast,
            port=self.config.wake_port,
        )

    async def _establish(self) -> None:
        host = self.target.host
        try:
            await self._open_session(host)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Connect to %s failed", host)
            self._abort_connect(f"Connect to {host} failed: {exc}")

    def _abort_connect(self, message: str) -> None:
        self._connecting = False
        if self._state is not SessionState.DISCONNECTED:
            self._set_state(SessionState.DISCONNECTED)
        self.events.emit(Signal.ERROR, message)

    async def _open_session(self, host: str) -> None:
        self.wake()
        try:
            info = await self._discovery.discover(host)
        except DiscoveryError as exc:
            logger.warning("Discovery of %s failed: %s", host, exc)
            self._abort_connect(str(exc))
            return

        self.session.device_info.update(info)
        logger.info("Discovered %s (%s)", self.frame_name or host, host)
        self.events.emit(Signal.DEVICE_INFO_CHANGED, self.device_info)

        self._set_state(SessionState.AWAITING_CHANNEL)
        url = self._discovery.channel_url(host, self.target.client_name)
        if not await self._channel.open(url):
            self._abort_connect(f"Cannot open control channel to {host}")

    def _on_channel_closed(self, was_open: bool) -> None:
        was_ready = self._state is SessionState.READY
        self._connecting = False
        self._set_state(SessionState.DISCONNECTED)
        self.session.reset()
        if was_open or was_ready:
            self.events.emit(Signal.CONNECTION_CHANGED, False)

    def _set_state(self, state: SessionState) -> None:
        if state is not self._state:
            logger.debug("Session %s → %s", self._state.value, state.value)
            self._state = state

    # ------------------------------------------------------------------ #
    # Commands
    # ------------------------------------------------------------------ #

    def get_api_version(self) -> bool:
        return self._channel.send("get_api_version")

    def get_device_info(self) -> bool:
        return self._channel.send("get_device_info")

    def get_art_mode_status(self) -> bool:
        return self._channel.send("get_artmode_status")

    def set_art_mode_status(self, on: bool) -> bool:
        return self._channel.send("set_artmode_status", value="on" if on else "off")

    def get_content_list(self, category: str = "None") -> bool:
        """Request the stored artwork. The TV expects the string ``"None"`` for all."""
        return self._channel.send("get_content_list", category=category)

    def get_current_artwork(self) -> bool:
        return self._channel.send("get_current_artwork")

    def get_matte_list(self) -> bool:
        return self._channel.send("get_matte_list")

    def get_photo_filter_list(self) -> bool:
        return self._channel.send("get_photo_filter_list")

    def select_image(self, content_id: str, category_id: str = "", show: bool = True) -> bool:
        return self._channel.send(
            "select_image", category_id=category_id, content_id=content_id, show=show,
        )

    def change_matte(self, content_id: str, matte_id: str) -> bool:
        return self._channel.send("change_matte", content_id=content_id, matte_id=matte_id)

    def delete_image(self, content_id: str) -> bool:
        return self.delete_images([content_id])

    def delete_images(self, content_ids: Iterable[str]) -> bool:
        return self._channel.send(
            "delete_image_list",
            content_id_list=[{"content_id": cid} for cid in content_ids],
        )

    def get_thumbnail(self, content_id: str) -> bool:
        """Ask the TV to serve a thumbnail; it arrives as ``thumbnail_ready``."""
        return self._channel.send(
            "get_thumbnail", content_id=content_id, conn_info=self._conn_info(),
        )

    def upload_image(
        self,
        source: str | Path | bytes,
        matte: str = "none",
        file_type: str = "jpg",
    ) -> bool:
        """Start an upload of *source* (a file path or raw bytes).

        The bytes are held until the TV answers with ``ready_to_use``.  A
        second call before then replaces the held image.
        """
        if isinstance(source, (bytes, bytearray)):
            payload = bytes(source)
        else:
            try:
                payload = Path(source).read_bytes()
            except OSError as exc:
                logger.warning("Cannot read image %s: %s", source, exc)
                return False

        if self._pending_upload is not None:
            logger.warning("Replacing pending upload of %d bytes", len(self._pending_upload.payload))
        self._pending_upload = PendingUpload(payload=payload, matte_id=matte, file_type=file_type)
        return self._channel.send(
            "send_image",
            file_type=file_type,
            conn_info=self._conn_info(),
            image_date=datetime.now().strftime("%Y:%m:%d %H:%M:%S"),
            matte_id=matte,
            file_size=len(payload),
        )

    def _conn_info(self) -> dict[str, Any]:
        return {
            "d2d_mode": "socket",
            "connection_id": random.randrange(2**32),
            "id": self.session.session_id,
        }

    # ------------------------------------------------------------------ #
    # Event dispatch
    # ------------------------------------------------------------------ #

    def _handle_envelope(self, envelope: Envelope) -> None:
        """Route one control-channel message."""
        event = envelope.event
        if event == MS_CHANNEL_CONNECT:
            logger.debug("Channel connect acknowledged")
        elif event == MS_CHANNEL_READY:
            logger.info("Art channel ready")
            self._set_state(SessionState.READY)
            self.get_api_version()
            self.get_device_info()
            self.get_art_mode_status()
            self._connecting = False
            self.events.emit(Signal.CONNECTION_CHANGED, True)
        elif event == D2D_SERVICE_MESSAGE:
            art_event = parse_art_event(envelope.data)
            if art_event is not None:
                self._handle_art_event(art_event)
        elif event in (MS_ERROR, MS_CHANNEL_UNAUTHORIZED):
            logger.warning("Channel error %s: %s", event, envelope.data)
            self.events.emit(Signal.ERROR, f"{event}: {envelope.data}")
        else:
            logger.debug("Unhandled channel event %s", event)
            self.events.emit(Signal.RAW_EVENT, event, envelope.data)

    def _handle_art_event(self, art_event: ArtEvent) -> None:
        handler = self._art_handlers.get(type(art_event))
        if handler is None:
            logger.debug("No handler for %r", art_event)
            return
        handler(art_event)

    def _on_art_mode(self, event: ArtModeStatus | ArtModeChanged) -> None:
        logger.debug("Art mode: %s", "on" if event.on else "off")
        self.session.art_mode = event.on
        self.events.emit(Signal.ART_MODE_CHANGED, event.on)

    def _on_favorite_changed(self, event: FavoriteChanged) -> None:
        logger.debug("Favorite %s → %s", event.content_id, event.on)
        self.events.emit(Signal.FAVORITE_CHANGED, event.content_id, event.on)

    def _on_device_info(self, event: DeviceInfoReported) -> None:
        self.session.device_info.update(event.info)
        self.events.emit(Signal.DEVICE_INFO_CHANGED, self.device_info)

    def _on_rotation_image_changed(self, event: RotationImageChanged) -> None:
        logger.debug("Auto rotation (%s) now shows %s", event.kind, event.content_id)

    def _on_api_version(self, event: ApiVersionReported) -> None:
        logger.debug("Art API version %s", event.version)
        self.events.emit(Signal.API_VERSION, event.version)

    def _on_current_artwork(self, event: CurrentArtwork) -> None:
        self.events.emit(Signal.CURRENT_ARTWORK, event)

    def _on_content_list(self, event: ContentListReported) -> None:
        self.events.emit(Signal.CONTENT_LIST, event.items)

    def _on_matte_list(self, event: MatteListReported) -> None:
        self.events.emit(Signal.MATTE_LIST, event.mattes, event.matte_types)

    def _on_filter_list(self, event: FilterListReported) -> None:
        self.events.emit(Signal.FILTER_LIST, event.filters)

    def _on_image_selected(self, event: ImageSelected) -> None:
        self.events.emit(Signal.IMAGE_SELECTED, event)

    def _on_thumbnail_ready(self, event: ThumbnailReady) -> None:
        self._start_transfer(self._download_thumbnail(event.ip, event.port))

    def _on_upload_ready(self, event: UploadReady) -> None:
        pending, self._pending_upload = self._pending_upload, None
        if pending is None:
            logger.warning("TV is ready for an upload but none is pending")
            return
        self._start_transfer(self._upload(event, pending))

    def _on_image_added(self, event: ImageAdded) -> None:
        logger.info("Image added: %s (category %r)", event.content_id, event.category_id)
        if not event.category_id:
            self.select_image(event.content_id, event.category_id)
            self.events.emit(Signal.UPLOAD_FINISHED, event.content_id)

    def _on_images_deleted(self, event: ImagesDeleted) -> None:
        self.events.emit(Signal.IMAGES_DELETED, list(event.content_ids))

    def _on_request_error(self, event: RequestError) -> None:
        logger.warning("TV rejected request (error %s): %s", event.error_code, event.request_data)
        self.events.emit(Signal.ERROR, f"error {event.error_code}")

    def _on_go_to_standby(self, event: GoToStandby) -> None:
        logger.info("TV going to standby, sending wake-on-LAN")
        self.wake()

    def _on_unknown_art_event(self, event: UnknownArtEvent) -> None:
        logger.debug("Unhandled art event %s: %s", event.tag, event.data)
        self.events.emit(Signal.RAW_EVENT, event.tag, event.data)

    # ------------------------------------------------------------------ #
    # Transfers
    # ------------------------------------------------------------------ #

    def _start_transfer(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._transfers.add(task)
        task.add_done_callback(self._transfers.discard)
        return task

    async def _download_thumbnail(self, ip: str, port: int) -> None:
        try:
            content_id, path = await fetch_thumbnail(
                ip,
                port,
                self.thumbnail_dir,
                timeout=self.config.connect_timeout,
                read_timeout=self.config.read_timeout,
                chunk_size=self.config.read_chunk_size,
            )
        except TransferError as exc:
            logger.warning("Thumbnail download failed: %s", exc)
            self.events.emit(Signal.TRANSFER_FAILED, str(exc))
            return
        self.events.emit(Signal.THUMBNAIL_READY, content_id, path)

    async def _upload(self, endpoint: UploadReady, pending: PendingUpload) -> None:
        try:
            await send_image(
                endpoint.ip,
                endpoint.port,
                endpoint.key,
                pending.payload,
                file_type=pending.file_type,
                timeout=self.config.connect_timeout,
            )
        except TransferError as exc:
            logger.warning("Image upload failed: %s", exc)
            self.events.emit(Signal.TRANSFER_FAILED, str(exc))
