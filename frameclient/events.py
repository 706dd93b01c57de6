"""Notifications published by :class:`~frameclient.client.FrameClient`.

Callers subscribe with :meth:`EventEmitter.on`.  Callback signatures per
signal:

* ``connection_changed(connected: bool)``
* ``device_info_changed(info: dict)``
* ``api_version(version: str)``
* ``art_mode_changed(on: bool)``
* ``favorite_changed(content_id: str, on: bool)``
* ``content_list(items: list)``
* ``matte_list(mattes: list, matte_types: list)``
* ``filter_list(filters: list)``
* ``current_artwork(artwork: CurrentArtwork)``
* ``image_selected(selection: ImageSelected)``
* ``thumbnail_ready(content_id: str, path: Path)``
* ``upload_finished(content_id: str)``
* ``images_deleted(content_ids: list[str])``
* ``error(message: str)``
* ``transfer_failed(message: str)``
* ``raw_event(tag: str, data: Any)``
"""

from __future__ import annotations

import enum
import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)


class Signal(enum.Enum):
    CONNECTION_CHANGED = "connection_changed"
    DEVICE_INFO_CHANGED = "device_info_changed"
    API_VERSION = "api_version"
    ART_MODE_CHANGED = "art_mode_changed"
    FAVORITE_CHANGED = "favorite_changed"
    CONTENT_LIST = "content_list"
    MATTE_LIST = "matte_list"
    FILTER_LIST = "filter_list"
    CURRENT_ARTWORK = "current_artwork"
    IMAGE_SELECTED = "image_selected"
    THUMBNAIL_READY = "thumbnail_ready"
    UPLOAD_FINISHED = "upload_finished"
    IMAGES_DELETED = "images_deleted"
    ERROR = "error"
    TRANSFER_FAILED = "transfer_failed"
    RAW_EVENT = "raw_event"


class EventEmitter:
    """Minimal observer registry keyed by :class:`Signal`."""

    def __init__(self) -> None:
        self._callbacks: dict[Signal, list[Callable]] = defaultdict(list)

    def on(self, signal: Signal | str, callback: Callable) -> Callable:
        """Register *callback* for *signal* and return it."""
        self._callbacks[Signal(signal)].append(callback)
        return callback

    def off(self, signal: Signal | str, callback: Callable) -> None:
        """Remove a previously registered callback (no-op if absent)."""
        callbacks = self._callbacks.get(Signal(signal), [])
        if callback in callbacks:
            callbacks.remove(callback)

    def emit(self, signal: Signal, *args: Any) -> None:
        for cb in list(self._callbacks.get(signal, ())):
            try:
                cb(*args)
            except Exception:  # noqa: BLE001
                logger.exception("Error in %s callback", signal.value)
