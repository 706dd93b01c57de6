"""Art-app control channel message codec.

Outbound commands are wrapped twice: the request mapping is JSON-encoded and
carried as the ``data`` string of an ``ms.channel.emit`` envelope.  Inbound
``d2d_service_message`` envelopes mirror this, so every device event needs two
parse passes (and some fields, such as ``conn_info``, a third).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)

ART_APP_CHANNEL = "com.samsung.art-app"
ART_APP_REQUEST = "art_app_request"

# Top-level channel events
MS_CHANNEL_CONNECT = "ms.channel.connect"
MS_CHANNEL_READY = "ms.channel.ready"
MS_CHANNEL_UNAUTHORIZED = "ms.channel.unauthorized"
MS_ERROR = "ms.error"
D2D_SERVICE_MESSAGE = "d2d_service_message"

# Keys the device echoes back that are not part of the device info
_DEVICE_INFO_NOISE = ("event", "id", "target_client_id")


def _compact(obj: Any) -> str:
    return json.dumps(obj, separators=(",", ":"))


def build_request(request: str, session_id: str, **params: Any) -> str:
    """Return the text frame for one art-app command."""
    data = {"request": request, **params, "id": session_id}
    return _compact({
        "method": "ms.channel.emit",
        "params": {
            "event": ART_APP_REQUEST,
            "to": "host",
            "data": _compact(data),
        },
    })


@dataclass(frozen=True)
class Envelope:
    """One inbound control-channel message."""

    event: str
    data: Any = None
    raw: dict = field(default_factory=dict, compare=False, repr=False)


def parse_envelope(text: str | bytes) -> Envelope | None:
    """Parse a text frame; returns ``None`` (and logs) if it is not a JSON object."""
    try:
        message = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.warning("Dropping malformed channel message: %s", exc)
        return None
    if not isinstance(message, dict):
        logger.warning("Dropping non-object channel message: %r", message)
        return None
    return Envelope(event=str(message.get("event", "")), data=message.get("data"), raw=message)


def _decode(value: Any, default: Any) -> Any:
    """Decode a nested JSON string; pass through already-decoded values."""
    if isinstance(value, (str, bytes)):
        if not value:
            return default
        try:
            value = json.loads(value)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Malformed nested JSON: %.80r", value)
            return default
    if value is None or not isinstance(value, type(default)):
        return default
    return value


# ------------------------------------------------------------------ #
# Art events (second-level tags of d2d_service_message)
# ------------------------------------------------------------------ #

@dataclass(frozen=True)
class ArtEvent:
    """Base class for parsed art-app events."""


@dataclass(frozen=True)
class ArtModeStatus(ArtEvent):
    on: bool


@dataclass(frozen=True)
class ArtModeChanged(ArtEvent):
    on: bool


@dataclass(frozen=True)
class FavoriteChanged(ArtEvent):
    content_id: str
    on: bool


@dataclass(frozen=True)
class DeviceInfoReported(ArtEvent):
    info: dict


@dataclass(frozen=True)
class RotationImageChanged(ArtEvent):
    content_id: str
    kind: str = ""


@dataclass(frozen=True)
class ApiVersionReported(ArtEvent):
    version: str


@dataclass(frozen=True)
class CurrentArtwork(ArtEvent):
    content_id: str
    matte_id: str = ""
    portrait_matte_id: str = ""


@dataclass(frozen=True)
class ContentListReported(ArtEvent):
    items: list


@dataclass(frozen=True)
class MatteListReported(ArtEvent):
    mattes: list
    matte_types: list = field(default_factory=list)


@dataclass(frozen=True)
class FilterListReported(ArtEvent):
    filters: list


@dataclass(frozen=True)
class ImageSelected(ArtEvent):
    content_id: str
    matte_id: str = ""
    portrait_matte_id: str = ""
    is_shown: str = ""


@dataclass(frozen=True)
class ThumbnailReady(ArtEvent):
    ip: str
    port: int


@dataclass(frozen=True)
class UploadReady(ArtEvent):
    ip: str
    port: int
    key: str


@dataclass(frozen=True)
class ImageAdded(ArtEvent):
    content_id: str
    category_id: str = ""


@dataclass(frozen=True)
class ImagesDeleted(ArtEvent):
    content_ids: list


@dataclass(frozen=True)
class RequestError(ArtEvent):
    error_code: str
    request_data: dict = field(default_factory=dict)


@dataclass(frozen=True)
class GoToStandby(ArtEvent):
    pass


@dataclass(frozen=True)
class UnknownArtEvent(ArtEvent):
    tag: str
    data: dict = field(default_factory=dict)


def _str(data: dict, key: str) -> str:
    value = data.get(key)
    return "" if value is None else str(value)


def _endpoint(data: dict) -> tuple[str, int, str]:
    """Return ``(ip, port, key)`` from the nested ``conn_info`` JSON."""
    conn_info = _decode(data.get("conn_info"), {})
    try:
        port = int(conn_info.get("port", 0))
    except (TypeError, ValueError):
        port = 0
    return _str(conn_info, "ip"), port, _str(conn_info, "key")


def _deleted_ids(data: dict) -> list:
    ids = []
    for item in _decode(data.get("content_id_list"), []):
        if isinstance(item, dict):
            ids.append(_str(item, "content_id"))
        else:
            ids.append(str(item))
    return ids


_PARSERS: dict[str, Callable[[dict], ArtEvent]] = {
    "artmode_status": lambda d: ArtModeStatus(on=_str(d, "value") == "on"),
    "art_mode_changed": lambda d: ArtModeChanged(on=_str(d, "status") == "on"),
    "favorite_changed": lambda d: FavoriteChanged(
        content_id=_str(d, "content_id"), on=_str(d, "status") == "on",
    ),
    "get_device_info": lambda d: DeviceInfoReported(
        info={k: v for k, v in d.items() if k not in _DEVICE_INFO_NOISE},
    ),
    "auto_rotation_image_changed": lambda d: RotationImageChanged(
        content_id=_str(d, "current_content_id"), kind=_str(d, "type"),
    ),
    "api_version": lambda d: ApiVersionReported(version=_str(d, "version")),
    "current_artwork": lambda d: CurrentArtwork(
        content_id=_str(d, "content_id"),
        matte_id=_str(d, "matte_id"),
        portrait_matte_id=_str(d, "portrait_matte_id"),
    ),
    "content_list": lambda d: ContentListReported(items=_decode(d.get("content_list"), [])),
    "matte_list": lambda d: MatteListReported(
        mattes=_decode(d.get("matte_color_list"), []),
        matte_types=_decode(d.get("matte_type_list"), []),
    ),
    "get_photo_filter_list": lambda d: FilterListReported(filters=_decode(d.get("filter_list"), [])),
    "image_selected": lambda d: ImageSelected(
        content_id=_str(d, "content_id"),
        matte_id=_str(d, "matte_id"),
        portrait_matte_id=_str(d, "portrait_matte_id"),
        is_shown=_str(d, "is_shown"),
    ),
    "thumbnail": lambda d: ThumbnailReady(*_endpoint(d)[:2]),
    "ready_to_use": lambda d: UploadReady(*_endpoint(d)),
    "image_added": lambda d: ImageAdded(
        content_id=_str(d, "content_id"), category_id=_str(d, "category_id"),
    ),
    "image_list_deleted": lambda d: ImagesDeleted(content_ids=_deleted_ids(d)),
    "error": lambda d: RequestError(
        error_code=_str(d, "error_code"), request_data=_decode(d.get("request_data"), {}),
    ),
    "go_to_standby": lambda d: GoToStandby(),
}


def parse_art_event(data: Any) -> ArtEvent | None:
    """Parse the ``data`` of a ``d2d_service_message`` into a typed event.

    Returns ``None`` if *data* is not a JSON object.  Unrecognised tags
    produce :class:`UnknownArtEvent`.
    """
    payload = data
    if isinstance(data, (str, bytes)):
        try:
            payload = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.warning("Dropping malformed service message: %s", exc)
            return None
    if not isinstance(payload, dict):
        logger.warning("Dropping non-object service message: %.80r", data)
        return None

    tag = _str(payload, "event")
    parser = _PARSERS.get(tag)
    if parser is None:
        return UnknownArtEvent(tag=tag, data=payload)
    return parser(payload)
