"""Binary image transfer over plain TCP.

Both directions use the same framing::

    [4-byte big-endian header length][header JSON][payload bytes]

Uploads write one frame and close; no acknowledgment is read back.  Thumbnail
downloads accumulate reads until one complete frame has arrived.  The TV
announces the endpoint for each transfer over the control channel.
"""

from __future__ import annotations

import asyncio
import json
import logging
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from frameclient.errors import TransferError

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 10.0
_PREFIX = struct.Struct(">I")

UPLOAD_FILE_NAME = "aleprint"
UPLOAD_VERSION = "0.0.1"


@dataclass
class TransferHeader:
    """Header of an outbound (upload) frame."""

    file_length: int
    sec_key: str = ""
    file_type: str = "jpg"
    file_name: str = UPLOAD_FILE_NAME
    num: int = 0
    total: int = 1
    version: str = UPLOAD_VERSION

    @classmethod
    def for_upload(cls, file_length: int, key: str, file_type: str = "jpg") -> TransferHeader:
        return cls(file_length=file_length, sec_key=key, file_type=file_type)

    def to_dict(self) -> dict[str, Any]:
        return {
            "num": self.num,
            "total": self.total,
            "fileLength": self.file_length,
            "fileName": self.file_name,
            "fileType": self.file_type,
            "secKey": self.sec_key,
            "version": self.version,
        }


def encode_frame(header: Mapping[str, Any], payload: bytes) -> bytes:
    """Frame *payload* behind a length-prefixed JSON *header*."""
    header_bytes = json.dumps(dict(header), separators=(",", ":")).encode("utf-8")
    return _PREFIX.pack(len(header_bytes)) + header_bytes + bytes(payload)


@dataclass(frozen=True)
class DecodedFrame:
    """A complete inbound frame."""

    header: dict
    payload: bytes

    @property
    def file_id(self) -> str:
        return str(self.header.get("fileID", ""))

    @property
    def file_name(self) -> str:
        return str(self.header.get("fileName", ""))

    @property
    def file_type(self) -> str:
        file_type = str(self.header.get("fileType", ""))
        return "jpg" if file_type == "jpeg" else file_type


class FrameAssembler:
    """Accumulates reads from one socket until a whole frame is buffered.

    One assembler per connection; it yields at most one frame.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()
        self._header: dict | None = None
        self._header_end = 0
        self.done = False

    def __len__(self) -> int:
        return len(self._buffer)

    def feed(self, chunk: bytes) -> DecodedFrame | None:
        """Append *chunk*; return the frame once it is complete, else ``None``."""
        if self.done:
            return None
        self._buffer.extend(chunk)

        if self._header is None:
            if len(self._buffer) < _PREFIX.size:
                return None
            (header_len,) = _PREFIX.unpack_from(self._buffer)
            header_end = _PREFIX.size + header_len
            if len(self._buffer) < header_end:
                return None
            try:
                header = json.loads(bytes(self._buffer[_PREFIX.size:header_end]))
            except (json.JSONDecodeError, UnicodeDecodeError) as exc:
                raise TransferError(f"Malformed transfer header: {exc}") from exc
            if not isinstance(header, dict):
                raise TransferError(f"Transfer header is not an object: {header!r}")
            self._header = header
            self._header_end = header_end

        try:
            file_length = int(self._header.get("fileLength", 0))
        except (TypeError, ValueError) as exc:
            raise TransferError(f"Invalid fileLength in header: {self._header!r}") from exc
        complete = self._header_end + file_length
        if len(self._buffer) < complete:
            return None

        self.done = True
        payload = bytes(self._buffer[self._header_end:complete])
        return DecodedFrame(header=self._header, payload=payload)


def _path_component(value: str) -> str:
    return Path(value.replace("\\", "/")).name


def _thumbnail_name(frame: DecodedFrame) -> str:
    """``<fileID>.<fileType>`` reduced to a bare file name."""
    file_id = _path_component(frame.file_id)
    if file_id in ("", ".", ".."):
        raise TransferError(f"Refusing thumbnail with file id {frame.file_id!r}")
    file_type = _path_component(frame.file_type)
    if file_type in ("", ".", ".."):
        return file_id
    return f"{file_id}.{file_type}"


async def _connect(
    ip: str, port: int, timeout: float,
) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    try:
        return await asyncio.wait_for(asyncio.open_connection(ip, port), timeout=timeout)
    except (OSError, asyncio.TimeoutError) as exc:
        raise TransferError(f"Cannot connect to {ip}:{port}: {exc}") from exc


async def _close(writer: asyncio.StreamWriter) -> None:
    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        pass


async def send_image(
    ip: str,
    port: int,
    key: str,
    payload: bytes,
    *,
    file_type: str = "jpg",
    timeout: float = _DEFAULT_TIMEOUT,
) -> None:
    """Push *payload* to the upload endpoint announced by the TV."""
    _, writer = await _connect(ip, port, timeout)
    header = TransferHeader.for_upload(len(payload), key, file_type)
    try:
        writer.write(encode_frame(header.to_dict(), payload))
        await asyncio.wait_for(writer.drain(), timeout=timeout)
    except (OSError, asyncio.TimeoutError) as exc:
        raise TransferError(f"Upload to {ip}:{port} failed: {exc}") from exc
    finally:
        await _close(writer)
    logger.info("Uploaded %d bytes to %s:%d", len(payload), ip, port)


async def fetch_thumbnail(
    ip: str,
    port: int,
    dest_dir: str | Path,
    *,
    timeout: float = _DEFAULT_TIMEOUT,
    read_timeout: float = 30.0,
    chunk_size: int = 65536,
) -> tuple[str, Path]:
    """Download one thumbnail frame and save it as ``<fileID>.<fileType>``.

    Returns ``(content_id, path)``.
    """
    reader, writer = await _connect(ip, port, timeout)
    assembler = FrameAssembler()
    try:
        frame = None
        while frame is None:
            try:
                chunk = await asyncio.wait_for(reader.read(chunk_size), timeout=read_timeout)
            except (OSError, asyncio.TimeoutError) as exc:
                raise TransferError(f"Thumbnail read from {ip}:{port} failed: {exc}") from exc
            if not chunk:
                raise TransferError(
                    f"Connection to {ip}:{port} closed after {len(assembler)} bytes"
                )
            frame = assembler.feed(chunk)
    finally:
        await _close(writer)

    dest = Path(dest_dir)
    path = dest / _thumbnail_name(frame)
    try:
        dest.mkdir(parents=True, exist_ok=True)
        path.write_bytes(frame.payload)
    except OSError as exc:
        raise TransferError(f"Cannot write thumbnail {path}: {exc}") from exc
    logger.debug("Saved thumbnail %s (%d bytes)", path, len(frame.payload))
    return frame.file_id, path
