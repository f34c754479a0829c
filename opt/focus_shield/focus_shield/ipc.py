from __future__ import annotations

import asyncio
import json
import logging
import os
import socket
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

MAX_REQUEST_BYTES = 64 * 1024


@dataclass(frozen=True)
class Identity:
    """Peer credentials of a channel client, when the platform exposes them."""

    uid: Optional[int] = None
    gid: Optional[int] = None
    pid: Optional[int] = None


RequestHandler = Callable[[dict[str, Any], Identity], Awaitable[dict[str, Any]]]


@dataclass(frozen=True)
class IPCConfig:
    socket_path: str
    max_request_bytes: int = MAX_REQUEST_BYTES


class BadRequest(Exception):
    pass


def error_payload(code: str, message: Optional[str] = None) -> dict[str, Any]:
    return {"ok": False, "error": {"code": code, "message": message, "details": None}}


def encode_line(obj: dict[str, Any]) -> bytes:
    return (json.dumps(obj, separators=(",", ":"), ensure_ascii=False) + "\n").encode("utf-8")


def decode_request(line: bytes) -> dict[str, Any]:
    try:
        req = json.loads(line.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise BadRequest(f"invalid_json: {e}") from e
    if not isinstance(req, dict):
        raise BadRequest("invalid_request: expected object")
    return req


def peer_identity(sock: Optional[socket.socket]) -> Identity:
    if sock is None or not hasattr(socket, "SO_PEERCRED"):
        return Identity()
    # struct ucred on Linux: pid, uid, gid as native ints
    try:
        creds = sock.getsockopt(socket.SOL_SOCKET, socket.SO_PEERCRED, 12)
    except OSError:
        return Identity()
    pid, uid, gid = (int.from_bytes(creds[i : i + 4], "little", signed=True) for i in (0, 4, 8))
    return Identity(uid=uid, gid=gid, pid=pid)


class IPCServer:
    """
    The focus_shield command channel.

    One newline-terminated JSON request per connection, answered with one
    JSON line, then the connection is closed.
    """

    def __init__(self, cfg: IPCConfig, handler: RequestHandler) -> None:
        self._cfg = cfg
        self._handler = handler
        self._server: Optional[asyncio.AbstractServer] = None

    @property
    def socket_path(self) -> str:
        return self._cfg.socket_path

    async def start(self) -> None:
        Path(self.socket_path).parent.mkdir(parents=True, exist_ok=True)
        self._remove_socket()
        self._server = await asyncio.start_unix_server(
            self._on_client, path=self.socket_path, limit=self._cfg.max_request_bytes
        )
        logger.info("channel listening on %s", self.socket_path)

    async def stop(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
        self._remove_socket()

    def _remove_socket(self) -> None:
        try:
            os.unlink(self.socket_path)
        except FileNotFoundError:
            pass

    async def _read_request(self, reader: asyncio.StreamReader) -> Optional[dict[str, Any]]:
        try:
            line = await reader.readline()
        except (ValueError, asyncio.LimitOverrunError) as e:
            raise BadRequest("request_too_large") from e
        if not line:
            return None
        return decode_request(line)

    async def _on_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        ident = peer_identity(writer.get_extra_info("socket"))
        try:
            try:
                req = await self._read_request(reader)
            except BadRequest as e:
                logger.warning("rejected request from pid=%s: %s", ident.pid, e)
                resp: Optional[dict[str, Any]] = error_payload("BAD_REQUEST", str(e))
            else:
                resp = None if req is None else await self._handler(req, ident)
            if resp is not None:
                writer.write(encode_line(resp))
                await writer.drain()
        finally:
            try:
                writer.close()
                await writer.wait_closed()
            except (ConnectionError, OSError):
                pass
