#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import os
import socket
import sys
from typing import Any, Optional

from focus_shield.bridge import CHANNEL
from focus_shield.config import default_socket_path


def _sock_path() -> str:
    return os.environ.get("FOCUS_SHIELD_SOCKET", default_socket_path())


def call_channel(
    method: str,
    arguments: Optional[dict[str, Any]] = None,
    *,
    socket_path: Optional[str] = None,
    request_id: Any = None,
) -> dict[str, Any]:
    req = {"channel": CHANNEL, "method": method, "arguments": arguments, "request_id": request_id}
    data = (json.dumps(req, separators=(",", ":"), ensure_ascii=False) + "\n").encode("utf-8")
    with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as s:
        s.connect(socket_path or _sock_path())
        s.sendall(data)
        buf = b""
        while b"\n" not in buf:
            chunk = s.recv(65536)
            if not chunk:
                break
            buf += chunk
        line = buf.split(b"\n", 1)[0].decode("utf-8", errors="replace")
        return json.loads(line) if line else {"ok": False, "error": {"code": "NO_RESPONSE", "message": None, "details": None}}


def _parse_argument(item: str) -> tuple[str, Any]:
    key, sep, raw = item.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected key=value, got {item!r}")
    try:
        return key, json.loads(raw)
    except json.JSONDecodeError:
        return key, raw


def main(argv: Optional[list[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Send one command to the focus_shield channel")
    ap.add_argument("method", help="e.g. hasDNDPermission, enableDND, setDnd")
    ap.add_argument(
        "-a",
        "--arg",
        dest="args",
        action="append",
        type=_parse_argument,
        default=[],
        help="Command argument as key=value (value parsed as JSON when possible)",
    )
    ap.add_argument("--socket", default=None, help="Channel socket path")
    ns = ap.parse_args(argv)

    arguments = dict(ns.args) or None
    try:
        resp = call_channel(ns.method, arguments, socket_path=ns.socket)
    except OSError as e:
        sys.stderr.write(f"focus_shield channel unreachable: {e}\n")
        return 2

    sys.stdout.write(json.dumps(resp, ensure_ascii=False) + "\n")
    return 0 if resp.get("ok") else 1


if __name__ == "__main__":
    raise SystemExit(main())
