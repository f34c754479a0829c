from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
from dataclasses import replace
from pathlib import Path
from typing import Any, Optional

from focus_shield.bridge import CHANNEL, DndBridge
from focus_shield.config import EngineConfig, load_config
from focus_shield.ipc import IPCConfig, IPCServer, Identity, error_payload
from focus_shield.policy import NotificationPolicy, create_policy

logger = logging.getLogger(__name__)


def resolve_root() -> Path:
    return Path(os.environ.get("FOCUS_SHIELD_ROOT", "/opt/focus_shield")).resolve()


class Engine:
    def __init__(self, cfg: EngineConfig, policy: Optional[NotificationPolicy] = None) -> None:
        self.cfg = cfg
        if policy is None:
            policy = create_policy(cfg.backend, granted=cfg.granted, settings=cfg.settings)
        self.policy = policy
        self.bridge = DndBridge(policy)
        self.ipc = IPCServer(IPCConfig(socket_path=cfg.socket_path), self._handle_ipc_request)
        self._shutdown = asyncio.Event()

    async def start(self) -> None:
        await self.ipc.start()
        logger.info("engine started (pid=%s, backend=%s)", os.getpid(), self.cfg.backend)

    async def stop(self) -> None:
        await self.ipc.stop()
        logger.info("engine stopped")

    def request_shutdown(self, reason: Optional[dict[str, Any]] = None) -> None:
        logger.info("shutdown requested: %s", reason or {})
        self._shutdown.set()

    async def run_forever(self, *, run_for: Optional[float] = None) -> None:
        if run_for is None:
            await self._shutdown.wait()
            return
        try:
            await asyncio.wait_for(self._shutdown.wait(), timeout=run_for)
        except asyncio.TimeoutError:
            self.request_shutdown(reason={"run_for_timeout": run_for})

    async def _handle_ipc_request(self, req: dict[str, Any], ident: Identity) -> dict[str, Any]:
        request_id = req.get("request_id")
        channel = req.get("channel")
        method = req.get("method")
        arguments = req.get("arguments")

        if channel is not None and channel != CHANNEL:
            resp = error_payload("UNKNOWN_CHANNEL", f"unknown channel: {channel}")
        elif not isinstance(method, str) or not method:
            resp = error_payload("BAD_REQUEST", "missing_method")
        elif arguments is not None and not isinstance(arguments, dict):
            resp = error_payload("BAD_REQUEST", "invalid_arguments: expected object")
        else:
            logger.debug("request %s from uid=%s pid=%s", method, ident.uid, ident.pid)
            try:
                resp = self.bridge.handle(method, arguments).to_payload()
            except Exception as e:  # noqa: BLE001
                logger.exception("command %s failed", method)
                resp = error_payload("ERROR", str(e))

        resp["request_id"] = request_id
        return resp


def main(argv: Optional[list[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="focus_shield Do Not Disturb bridge")
    ap.add_argument("--check", action="store_true", help="Load config, probe the backend, then exit")
    ap.add_argument(
        "--run-for",
        type=float,
        default=None,
        help="Development/testing only: run engine loop for N seconds then exit",
    )
    ap.add_argument("--backend", choices=["gnome", "memory"], default=None, help="Override policy backend")
    args = ap.parse_args(argv)

    root = resolve_root()
    cfg = load_config(root)
    if args.backend:
        cfg = replace(cfg, backend=args.backend)

    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.check:
        policy = create_policy(cfg.backend, granted=cfg.granted, settings=cfg.settings)
        logger.info(
            "backend=%s socket=%s permission_granted=%s",
            cfg.backend,
            cfg.socket_path,
            policy.is_permission_granted(),
        )
        return 0

    async def _run() -> None:
        eng = Engine(cfg)

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, eng.request_shutdown, {"signal": sig.name})
            except NotImplementedError:
                pass

        await eng.start()
        try:
            await eng.run_forever(run_for=args.run_for)
        finally:
            await eng.stop()

    asyncio.run(_run())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
