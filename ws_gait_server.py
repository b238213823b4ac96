"""
GaitIQ WebSocket Server

Runs the gait pipeline for phones streaming their accelerometer. It:
1. Accepts motion events from each connected client
2. Runs them through that client's own GaitSession
   (filter -> step detection -> intervals -> cadence/symmetry)
3. Sends step events and metric updates back over the same socket

Protocol (JSON frames):
    client -> server
        {"type": "motion", "x": .., "y": .., "z": .., "t": ms?}
        {"type": "motion_batch", "samples": [{...}, ...]}
        {"type": "sensor_error", "error": "..."}
        {"type": "cmd", "action": "start" | "stop" | "reset" | "status" | "stats"}
    server -> client
        status, ack, step_event, gait_update, session_summary, error

Usage:
    python ws_gait_server.py
"""

import asyncio
import json
import platform
import time
from typing import Any, Awaitable, Callable, Dict, Optional

import structlog
import websockets

from gait import GaitConfig, GaitSession, MotionEventSource
from gait.config import HOST, LOG_LEVEL, PORT
from gait.logging_setup import configure_logging

logger = structlog.get_logger(__name__)

STATUS_INTERVAL_S = 0.5


# =============================================================================
# Helpers
# =============================================================================

def json_safe(x):
    if x is None:
        return None
    if isinstance(x, (str, int, float, bool)):
        return x
    if isinstance(x, (list, tuple)):
        return [json_safe(v) for v in x]
    if isinstance(x, dict):
        return {str(k): json_safe(v) for k, v in x.items()}
    return str(x)


def is_command_message(msg: dict) -> bool:
    return msg.get("type") in ("cmd", "command")


def server_info() -> Dict[str, Any]:
    return {
        "host": platform.node(),
        "platform": platform.platform(),
        "python": platform.python_version(),
    }


# =============================================================================
# Per-client session
# =============================================================================

class ClientSession:
    """
    One connected phone: its motion source, its GaitSession and an outbox.

    Pipeline callbacks are synchronous, so they only queue messages; the
    connection handler flushes the outbox after every inbound frame.
    """

    def __init__(
        self,
        send: Callable[[str], Awaitable[Any]],
        config: Optional[GaitConfig] = None,
        clock: Optional[Callable[[], float]] = None
    ):
        self.send = send
        self.config = config or GaitConfig.from_env()
        kwargs = {} if clock is None else {"clock": clock}
        self.source = MotionEventSource(sample_rate=self.config.sample_rate, **kwargs)
        self.session = GaitSession(
            self.source,
            self.config,
            on_metrics_updated=self._on_metrics,
            on_step_detected=self._on_step,
            **kwargs,
        )
        self.outbox: asyncio.Queue = asyncio.Queue()
        self._last_status = 0.0

    def emit(self, msg: dict):
        self.outbox.put_nowait(msg)

    async def flush(self):
        while not self.outbox.empty():
            msg = self.outbox.get_nowait()
            await self.send(json.dumps(json_safe(msg)))

    def _on_metrics(self, payload: dict):
        self.emit({"type": "gait_update", **payload, "steps": self.session.step_count})

    def _on_step(self, event: dict):
        self.emit({"type": "step_event", **event})

    def status_message(self) -> dict:
        return {
            "type": "status",
            **self.session.status(),
            "session_id": self.session.session_id,
            "dropped_samples": self.session.dropped_samples,
            "thresholds": self.config.as_dict(),
        }

    def _maybe_status(self):
        now = time.monotonic()
        if self.session.is_running and now - self._last_status >= STATUS_INTERVAL_S:
            self._last_status = now
            self.emit(self.status_message())

    async def handle_message(self, msg: dict):
        msg_type = msg.get("type")

        if msg_type == "motion":
            self.source.dispatch(msg)
            self._maybe_status()
        elif msg_type == "motion_batch":
            samples = msg.get("samples")
            for sample in samples if isinstance(samples, list) else []:
                if isinstance(sample, dict):
                    self.source.dispatch(sample)
            self._maybe_status()
        elif msg_type == "sensor_error":
            self.source.fail(str(msg.get("error") or "client sensor fault"))
            self.emit({"type": "error", "where": "sensor", "error": self.session.error})
        elif is_command_message(msg):
            await self.handle_command(msg.get("action"))

    async def handle_command(self, action: Optional[str]):
        session = self.session

        if action == "start":
            if session.is_running:
                self.emit({
                    "type": "ack", "action": "start", "ok": True,
                    "note": "already_active",
                    "session_id": session.session_id,
                })
                return
            if not session.is_available:
                await session.request_access()
            session.start()
            if session.is_running:
                self.emit({
                    "type": "ack", "action": "start", "ok": True,
                    "session_id": session.session_id,
                })
            else:
                self.emit({
                    "type": "ack", "action": "start", "ok": False,
                    "error": session.error,
                })

        elif action == "stop":
            if session.is_running:
                session.stop()
                self.emit({
                    "type": "ack", "action": "stop", "ok": True,
                    "session_id": session.session_id,
                    "steps": session.step_count,
                })
                self.emit({
                    "type": "session_summary",
                    **session.stats(),
                    "step_intervals": list(session.step_intervals),
                })
            else:
                self.emit({
                    "type": "ack", "action": "stop", "ok": True,
                    "note": "already_inactive",
                    "steps": session.step_count,
                })

        elif action == "reset":
            session.reset()
            self.emit({"type": "ack", "action": "reset", "ok": True})

        elif action == "status":
            self.emit(self.status_message())

        elif action == "stats":
            self.emit({"type": "stats", **session.stats()})

        else:
            self.emit({"type": "ack", "action": action, "ok": False, "error": "unknown_action"})

    def close(self):
        self.session.stop()
        self.source.remove_listeners()


# =============================================================================
# Client Handler
# =============================================================================

async def handle_client(ws):
    client = ClientSession(ws.send)
    logger.info("client_connected", remote=str(getattr(ws, "remote_address", None)))

    try:
        client.emit({**client.status_message(), "server": server_info()})
        await client.flush()

        async for raw in ws:
            try:
                msg = json.loads(raw)
            except (TypeError, ValueError):
                continue
            if not isinstance(msg, dict):
                continue

            await client.handle_message(msg)
            await client.flush()

    except websockets.exceptions.ConnectionClosed:
        pass
    finally:
        client.close()
        logger.info("client_disconnected", steps=client.session.step_count)


# =============================================================================
# Main
# =============================================================================

async def main():
    configure_logging(LOG_LEVEL)
    print("GaitIQ Server")
    print(f"WebSocket: ws://{HOST}:{PORT}")

    async with websockets.serve(handle_client, HOST, PORT, ping_interval=20, ping_timeout=20):
        await asyncio.Future()


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
