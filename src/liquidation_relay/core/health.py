"""Health check module - HTTP liveness endpoint and periodic status log."""

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from aiohttp import web

if TYPE_CHECKING:
    from liquidation_relay.relay import LiquidationRelay

logger = logging.getLogger(__name__)


@dataclass
class ModuleStatus:
    """Status of a single module."""

    name: str
    connected: bool
    details: str = ""


class HealthMonitor:
    """Monitors and reports health status of the relay.

    Periodically logs:
    - Connection status per venue
    - Delivery queue depth and retry state
    - Recent event counts
    """

    def __init__(self, relay: "LiquidationRelay", interval_seconds: float = 60) -> None:
        """Initialize health monitor.

        Args:
            relay: Running relay to inspect
            interval_seconds: Health log interval in seconds (default: 60)
        """
        self._relay = relay
        self._interval = interval_seconds
        self._running = False
        self._task: asyncio.Task | None = None
        self._start_time: datetime | None = None
        self._check_count = 0

    async def start(self) -> None:
        """Start periodic health checks."""
        self._running = True
        self._start_time = datetime.now()
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"Health monitor started (interval: {self._interval}s)")

    async def stop(self) -> None:
        """Stop health checks."""
        self._running = False
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        logger.info("Health monitor stopped")

    async def _run_loop(self) -> None:
        """Main health check loop."""
        while self._running:
            try:
                await asyncio.sleep(self._interval)
                if self._running:
                    self._check_count += 1
                    self._log_health_status()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Health check error: {e}")

    def _log_health_status(self) -> None:
        """Log current health status of all modules."""
        statuses = self._collect_statuses()
        status_line = " | ".join(
            f"{s.name}:{'✅' if s.connected else '❌'}" + (f"({s.details})" if s.details else "")
            for s in statuses
        )
        overall = "🟢" if all(s.connected for s in statuses) else "🔴"
        logger.info(f"{overall} Health #{self._check_count} [{self.format_uptime()}] {status_line}")

    def _collect_statuses(self) -> list[ModuleStatus]:
        """Collect status from all modules."""
        snapshot = self._relay.health_snapshot()
        statuses = [
            ModuleStatus(
                name=venue,
                connected=state["status"] == "connected",
                details=f"{state['events_received']} events"
                if state["status"] == "connected"
                else str(state["status"]),
            )
            for venue, state in snapshot["connections"].items()
        ]

        queue_details = f"depth {snapshot['queue_depth']}"
        if snapshot["pending_retry"]:
            queue_details += ", retrying"
        statuses.append(
            ModuleStatus(
                name="Delivery",
                connected=snapshot["delivery_enabled"],
                details=queue_details if snapshot["delivery_enabled"] else "disabled",
            )
        )
        return statuses

    def format_uptime(self) -> str:
        """Format uptime as human-readable string."""
        if not self._start_time:
            return "0s"

        total_seconds = int((datetime.now() - self._start_time).total_seconds())
        hours, remainder = divmod(total_seconds, 3600)
        minutes, seconds = divmod(remainder, 60)

        if hours > 0:
            return f"{hours}h{minutes}m"
        elif minutes > 0:
            return f"{minutes}m{seconds}s"
        else:
            return f"{seconds}s"

    def get_status_summary(self) -> dict[str, Any]:
        """Get status summary as a dictionary (for the HTTP endpoint)."""
        summary = {
            "status": "ok",
            "uptime": self.format_uptime(),
            "check_count": self._check_count,
        }
        summary.update(self._relay.health_snapshot())
        return summary


MONITOR_KEY = web.AppKey("health_monitor", HealthMonitor)


async def handle_root(request: web.Request) -> web.Response:
    """GET / - plain liveness text."""
    return web.Response(text="✅ Liquidation relay running")


async def handle_health(request: web.Request) -> web.Response:
    """GET /health - liveness plus queue and connection status."""
    monitor: HealthMonitor = request.app[MONITOR_KEY]
    return web.json_response(monitor.get_status_summary())


def create_app(monitor: HealthMonitor) -> web.Application:
    """Create the health endpoint application.

    Returns:
        Configured web.Application instance
    """
    app = web.Application()
    app[MONITOR_KEY] = monitor
    app.router.add_get("/", handle_root)
    app.router.add_get("/health", handle_health)
    return app


class HealthServer:
    """Runs the health endpoint on the configured host and port."""

    def __init__(self, app: web.Application, host: str, port: int) -> None:
        self._app = app
        self._host = host
        self._port = port
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._host, self._port)
        await site.start()
        logger.info(f"Health endpoint listening on http://{self._host}:{self._port}/health")

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
