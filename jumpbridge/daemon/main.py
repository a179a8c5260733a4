"""Main daemon process for jumpbridge."""

import asyncio
import signal
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

import psutil
from aiohttp import web
from loguru import logger

from .. import __version__
from .api import create_api_app
from .bridge import JumpBridge
from .bus import EventBus
from .config import Config
from .errors import ConfigurationError
from .store import ProcessRunner

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def setup_logging(level: str = "INFO", log_file: Optional[Path] = None) -> None:
    logger.remove()
    logger.add(sys.stderr, format=LOG_FORMAT, level=level)
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            rotation="1 day",
            retention="7 days",
            level="DEBUG"
        )


def default_log_file() -> Path:
    return Path.home() / ".local" / "share" / "jumpbridge" / "logs" / "daemon.log"


class BridgeDaemon:
    """Long-running process that turns editor events into jumper updates."""

    def __init__(self, config: Config, runner: Optional[ProcessRunner] = None,
                 serve_http: bool = True):
        self.config = config
        self.start_time = datetime.now(timezone.utc)
        self.serve_http = serve_http

        self.event_bus = EventBus()
        self.bridge = JumpBridge(config, runner=runner)

        self._shutdown = asyncio.Event()
        self.api_app: Optional[web.Application] = None
        self.api_runner: Optional[web.AppRunner] = None
        self.api_site: Optional[web.TCPSite] = None

    async def start(self, workspace_folders: Iterable[Path] = ()) -> None:
        """Start all daemon services."""
        logger.info("Starting jumpbridge daemon...")

        self.bridge.check_installation()

        await self.event_bus.start()
        self.bridge.tracker.attach(self.event_bus)
        await self.bridge.tracker.track_workspace(workspace_folders)

        if self.serve_http:
            await self._start_api()

        logger.info("jumpbridge daemon started")

    async def stop(self) -> None:
        """Stop all daemon services."""
        logger.info("Stopping jumpbridge daemon...")

        if self.api_site:
            await self.api_site.stop()
            self.api_site = None
        if self.api_runner:
            await self.api_runner.cleanup()
            self.api_runner = None

        await self.event_bus.stop()
        self.bridge.tracker.detach(self.event_bus)
        await self.bridge.tracker.close()

        logger.info("jumpbridge daemon stopped")

    def request_shutdown(self) -> None:
        self._shutdown.set()

    async def wait_for_shutdown(self) -> None:
        await self._shutdown.wait()

    async def _start_api(self) -> None:
        """Start the HTTP API server."""
        self.api_app = create_api_app(self)
        self.api_runner = web.AppRunner(self.api_app)
        await self.api_runner.setup()

        self.api_site = web.TCPSite(
            self.api_runner,
            self.config.api.host,
            self.config.api.port
        )
        await self.api_site.start()

        logger.info(f"API server started on http://{self.config.api.host}:{self.config.api.port}")

    def get_status(self) -> dict:
        """Get daemon status and statistics."""
        process = psutil.Process()
        uptime = (datetime.now(timezone.utc) - self.start_time).total_seconds()

        return {
            "status": "running",
            "version": __version__,
            "uptime": f"{uptime:.0f}s",
            "jumper_installed": bool(self.bridge.installed),
            "stats": {
                "events": self.event_bus.get_stats(),
                "tracked": dict(self.bridge.tracker.stats),
                "updates": dict(self.bridge.updates.stats),
                "memory_mb": process.memory_info().rss / 1024 / 1024,
            },
            "weights": self.bridge.weights.as_dict(),
        }


async def main(config_path: Optional[str] = None,
               workspace_folders: Iterable[Path] = (),
               log_level: str = "INFO") -> int:
    """Main entry point for the daemon."""
    setup_logging(log_level, default_log_file())

    try:
        config = Config.load(Path(config_path) if config_path else None)
        daemon = BridgeDaemon(config)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, daemon.request_shutdown)
        except NotImplementedError:
            # Windows event loops have no signal handler support
            pass

    try:
        await daemon.start(workspace_folders)
        await daemon.wait_for_shutdown()
    except OSError as e:
        logger.error(f"Daemon failed to start: {e}")
        return 1
    finally:
        await daemon.stop()

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
