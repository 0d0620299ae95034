"""Feed monitor worker.

Runs the fetch timer and the admin web app in one process:
- Fetch the configured feed on its schedule (hourly, daily or weekly)
- Prune stored payloads older than the retention window after each fetch
- Serve the settings page with download / view / delete actions

Usage:
    python scripts/worker.py

Environment Variables:
    FM_DATABASE_URL: SQLAlchemy database URL (default: SQLite under data/)
    FM_WEB_HOST / FM_WEB_PORT: admin web app bind address
    FM_FETCH_TIMEOUT_SECONDS: per-fetch timeout
"""

import os
import sys
import asyncio

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import structlog
import uvicorn

from feed_monitor.config.settings import settings
from feed_monitor.pipeline.monitor import FeedMonitor
from feed_monitor.web.app import create_app

logger = structlog.get_logger()


async def main():
    """Main entry point."""
    monitor = FeedMonitor()
    config = monitor.activate()

    # Run immediately on startup when a feed is configured
    if config.feed_url:
        logger.info("running_initial_fetch")
        await monitor.fetch_now()

    server = uvicorn.Server(uvicorn.Config(
        create_app(monitor),
        host=settings.web_host,
        port=settings.web_port,
        log_level="info",
    ))

    logger.info("worker_started", host=settings.web_host, port=settings.web_port,
                next_run_at=monitor.status()["next_run_at"])
    try:
        # uvicorn handles SIGINT/SIGTERM and returns from serve()
        await server.serve()
    finally:
        await monitor.shutdown()
        logger.info("worker_stopped")


if __name__ == "__main__":
    asyncio.run(main())
