"""
Pump Detector - Main Entry Point
Binance early pump detection with Telegram alerts and an HTTP control API.
"""
import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from aiogram import Bot
from fastapi import FastAPI

from bot.notifier import Notifier
from config import Settings, get_settings, ensure_log_directory
from control_server import create_app
from core.binance_client import BinanceRestClient
from core.models import PumpAlert
from core.pump_detector import PumpDetector
from utils.logging_config import setup_logging, log_pump

logger = logging.getLogger(__name__)


class PumpDetectorService:
    """Main application orchestrating all components."""

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize service components."""
        self.settings = settings or get_settings()

        self.bot: Optional[Bot] = None
        self.notifier: Optional[Notifier] = None
        self.client: Optional[BinanceRestClient] = None
        self.detector: Optional[PumpDetector] = None
        self.app: Optional[FastAPI] = None
        self._start_task: Optional[asyncio.Task] = None

    def setup(self):
        """Setup all components."""
        logger.info("Setting up Pump Detector...")

        if self.settings.bot_token:
            self.bot = Bot(token=self.settings.bot_token)
        else:
            logger.warning("BOT_TOKEN not set - alerts will only be logged")
        self.notifier = Notifier(self.bot, self.settings.alert_chat_id)

        self.client = BinanceRestClient(
            rest_url=self.settings.binance_rest_url,
            timeout=self.settings.http_timeout_s
        )
        self.detector = PumpDetector(self.client, settings=self.settings)
        self.detector.on_pump_detected = self.handle_pump

        self.app = create_app(self.detector, lifespan=self.lifespan)
        logger.info("Setup complete!")

    async def handle_pump(self, alert: PumpAlert):
        """Handle pump event from the detector."""
        log_pump(alert)
        await self.notifier.notify_pump(alert)

    @asynccontextmanager
    async def lifespan(self, app: FastAPI):
        """Lifecycle manager for the control API."""
        if self.settings.auto_start:
            logger.info("Auto-start enabled, starting detector")
            self._start_task = asyncio.create_task(self.detector.start())

        yield

        await self.shutdown()

    async def shutdown(self):
        """Graceful shutdown."""
        logger.info("Shutting down Pump Detector...")

        # start() may still be running; let it finish before stop()
        if self._start_task is not None:
            try:
                await self._start_task
            except Exception as e:
                logger.error(f"Detector start failed: {e}", exc_info=True)
            self._start_task = None
        await self.detector.stop()
        await self.detector.wait_drained()
        await self.client.close()

        if self.bot:
            await self.bot.session.close()

        logger.info("Shutdown complete")

    async def serve(self):
        """Serve the control API until interrupted."""
        config = uvicorn.Config(
            app=self.app,
            host=self.settings.api_host,
            port=self.settings.api_port,
            log_level=self.settings.log_level.lower(),
            access_log=False
        )
        server = uvicorn.Server(config)
        logger.info(f"🚀 Control API on {self.settings.api_host}:{self.settings.api_port}")
        await server.serve()


async def main():
    """Main entry point."""
    settings = get_settings()
    log_dir = ensure_log_directory(settings)
    setup_logging(log_level=settings.log_level, log_dir=log_dir)

    service = PumpDetectorService(settings)

    try:
        service.setup()
        await service.serve()
    except KeyboardInterrupt:
        logger.info("Received interrupt signal")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Detector stopped by user")
