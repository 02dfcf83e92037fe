"""
HTTP control surface for the pump detector.

Endpoints:
    GET  /            service info
    POST /api/start   start scanning (idempotent)
    POST /api/stop    stop scanning
    GET  /api/status  detector status and active configuration
    GET  /api/health  liveness probe
"""
import logging
from datetime import datetime

from fastapi import FastAPI

from core.pump_detector import PumpDetector

logger = logging.getLogger(__name__)

# Never exposed through /api/status
_SECRET_FIELDS = {"bot_token"}


def create_app(detector: PumpDetector, lifespan=None) -> FastAPI:
    """Build the control API around a detector instance."""
    app = FastAPI(
        title="Binance Pump Detector",
        description="Early pump signal detection for Binance spot pairs",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.detector = detector

    @app.get("/")
    async def root():
        """Service info."""
        return {
            "status": "ok",
            "service": "Binance Pump Detector",
            "endpoints": {
                "start": "/api/start",
                "stop": "/api/stop",
                "status": "/api/status",
                "health": "/api/health"
            }
        }

    @app.post("/api/start")
    async def start_detector():
        if detector.is_running:
            return {"success": False, "message": "Detector is already running"}

        await detector.start()
        return {"success": True, "message": "Pump detector started successfully"}

    @app.post("/api/stop")
    async def stop_detector():
        await detector.stop()
        return {"success": True, "message": "Pump detector stopped"}

    @app.get("/api/status")
    async def status():
        payload = detector.status().model_dump(mode="json")
        payload["config"] = _public_config(detector)
        return payload

    @app.get("/api/health")
    async def health_check():
        return {"status": "ok", "timestamp": datetime.now().isoformat()}

    return app


def _public_config(detector: PumpDetector) -> dict:
    config = detector.settings.model_dump(exclude=_SECRET_FIELDS)
    config["telegram_configured"] = detector.settings.telegram_configured
    return config
