"""
Logging configuration for Pump Detector.

Features:
- Separate log files for system events, detected pumps and errors
- Rotating file handlers (max 50MB per file, keep 5 backups)
- Automatic cleanup of old logs (keeps last 7 days)
- Console output for real-time monitoring
"""
import logging
import logging.handlers
from pathlib import Path
from datetime import datetime, timedelta
import glob
from typing import Union

from core.models import PumpAlert


# Rotation settings
MAX_BYTES = 50 * 1024 * 1024  # 50 MB per file
BACKUP_COUNT = 5  # Keep 5 backup files (total ~250 MB per log type)

# Cleanup settings
LOG_RETENTION_DAYS = 7  # Keep logs for 7 days

PUMPS_LOGGER = 'pumps'


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(log_level: str = "INFO", log_dir: Union[str, Path] = "logs") -> dict:
    """
    Configure logging with rotation and cleanup.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for log files

    Returns:
        dict: Dictionary of specialized loggers
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    # Common formatter
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Console handler (for real-time monitoring)
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    system_handler = _rotating_handler(log_dir / "system.log", level, formatter)
    # Every alert that fired, independent of delivery
    pumps_handler = _rotating_handler(log_dir / "pumps.log", logging.INFO, formatter)
    errors_handler = _rotating_handler(log_dir / "errors.log", logging.ERROR, formatter)

    # Configure root logger (catches all logs)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()  # Remove any existing handlers
    root_logger.addHandler(console_handler)
    root_logger.addHandler(system_handler)
    root_logger.addHandler(errors_handler)

    pumps_logger = logging.getLogger(PUMPS_LOGGER)
    pumps_logger.handlers.clear()
    pumps_logger.addHandler(pumps_handler)
    pumps_logger.propagate = True  # Also log to root (console + system)

    # Clean up old logs on startup
    cleanup_old_logs(log_dir)

    root_logger.info("=" * 80)
    root_logger.info("Pump Detector logging system initialized")
    root_logger.info(f"Log directory: {log_dir.absolute()}")
    root_logger.info(f"Log level: {log_level}")
    root_logger.info(f"Rotation: {MAX_BYTES // (1024*1024)} MB per file, {BACKUP_COUNT} backups")
    root_logger.info(f"Retention: {LOG_RETENTION_DAYS} days")
    root_logger.info("=" * 80)

    return {
        'system': root_logger,
        'pumps': pumps_logger,
    }


def cleanup_old_logs(log_dir: Union[str, Path] = "logs") -> int:
    """
    Delete log files older than LOG_RETENTION_DAYS.

    Runs automatically on startup to prevent disk space issues.

    Returns:
        Number of files deleted
    """
    log_dir = Path(log_dir)
    cutoff_time = datetime.now() - timedelta(days=LOG_RETENTION_DAYS)
    deleted_count = 0
    total_size_freed = 0

    log_patterns = [
        log_dir / "*.log",
        log_dir / "*.log.*",  # Backup files (.log.1, .log.2, etc.)
    ]

    for pattern in log_patterns:
        for log_file in glob.glob(str(pattern)):
            log_path = Path(log_file)

            # Skip if file doesn't exist (race condition)
            if not log_path.exists():
                continue

            try:
                mtime = datetime.fromtimestamp(log_path.stat().st_mtime)
                if mtime < cutoff_time:
                    file_size = log_path.stat().st_size
                    log_path.unlink()
                    deleted_count += 1
                    total_size_freed += file_size
            except OSError as e:
                # Log error but continue cleanup
                logging.error(f"Error cleaning up {log_path}: {e}")

    if deleted_count > 0:
        size_mb = total_size_freed / (1024 * 1024)
        logging.info(f"Cleaned up {deleted_count} old log files ({size_mb:.2f} MB freed)")

    return deleted_count


def log_pump(alert: PumpAlert):
    """Log pump event to dedicated pumps log."""
    logger = logging.getLogger(PUMPS_LOGGER)
    logger.info(
        f"{alert.symbol} score={alert.composite_score:.1f} "
        f"price={alert.current_price} 24h={alert.price_change_percent:+.2f}% "
        f"signals=[{'; '.join(alert.signals)}]"
    )
