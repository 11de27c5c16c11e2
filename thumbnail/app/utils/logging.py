import logging
import json
from datetime import datetime, timezone
from typing import Dict, Any
from pathlib import Path


class StructuredLogger:
    """Structured logger for the thumbnail agent"""

    def __init__(self):
        self.logger = logging.getLogger("thumbnail_agent")
        self.logger.setLevel(logging.INFO)

        if not self.logger.handlers:
            self._configure_handlers()

    def _configure_handlers(self) -> None:
        """Configure logger handlers for console and file outputs."""
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

        # Console handler
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        self.logger.addHandler(console_handler)

        # File handlers
        log_dir = Path(__file__).resolve().parents[2] / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)

        info_handler = logging.FileHandler(log_dir / "thumbnail_service.log", encoding="utf-8")
        info_handler.setLevel(logging.INFO)
        info_handler.setFormatter(formatter)

        error_handler = logging.FileHandler(log_dir / "thumbnail_service_error.log", encoding="utf-8")
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(formatter)

        self.logger.addHandler(info_handler)
        self.logger.addHandler(error_handler)
        self.logger.propagate = False

    def set_level(self, level: str) -> None:
        self.logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    def _payload(self, key: str, value: str, data: Dict[str, Any] = None) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            key: value,
            "agent": "thumbnail_agent"
        }
        if data:
            log_data.update(data)
        return json.dumps(log_data, default=str)

    def log_step(self, step: str, data: Dict[str, Any] = None):
        """Log a processing step"""
        self.logger.info(f"STEP: {self._payload('step', step, data)}")

    def log_warning(self, warning: str, data: Dict[str, Any] = None):
        """Log a recoverable condition"""
        self.logger.warning(f"WARNING: {self._payload('warning', warning, data)}")

    def log_error(self, error_type: str, data: Dict[str, Any] = None):
        """Log an error"""
        self.logger.error(f"ERROR: {self._payload('error', error_type, data)}")

    def log_thumbnail_started(self, source_path: str, bucket: str):
        self.log_step("thumbnail_generation_started", {
            "source_path": source_path,
            "bucket": bucket
        })

    def log_thumbnail_rendered(self, source_path: str, width: int, height: int, scale: float):
        self.log_step("thumbnail_rendered", {
            "source_path": source_path,
            "width": width,
            "height": height,
            "scale": scale
        })

    def log_thumbnail_uploaded(self, thumbnail_path: str, url: str, size_bytes: int):
        self.log_step("thumbnail_uploaded", {
            "thumbnail_path": thumbnail_path,
            "url": url,
            "size_bytes": size_bytes
        })


# Global logger instance
logger = StructuredLogger()
