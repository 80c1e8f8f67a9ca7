import json
import logging
import os
import time
from logging.handlers import RotatingFileHandler

DEFAULT_LOG_DIR = "logs"


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y"}


class LocalTimeFormatter(logging.Formatter):
    converter = time.localtime


class JsonLineFormatter(LocalTimeFormatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def _build_file_handler(path: str, level: str, formatter: logging.Formatter) -> RotatingFileHandler:
    max_bytes = int(os.getenv("LOG_MAX_BYTES", "5000000"))
    backup_count = int(os.getenv("LOG_BACKUP_COUNT", "5"))
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging() -> None:
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    log_file_path = os.getenv("LOG_FILE_PATH", os.path.join(DEFAULT_LOG_DIR, "backend.log"))
    frontend_log_file_path = os.getenv(
        "FRONTEND_LOG_FILE_PATH", os.path.join(DEFAULT_LOG_DIR, "frontend.log")
    )
    json_enabled = _get_bool(os.getenv("LOG_JSON_ENABLED", "false"))
    file_enabled = _get_bool(os.getenv("LOG_FILE_ENABLED", "true"), default=True)

    formatter_class = JsonLineFormatter if json_enabled else LocalTimeFormatter
    formatter = formatter_class(
        "%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    frontend_logger = logging.getLogger("frontend")
    frontend_logger.handlers.clear()
    frontend_logger.propagate = False
    frontend_logger.setLevel(log_level)
    frontend_logger.addHandler(console_handler)

    if file_enabled:
        root_logger.addHandler(_build_file_handler(log_file_path, log_level, formatter))
        frontend_logger.addHandler(_build_file_handler(frontend_log_file_path, log_level, formatter))

    logging.getLogger("uvicorn.access").handlers.clear()


def format_frontend_message(message: str, context: dict | None = None) -> str:
    if not context:
        return message
    payload = {"message": message, "context": context}
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
