import logging
from contextvars import ContextVar
from pathlib import Path

from giftpage.core.config import settings


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s"

# SDK clients that log every HTTP round trip at INFO
_NOISY_LOGGERS = ("botocore", "boto3", "urllib3", "httpx", "google_genai")

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class RequestIdFilter(logging.Filter):
    """Stamps the id of the request being served onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


def configure_logging(level_name: str | None = None, log_file: str | None = None) -> logging.Logger:
    level_name = (level_name or settings.log_level or "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    log_file = settings.log_file if log_file is None else log_file

    root = logging.getLogger()
    ours = [handler for handler in root.handlers if any(isinstance(f, RequestIdFilter) for f in handler.filters)]
    handlers: list[logging.Handler] = []
    if not root.handlers:
        handlers.append(logging.StreamHandler())
    if log_file:
        log_path = Path(log_file).resolve()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        if not any(getattr(handler, "baseFilename", None) == str(log_path) for handler in ours):
            handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(RequestIdFilter())
        root.addHandler(handler)
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    logger = logging.getLogger("giftpage")
    logger.setLevel(level)
    return logger
