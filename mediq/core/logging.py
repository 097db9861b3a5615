import logging
import sys

import structlog
from pythonjsonlogger import jsonlogger


def setup_logging(level: str = "INFO", json_logs: bool = False):
    """Structured logging setup shared by the app and its modules"""

    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    json_formatter = jsonlogger.JsonFormatter(
        fmt="%(asctime)s %(name)s %(levelname)s %(message)s"
    )

    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Setup root logger once; create_app may run several times in one process
    root = logging.getLogger()
    if not any(getattr(h, "_mediq_handler", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(json_formatter)
        handler._mediq_handler = True
        root.addHandler(handler)
    root.setLevel(log_level)

    return structlog.get_logger("mediq")
