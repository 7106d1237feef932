"""
Structured Logging Configuration Module

JSON log lines for account operations. Account context (the account, its
customer and type, the creation stage and the error code) is emitted as
top-level keys so log pipelines can filter on it directly.
"""

import logging
import json
from datetime import datetime, timezone
from typing import Optional

# Record attributes promoted to top-level JSON keys, in output order
ACCOUNT_CONTEXT_FIELDS = (
    "correlation_id",
    "action",
    "account_id",
    "customer_id",
    "account_type",
    "stage",
    "last_stage",
    "code",
)

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per record, account context as top-level keys"""

    def format(self, record):
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in ACCOUNT_CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value

        details = getattr(record, "details", None)
        if details:
            entry["details"] = details

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(level: str = "INFO", logger_name: str = "bank_accounts",
                  fmt: str = "json") -> logging.Logger:
    """
    Configure the service logger.

    Args:
        level: Log level name
        logger_name: Logger to configure; child loggers inherit its handler
        fmt: "json" for structured output, "text" for plain lines

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter() if fmt == "json" else logging.Formatter(TEXT_FORMAT))

    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False

    return logger


def log_action(logger: logging.Logger, level: str, message: str, *,
               action: Optional[str] = None,
               correlation_id: Optional[str] = None,
               account_id: Optional[str] = None,
               customer_id: Optional[str] = None,
               account_type: Optional[str] = None,
               stage: Optional[str] = None,
               last_stage: Optional[str] = None,
               code: Optional[str] = None,
               **details):
    """
    Log an account operation with its context attached to the record.

    Context arguments left as None are omitted. Any other keyword arguments
    are grouped under ``details``.
    """
    context = {
        "action": action,
        "correlation_id": correlation_id,
        "account_id": account_id,
        "customer_id": customer_id,
        "account_type": account_type,
        "stage": stage,
        "last_stage": last_stage,
        "code": code,
    }
    context = {name: value for name, value in context.items() if value is not None}
    if details:
        context["details"] = details

    logger.log(getattr(logging, level.upper()), message, extra=context)
