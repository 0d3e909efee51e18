"""Logging for the ForkAI content pipeline.

One "forkai" logger, configured from the environment:
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
- LOG_TYPE: text, json (default: text)

Pipeline code attaches request context through `extra=`: the task name, the
current PipelineStage and the milliseconds elapsed since the request started.
Both formatters render whichever of those fields a record carries.
"""

import json
import logging
import os
import sys
from typing import Any

PIPELINE_FIELDS = ("task", "stage", "elapsed_ms")

# SDK and HTTP clients log each request; keep them at WARNING unless asked
QUIET_LOGGERS = ("google.genai", "google_genai", "aiohttp", "httpx")


def pipeline_context(record: logging.LogRecord) -> dict[str, Any]:
    """Return the pipeline fields set on record, in PIPELINE_FIELDS order."""
    return {field: getattr(record, field) for field in PIPELINE_FIELDS if hasattr(record, field)}


class JSONFormatter(logging.Formatter):
    """One JSON document per line, pipeline context as top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **pipeline_context(record),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Recipe titles and categories carry emoji
        return json.dumps(log_data, ensure_ascii=False)


class RichTextFormatter(logging.Formatter):
    """Colored console line with a level icon and a [task/stage] tag."""

    COLORS = {
        "DEBUG": "\033[36m",      # Cyan
        "INFO": "\033[32m",       # Green
        "WARNING": "\033[33m",    # Yellow
        "ERROR": "\033[31m",      # Red
        "RESET": "\033[0m",
    }

    ICONS = {
        "DEBUG": "🔍",
        "INFO": "🍴",
        "WARNING": "⚠️",
        "ERROR": "❌",
    }

    @staticmethod
    def context_tag(record: logging.LogRecord) -> str:
        """Format pipeline context as "[recipe_list/parsing +812ms] ", or ""."""
        context = pipeline_context(record)
        if "task" not in context:
            return ""
        tag = context["task"]
        if "stage" in context:
            tag += f"/{context['stage']}"
        if "elapsed_ms" in context:
            tag += f" +{context['elapsed_ms']}ms"
        return f"[{tag}] "

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        color = self.COLORS.get(level, self.COLORS["RESET"])
        icon = self.ICONS.get(level, "")
        reset = self.COLORS["RESET"]
        timestamp = self.formatTime(record, "%Y-%m-%d %H:%M:%S")

        message = f"{color}{icon} {timestamp} {level:<8} {record.name:<20} {self.context_tag(record)}{record.getMessage()}{reset}"
        if record.exc_info:
            message += f"\n{self.formatException(record.exc_info)}"
        return message


def get_logger(name: str) -> logging.Logger:
    """Create and configure logger instance.

    Args:
        name: Logger name, typically "forkai" or a child of it.

    Returns:
        Configured logger instance. A logger that already has handlers is
        returned untouched.
    """
    logger_instance = logging.getLogger(name)
    if logger_instance.handlers:
        return logger_instance

    log_level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    log_type = os.getenv("LOG_TYPE", "text").lower()
    logger_instance.setLevel(log_level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(JSONFormatter() if log_type == "json" else RichTextFormatter())
    logger_instance.addHandler(handler)

    return logger_instance


def quiet_third_party(level: int = logging.WARNING) -> None:
    """Raise the threshold of the provider SDK and HTTP client loggers."""
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(level)


logger = get_logger("forkai")
quiet_third_party()
