"""
Logging Configuration - Color-Coded Logs

Provides:
- ColorFormatter: ANSI color-coded log output
- Helper functions: log_message_in, log_broadcast, log_presence, log_thinking, log_llm
- setup_logging(): Configure application logging

Usage:
    from logging_config import setup_logging, log_message_in
    setup_logging()
    logger = logging.getLogger(__name__)
    log_message_in(logger, "@ai summarize", conversation="c1", sender="u1")
"""

import logging
import sys

# ANSI color codes
COLORS = {
    "RESET": "\033[0m",
    "BOLD": "\033[1m",
    "DIM": "\033[2m",
    # Event colors
    "MSG_IN": "\033[96m",  # Cyan - incoming message
    "MSG_OUT": "\033[92m",  # Green - broadcast
    "THINKING": "\033[95m",  # Magenta - AI thinking
    "PRESENCE": "\033[93m",  # Yellow - online/offline
    "LLM": "\033[94m",  # Blue - provider calls
    "ERROR": "\033[91m",  # Red - errors
    "WARN": "\033[33m",  # Orange/Yellow - warnings
    "DEBUG": "\033[90m",  # Gray - debug info
}


class ColorFormatter(logging.Formatter):
    """Custom formatter with colors for different log levels."""

    LEVEL_COLORS = {
        logging.DEBUG: COLORS["DEBUG"],
        logging.INFO: COLORS["RESET"],
        logging.WARNING: COLORS["WARN"],
        logging.ERROR: COLORS["ERROR"],
        logging.CRITICAL: COLORS["ERROR"] + COLORS["BOLD"],
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, COLORS["RESET"])

        # Format: timestamp [LEVEL] message (no module name for compactness)
        timestamp = self.formatTime(record, "%H:%M:%S")
        level = record.levelname[:4]

        formatted = (
            f"{COLORS['DIM']}{timestamp}{COLORS['RESET']} "
            f"[{color}{level}{COLORS['RESET']}] "
            f"{record.getMessage()}"
        )

        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)

        return formatted


def setup_logging(level: int | str = logging.INFO) -> None:
    """Configure colored logging for the application."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColorFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)


# =============================================================================
# COLORED LOG HELPER FUNCTIONS
# =============================================================================


def log_message_in(logger: logging.Logger, message: str, **context) -> None:
    """Log an inbound chat message.

    Args:
        logger: Logger instance
        message: Message body
        **context: Additional context (conversation, sender, kind, ...)
    """
    preview = message[:80] + "..." if len(message) > 80 else message
    ctx = " ".join(f"{k}={v}" for k, v in context.items())
    logger.info(f"{COLORS['MSG_IN']}>>> MESSAGE{COLORS['RESET']} {preview} [{ctx}]")


def log_broadcast(logger: logging.Logger, event: str, room: str, recipients: int) -> None:
    """Log a room broadcast."""
    logger.debug(f"{COLORS['MSG_OUT']}<<< {event}{COLORS['RESET']} room={room} recipients={recipients}")


def log_presence(logger: logging.Logger, identity: str, online: bool) -> None:
    """Log an identity going online or offline."""
    state = "online" if online else "offline"
    logger.info(f"{COLORS['PRESENCE']}... PRESENCE{COLORS['RESET']} {identity} {state}")


def log_thinking(logger: logging.Logger, state: str, conversation_id: str = "", outcome: str = "") -> None:
    """Log the AI thinking indicator lifecycle.

    Args:
        logger: Logger instance
        state: 'start' or 'end'
        conversation_id: Conversation the assistant was woken in
        outcome: How the run ended (for end state)
    """
    if state == "start":
        logger.info(f"{COLORS['THINKING']}... THINKING{COLORS['RESET']} started in {conversation_id}")
    else:
        logger.info(
            f"{COLORS['THINKING']}... THINKING{COLORS['RESET']} " f"done in {conversation_id} ({outcome})"
        )


def log_llm(
    logger: logging.Logger,
    state: str,
    model: str = "",
    duration: float = 0,
) -> None:
    """Log a completion provider call.

    Args:
        logger: Logger instance
        state: 'start' or 'end'
        model: Model name
        duration: Call duration in seconds (for end state)
    """
    if state == "start":
        logger.info(f"{COLORS['LLM']}>>> LLM{COLORS['RESET']} calling {model}")
    else:
        logger.info(f"{COLORS['LLM']}<<< LLM{COLORS['RESET']} " f"{model} completed in {duration:.1f}s")
