# Stateful Bot Logging Module
# Meaningful logging functions for the stateful Telegram dispatcher

import logging
import sys
import os
from typing import Optional, Dict, Any

# Simple update context tracking
import uuid
from contextvars import ContextVar


# Custom TRACE level (lower than DEBUG)
TRACE_LEVEL = 5
logging.addLevelName(TRACE_LEVEL, "TRACE")

# Convenience constants for log levels
TRACE = TRACE_LEVEL
DEBUG = logging.DEBUG
INFO = logging.INFO
WARNING = logging.WARNING
ERROR = logging.ERROR
CRITICAL = logging.CRITICAL

class BotFormatter(logging.Formatter):
    """Custom formatter that adds caller context and colors for different log levels."""

    # Color codes for different log levels
    COLORS = {
        'TRACE': '\033[90m',    # Dark gray
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[0m',      # Default
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[91m', # Bright red
        'RESET': '\033[0m'      # Reset color
    }

    def format(self, record):
        # Add caller context (file:function:line)
        if hasattr(record, 'pathname') and hasattr(record, 'funcName'):
            filename = record.pathname.split('/')[-1].split('\\')[-1]
            record.caller_context = f"{filename}:{record.funcName}:{record.lineno}"
        else:
            record.caller_context = "unknown"

        # Add color coding if terminal supports it
        if hasattr(sys.stderr, 'isatty') and sys.stderr.isatty():
            color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
            record.levelname = f"{color}{record.levelname}{self.COLORS['RESET']}"

        return super().format(record)


class Logger:
    """
    Tagged logger used by classes of the bot.

    Every message is prefixed with the class tag and suffixed with the
    current update context, e.g. ``[StatefulBot] Resolved main.lunch | chat_id=1``.
    """

    def __init__(self, tag: str, name: Optional[str] = None):
        self.tag = tag
        self.logger = logging.getLogger(name or f"statebot.{tag}")

    def _format(self, message: str, extra_tag: Optional[str] = None, **kwargs) -> str:
        context = get_context_suffix()
        prefix = f"[{self.tag}]" if not extra_tag else f"[{self.tag}] [{extra_tag}]"
        if kwargs:
            params = ", ".join([f"{k}={v}" for k, v in kwargs.items()])
            return f"{prefix} {message} | {params}{context}"
        return f"{prefix} {message}{context}"

    def trace(self, message: str, extra_tag: Optional[str] = None, **kwargs):
        """Log trace level message with automatic context."""
        self.logger.log(TRACE_LEVEL, self._format(message, extra_tag, **kwargs))

    def debug(self, message: str, extra_tag: Optional[str] = None, **kwargs):
        """Log debug level message with automatic context."""
        self.logger.debug(self._format(message, extra_tag, **kwargs))

    def info(self, message: str, extra_tag: Optional[str] = None, **kwargs):
        """Log info level message with automatic context."""
        self.logger.info(self._format(message, extra_tag, **kwargs))

    def warning(self, message: str, extra_tag: Optional[str] = None, **kwargs):
        """Log warning level message with automatic context."""
        self.logger.warning(self._format(message, extra_tag, **kwargs))

    def error(self, message: str, extra_tag: Optional[str] = None, exc_info: Any = None, **kwargs):
        """Log error level message with automatic context."""
        self.logger.error(self._format(message, extra_tag, **kwargs), exc_info=exc_info)


# Get log level from environment variable or default to INFO
log_level = os.getenv('LOG_LEVEL', 'INFO').upper()
level_map = {
    'TRACE': TRACE_LEVEL,
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
    'CRITICAL': logging.CRITICAL
}

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(caller_context)s - %(message)s",
    level=level_map.get(log_level, logging.INFO)
)

logger = logging.getLogger(__name__)

# Create a global formatter instance
bot_formatter = BotFormatter("%(asctime)s - %(name)s - %(levelname)s - %(caller_context)s - %(message)s")

# Apply custom formatter to all handlers
for handler in logging.root.handlers:
    handler.setFormatter(bot_formatter)

# Suppress verbose logging from external libraries
httpx_logger = logging.getLogger("httpx")
httpx_logger.setLevel(logging.WARNING)

uvicorn_logger = logging.getLogger("uvicorn.access")
uvicorn_logger.setLevel(logging.WARNING)

telethon_logger = logging.getLogger("telethon")
telethon_logger.setLevel(logging.WARNING)


def set_log_level(level_name: str) -> None:
    """Change the root log level at runtime (e.g. from AppConfig.LOG_LEVEL)."""
    logging.getLogger().setLevel(level_map.get(level_name.upper(), logging.INFO))


update_id: ContextVar[Optional[str]] = ContextVar('update_id', default=None)
current_chat_id: ContextVar[Optional[int]] = ContextVar('current_chat_id', default=None)

def set_update_context(chat_id: Optional[int] = None, upd_id: Optional[str] = None):
    """Set context for update tracking - call this at the start of update handling."""
    current_chat_id.set(chat_id)
    update_id.set(upd_id or str(uuid.uuid4())[:8])

def get_context_suffix() -> str:
    """Get current context info to append to log messages."""
    upd_id = update_id.get()
    chat_id = current_chat_id.get()
    if upd_id or chat_id:
        parts = []
        if upd_id:
            parts.append(f"update_id={upd_id}")
        if chat_id:
            parts.append(f"chat_id={chat_id}")
        return f" | {', '.join(parts)}"
    return ""


# === APPLICATION LIFECYCLE ===

def log_app_startup(level: int = logging.INFO):
    logger.log(level, "[APP] Stateful bot application starting up...")

def log_app_shutdown(level: int = logging.INFO):
    logger.log(level, "[APP] Stateful bot application shutting down...")

def log_telegram_bot_started(api_id: int, level: int = logging.INFO):
    logger.log(level, "[TELEGRAM] Telegram bot started successfully with API ID: %s", api_id)

# === DATABASE OPERATIONS ===

def log_database_connected(uri: str, level: int = logging.INFO):
    logger.log(level, "[DB] Successfully connected to MongoDB database: %s", uri)

def log_database_disconnected(level: int = logging.INFO):
    logger.log(level, "[DB] Successfully disconnected from MongoDB database")

def log_database_connection_failed(error: str, level: int = logging.ERROR):
    logger.log(level, "[DB] Failed to connect to MongoDB database: %s", error)

def log_database_error(operation: str, error: str, context: Optional[Dict[str, Any]] = None, level: int = logging.ERROR):
    if context:
        logger.log(level, "[DB] Database error during %s: %s, context: %s", operation, error, context)
    else:
        logger.log(level, "[DB] Database error during %s: %s", operation, error)

# === CONVERSATION STATE ===

def log_state_created(chat_id: int, message_id: Optional[int], level: int = logging.INFO):
    logger.log(level, "[STATE] New message state created: chat_id=%s, message_id=%s", chat_id, message_id)

def log_state_forked(chat_id: int, message_id: int, handler_id: Optional[str], level: int = logging.DEBUG):
    logger.log(level, "[STATE] Message state forked: chat_id=%s, message_id=%s, handler=%s", chat_id, message_id, handler_id)

def log_state_fallback(chat_id: int, message_id: Optional[int], found_message_id: int, level: int = TRACE_LEVEL):
    logger.log(level, "[STATE] No exact state for chat_id=%s, message_id=%s, using latest message_id=%s", chat_id, message_id, found_message_id)

def log_handler_changed(chat_id: int, old_id: Optional[str], new_id: str, level: int = logging.INFO):
    logger.log(level, "[STATE] Handler changed: chat_id=%s, %s -> %s", chat_id, old_id, new_id)

# === DISPATCH ===

def log_handler_registered(handler_id: str, methods: int, level: int = logging.DEBUG):
    logger.log(level, "[DISPATCH] Handler module registered: id=%s, methods=%d", handler_id, methods)

def log_update_dropped(kind: str, reason: str, level: int = TRACE_LEVEL):
    logger.log(level, "[DISPATCH] Update dropped: kind=%s, reason=%s", kind, reason)

def log_method_resolved(module_id: str, method: str, chat_id: Optional[int] = None, level: int = logging.DEBUG):
    logger.log(level, "[DISPATCH] Resolved %s.%s for chat_id=%s", module_id, method, chat_id)

def log_resolution_miss(module_id: str, user_id: Optional[int], message_id: Optional[int], level: int = logging.WARNING):
    logger.log(level, "[DISPATCH] Failed to find a handler in %s. User: %s, Message: %s", module_id, user_id, message_id)

def log_invocation_failed(module_id: str, method: str, error: str, level: int = logging.ERROR):
    logger.log(level, "[DISPATCH] Invocation of %s.%s failed: %s", module_id, method, error, exc_info=True)

def log_paginator_page_changed(chat_id: Optional[int], old_page: int, new_page: int, level: int = logging.DEBUG):
    logger.log(level, "[PAGINATOR] Page changed: chat_id=%s, %d -> %d", chat_id, old_page, new_page)

# === TELEGRAM BOT INTERACTIONS ===

def log_telegram_command(user_id: Optional[int], command: str, chat_id: Optional[int] = None, level: int = logging.INFO):
    if chat_id:
        logger.log(level, "[TELEGRAM] Command received: user_id=%s, command='%s', chat_id=%s", user_id, command, chat_id)
    else:
        logger.log(level, "[TELEGRAM] Command received: user_id=%s, command='%s'", user_id, command)

def log_telegram_callback(user_id: Optional[int], callback_data: str, chat_id: Optional[int] = None, level: int = logging.INFO):
    if chat_id:
        logger.log(level, "[TELEGRAM] Callback received: user_id=%s, callback='%s', chat_id=%s", user_id, callback_data, chat_id)
    else:
        logger.log(level, "[TELEGRAM] Callback received: user_id=%s, callback='%s'", user_id, callback_data)

def log_telegram_message_sent(chat_id: int, message_type: str, content_preview: str = "", level: int = logging.INFO):
    if content_preview:
        logger.log(level, "[TELEGRAM] Message sent to chat_id=%s, type=%s, content='%s...'", chat_id, message_type, content_preview[:50])
    else:
        logger.log(level, "[TELEGRAM] Message sent to chat_id=%s, type=%s", chat_id, message_type)

def log_telegram_message_not_modified(chat_id: int, message_id: int, level: int = TRACE_LEVEL):
    logger.log(level, "[TELEGRAM] Message not modified: chat_id=%s, message_id=%s", chat_id, message_id)

def log_telegram_api_error(operation: str, error: str, chat_id: Optional[int] = None, level: int = logging.ERROR):
    if chat_id:
        logger.log(level, "[TELEGRAM] API error during %s for chat_id=%s: %s", operation, chat_id, error)
    else:
        logger.log(level, "[TELEGRAM] API error during %s: %s", operation, error)

# === LUNCH REMINDERS ===

def log_reminder_sent(group_id: int, kind: str, level: int = logging.INFO):
    logger.log(level, "[REMINDER] Reminder sent: group_id=%s, kind=%s", group_id, kind)

def log_reminder_next_check(seconds: float, level: int = logging.DEBUG):
    logger.log(level, "[REMINDER] Next check in %.0fs", seconds)

# === ERROR HANDLING ===

def log_unexpected_error(operation: str, error: str, context: Optional[Dict[str, Any]] = None, level: int = logging.ERROR):
    if context:
        # Use logger.log with exc_info=True to include stack trace when logging exceptions
        logger.log(level, "[ERROR] Unexpected error during %s: %s, context: %s", operation, error, context, exc_info=True)
    else:
        logger.log(level, "[ERROR] Unexpected error during %s: %s", operation, error, exc_info=True)

def log_api_request(endpoint: str, method: str, level: int = logging.INFO):
    logger.log(level, "[API] %s %s", method, endpoint)
