from contextvars import ContextVar
from datetime import datetime, timezone
from enum import StrEnum
import logging
from pathlib import Path
import sys

from loguru import logger as loguru_logger

from court_booking.platform.config.core_setting import settings
from court_booking.platform.logging.service_context import get_service_context


# Keys whose values never reach the log output (payment proofs are private documents)
SENSITIVE_KEYWORDS = frozenset({'proof_url', 'payment_proof_url'})

chain_start_time_var: ContextVar[float] = ContextVar('chain_start_time_var', default=0)
call_depth_var: ContextVar[int] = ContextVar('call_depth_var', default=0)


class ExtraField(StrEnum):
    SERVICE_CONTEXT = 'service_context'
    CHAIN_START_TIME = 'chain_start_time'
    CALL_TARGET = 'call_target'


DEFAULT_EXTRA = {
    ExtraField.SERVICE_CONTEXT: get_service_context(),
    ExtraField.CHAIN_START_TIME: '',
    ExtraField.CALL_TARGET: '',
}

# stdlib loggers whose DEBUG chatter is not worth forwarding
QUIET_DEBUG_LOGGERS = ('aiosqlite', 'asyncio')

io_log_format = ' | '.join(
    (
        '<g>{time:YYYY-MM-DD HH:mm:ss.SSS}</>',
        f'<c>{{extra[{ExtraField.SERVICE_CONTEXT}]}}</>',
        '<lvl>{level:<8}</>',
        f'<c>{{file}}::{{function}}:{{line}}</>=><y>{{extra[{ExtraField.CALL_TARGET}]}}</>',
        '{message}',
        f'<lk>{{extra[{ExtraField.CHAIN_START_TIME}]:<18}}</>',
    )
)


class InterceptHandler(logging.Handler):
    """Forward stdlib records (SQLAlchemy engine, aiosqlite) to loguru"""

    def emit(self, record: logging.LogRecord) -> None:
        if record.levelno <= logging.DEBUG and record.name.startswith(QUIET_DEBUG_LOGGERS):
            return

        try:
            level: str | int = loguru_logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk out of the logging module so loguru reports the real caller
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back  # type: ignore
            depth += 1

        custom_logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _add_sinks(min_level: str) -> None:
    custom_logger.add(sys.stdout, format=io_log_format, level=min_level, enqueue=True)
    if not settings.LOG_DIR:
        return
    # Hourly files, e.g. logs/2025-06-01_08.log
    started = datetime.now(timezone.utc).strftime('%Y-%m-%d_%H')
    custom_logger.add(
        Path(settings.LOG_DIR) / f'{started}.log',
        format=io_log_format,
        rotation='1 hour',
        retention='7 days',
        compression='gz',
        enqueue=True,
        level=min_level,
    )


loguru_logger.remove()
custom_logger = loguru_logger.bind(**DEFAULT_EXTRA)
_add_sinks('DEBUG' if settings.DEBUG else 'INFO')

logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
