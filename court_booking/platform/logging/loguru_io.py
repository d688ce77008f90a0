from collections.abc import Awaitable
from functools import wraps
from inspect import iscoroutinefunction
import types
from typing import TYPE_CHECKING, Any, Callable, ParamSpec, TypeVar, cast, overload


if TYPE_CHECKING:
    from loguru import Logger as LoguruLogger

from court_booking.platform.config.core_setting import settings
from court_booking.platform.exception.exceptions import CustomBaseError
from court_booking.platform.logging.loguru_io_config import (
    ExtraField,
    call_depth_var,
    custom_logger,
)
from court_booking.platform.logging.loguru_io_utils import (
    build_call_target_func_path,
    get_chain_start_time,
    mask_sensitive,
    normalize_args_kwargs,
    reset_call_depth,
    should_mask_keyword,
    truncate_content,
)


_F = TypeVar('_F', bound=Callable[..., Any])

# Keyword arguments echoed on failure lines so a failed call can be traced to its booking
_CONTEXT_KWARGS = ('booking_id', 'owner_id', 'actor_id')


class LoguruIO:
    """
    Decorator that logs the inputs, output and failure of a function call.

    Arguments and return values are only rendered when DEBUG is on.
    Exceptions are logged once, at the innermost decorated frame they cross:
    CustomBaseError subclasses at ERROR without a traceback, anything else
    with a traceback. The exception is then re-raised unless reraise=False.
    """

    def __init__(
        self, custom_logger: 'LoguruLogger', *, reraise: bool = True, truncate_content: bool = False
    ) -> None:
        self._custom_logger = custom_logger
        self.reraise = reraise
        self.truncate_content = truncate_content
        self.extra: dict[str, Any] = {}
        self.depth = 2  # skip the wrapper frames

    def _bound(self) -> 'LoguruLogger':
        return self._custom_logger.bind(**self.extra).opt(depth=self.depth)

    def _enter(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> None:
        call_depth_var.set(call_depth_var.get() + 1)
        self.extra[ExtraField.CHAIN_START_TIME] = get_chain_start_time()
        if settings.DEBUG:
            self._bound().debug(
                f'args: {self.mask_sensitive(args)}, kwargs: {self.mask_sensitive(kwargs)}'
            )

    def _leave(self, return_value: Any) -> Any:
        if settings.DEBUG:
            self._bound().debug(f'return: {self.mask_sensitive(return_value)}')
        return return_value

    def _fail(self, e: Exception, kwargs: dict[str, Any]) -> None:
        if getattr(e, '_has_logged', False):
            return
        e._has_logged = True  # type: ignore[attr-defined]

        context = ', '.join(f'{key}={kwargs[key]}' for key in _CONTEXT_KWARGS if key in kwargs)
        message = f'{type(e).__name__}: {e}' + (f' ({context})' if context else '')
        if isinstance(e, CustomBaseError):
            self._bound().error(message)
        else:
            self._bound().exception(message)

    def _hide_from_traceback(self, func: Callable[..., Any]) -> Callable[..., Any]:
        func.__code__ = func.__code__.replace(  # type: ignore[attr-defined]
            co_filename=cast(types.FunctionType, self._custom_logger.catch).__code__.co_filename
        )
        return func

    def mask_sensitive(self, data: Any) -> Any:
        if isinstance(data, dict):
            masked: Any = {
                key: self.mask_sensitive(should_mask_keyword(key, value))
                for key, value in data.items()
            }
        elif isinstance(data, list | tuple):
            masked = type(data)(self.mask_sensitive(item) for item in data)
        else:
            masked = mask_sensitive(data)
        return truncate_content(masked) if self.truncate_content else masked

    def __call__(self, func: _F) -> _F:
        self.extra[ExtraField.CALL_TARGET] = build_call_target_func_path(func)

        if iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                try:
                    self._enter(args, kwargs)
                    call_args, call_kwargs = normalize_args_kwargs(func, *args, **kwargs)
                    return self._leave(
                        await cast(Awaitable[Any], func(*call_args, **call_kwargs))
                    )
                except Exception as e:
                    self._fail(e, kwargs)
                    if self.reraise:
                        raise
                    return None
                finally:
                    reset_call_depth()

            return cast(_F, self._hide_from_traceback(async_wrapper))

        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                self._enter(args, kwargs)
                call_args, call_kwargs = normalize_args_kwargs(func, *args, **kwargs)
                return self._leave(func(*call_args, **call_kwargs))
            except Exception as e:
                self._fail(e, kwargs)
                if self.reraise:
                    raise
                return None
            finally:
                reset_call_depth()

        return cast(_F, self._hide_from_traceback(sync_wrapper))


_P = ParamSpec('_P')
_T = TypeVar('_T')


class Logger:
    """
    Logger.base   - the bound loguru logger for ad-hoc lines
    Logger.io     - call logging decorator, bare or with options:

        @Logger.io
        async def accept_booking(...): ...

        @Logger.io(reraise=False)
        def best_effort(...): ...
    """

    base = custom_logger

    @overload
    @staticmethod
    def io(func: Callable[_P, _T]) -> Callable[_P, _T]: ...

    @overload
    @staticmethod
    def io(func: None = ..., *, reraise: bool = ..., truncate_content: bool = ...) -> LoguruIO: ...

    @staticmethod
    def io(
        func: Callable[_P, _T] | None = None, *, reraise: bool = True, truncate_content: bool = True
    ) -> Callable[_P, _T] | LoguruIO:
        decorator = LoguruIO(
            custom_logger=custom_logger, reraise=reraise, truncate_content=truncate_content
        )
        return decorator(func) if func else decorator
