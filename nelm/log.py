"""Logging front-end used across the deployment engine."""

from __future__ import annotations

import contextlib
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, ContextManager, Iterator


def _render(message: str, args: tuple[Any, ...]) -> str:
    return message % args if args else message


class Logger(ABC):
    """Interface every logger of the engine implements."""

    @abstractmethod
    def trace(self, message: str, *args: Any) -> None:
        """Log a very detailed diagnostic message."""

    @abstractmethod
    def trace_struct(self, obj: Any, message: str, *args: Any) -> None:
        """Log a message followed by ``obj`` rendered as indented JSON."""

    @abstractmethod
    def debug(self, message: str, *args: Any) -> None:
        """Log a diagnostic message."""

    @abstractmethod
    def info(self, message: str, *args: Any) -> None:
        """Log an informational message."""

    @abstractmethod
    def warn(self, message: str, *args: Any) -> None:
        """Log a warning."""

    @abstractmethod
    def error(self, message: str, *args: Any) -> None:
        """Log an error."""

    @abstractmethod
    def info_block(self, message: str, *args: Any) -> ContextManager[None]:
        """Return a context manager that frames a block of output."""

    @abstractmethod
    def info_process(self, message: str, *args: Any) -> ContextManager[None]:
        """Return a context manager that reports the outcome of a process."""


class StandardLogger(Logger):
    """Logger that writes to a :mod:`logging` logger."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger if logger is not None else logging.getLogger("nelm")

    def trace(self, message: str, *args: Any) -> None:
        self._logger.debug(_render(message, args))

    def trace_struct(self, obj: Any, message: str, *args: Any) -> None:
        header = _render(message, args)
        try:
            body = json.dumps(obj, indent=2)
        except (TypeError, ValueError) as err:
            self.warn(
                "error marshaling object to json while tracing struct for %r: %s",
                header,
                err,
            )
            body = ""
        self._logger.debug(header + "\n" + body)

    def debug(self, message: str, *args: Any) -> None:
        self._logger.debug(_render(message, args))

    def info(self, message: str, *args: Any) -> None:
        self._logger.info(_render(message, args))

    def warn(self, message: str, *args: Any) -> None:
        self._logger.warning(_render(message, args))

    def error(self, message: str, *args: Any) -> None:
        self._logger.error(_render(message, args))

    def info_block(self, message: str, *args: Any) -> ContextManager[None]:
        return self._block(_render(message, args))

    def info_process(self, message: str, *args: Any) -> ContextManager[None]:
        return self._process(_render(message, args))

    @contextlib.contextmanager
    def _block(self, text: str) -> Iterator[None]:
        self._logger.info(text)
        yield

    @contextlib.contextmanager
    def _process(self, text: str) -> Iterator[None]:
        self._logger.info(text)
        try:
            yield
        except BaseException as err:
            self._logger.error("%s ... failed: %s", text, err)
            raise
        self._logger.info("%s ... done", text)


class NullLogger(Logger):
    """Logger that discards everything."""

    def trace(self, message: str, *args: Any) -> None:
        pass

    def trace_struct(self, obj: Any, message: str, *args: Any) -> None:
        pass

    def debug(self, message: str, *args: Any) -> None:
        pass

    def info(self, message: str, *args: Any) -> None:
        pass

    def warn(self, message: str, *args: Any) -> None:
        pass

    def error(self, message: str, *args: Any) -> None:
        pass

    def info_block(self, message: str, *args: Any) -> ContextManager[None]:
        return contextlib.nullcontext()

    def info_process(self, message: str, *args: Any) -> ContextManager[None]:
        return contextlib.nullcontext()


_state: dict[str, Logger] = {"default": StandardLogger()}


def get_default_logger() -> Logger:
    """Return the logger used by the engine."""
    return _state["default"]


def set_default_logger(logger: Logger) -> Logger:
    """Install ``logger`` as the engine's logger and return the previous one."""
    if not isinstance(logger, Logger):
        raise TypeError(f"expected a Logger, got {type(logger).__name__}")
    previous = _state["default"]
    _state["default"] = logger
    return previous