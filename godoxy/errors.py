"""Composable error values with subjects, nesting and multi-line rendering.

Errors here are immutable: every ``subject``/``with_extra``/``withf`` call
returns a new error and leaves the receiver untouched.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Iterable, List, Optional

SUBJECT_SEP = " > "

_HIGHLIGHT_RED = "\x1b[91m"
_RESET = "\x1b[0m"
_BULLET = "• "
_LOGGER_NAME = "godoxy"


def _format(fmt: str, args: tuple) -> str:
    return fmt % args if args else fmt


class _Message(Exception):
    """A plain error that compares equal to any other with the same text."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message

    def __eq__(self, other: object) -> bool:
        if isinstance(other, _Message):
            return self.message == other.message
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.message)


class _Formatted(Exception):
    """A formatted message that wraps any exceptions used as arguments."""

    def __init__(self, message: str, wrapped: Iterable[BaseException]) -> None:
        super().__init__(message)
        self.message = message
        self.wrapped = tuple(wrapped)

    def __str__(self) -> str:
        return self.message

    def unwrap(self) -> List[BaseException]:
        return list(self.wrapped)


def _errorf(fmt: str, args: tuple) -> _Formatted:
    wrapped = [arg for arg in args if isinstance(arg, BaseException)]
    return _Formatted(_format(fmt, args), wrapped)


def _unwrap(err: BaseException) -> List[BaseException]:
    unwrap = getattr(err, "unwrap", None)
    inner = unwrap() if callable(unwrap) else err.__cause__
    if inner is None:
        return []
    if isinstance(inner, (list, tuple)):
        return [e for e in inner if e is not None]
    return [inner]


def _is(err: BaseException, target: BaseException) -> bool:
    if err == target:
        return True
    matches = getattr(err, "matches", None)
    if callable(matches) and matches(target):
        return True
    return any(_is(inner, target) for inner in _unwrap(err))


def error_is(err: Optional[BaseException], target: Optional[BaseException]) -> bool:
    """Report whether ``target`` is ``err`` or anything ``err`` wraps."""
    if err is None or target is None:
        return err is target
    return _is(err, target)


class _Error(Exception):
    """Marker base of the composable error types."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r})"


class BaseError(_Error):
    """An immutable wrapper around a single error."""

    def __init__(self, err: BaseException) -> None:
        super().__init__()
        self.err = err

    def unwrap(self) -> BaseException:
        return self.err

    def matches(self, other: BaseException) -> bool:
        """Report whether the wrapped error is, or wraps, ``other``."""
        if isinstance(other, BaseError):
            return error_is(self.err, other.err)
        return error_is(self.err, other)

    def subject(self, subject: str) -> "BaseError":
        """Return a copy with ``subject`` prepended to the message."""
        return BaseError(prepend_subject(subject, self.err))

    def subjectf(self, fmt: str, *args: Any) -> "BaseError":
        """Return a copy with a formatted subject prepended."""
        return self.subject(_format(fmt, args))

    def with_extra(self, extra: Optional[BaseException]) -> "NestedError":
        """Return a nested error with ``extra`` as a sub-error."""
        return NestedError(self, [extra] if extra is not None else [])

    def withf(self, fmt: str, *args: Any) -> "NestedError":
        """Return a nested error with a formatted sub-error."""
        return NestedError(self, [_errorf(fmt, args)])

    def __str__(self) -> str:
        return str(self.err)


class NestedError(_Error):
    """An error with an optional headline and a list of sub-errors."""

    def __init__(
        self, err: Optional[BaseException], extras: Iterable[BaseException] = ()
    ) -> None:
        super().__init__()
        self.err = err
        self.extras = tuple(extras)

    def subject(self, subject: str) -> "NestedError":
        """Return a copy with ``subject`` prepended to the headline."""
        if self.err is None:
            return NestedError(_Message(subject), self.extras)
        return NestedError(prepend_subject(subject, self.err), self.extras)

    def subjectf(self, fmt: str, *args: Any) -> "NestedError":
        """Return a copy with a formatted subject prepended."""
        return self.subject(_format(fmt, args))

    def with_extra(self, extra: Optional[BaseException]) -> "NestedError":
        if extra is None:
            return NestedError(self.err, self.extras)
        return NestedError(self.err, (*self.extras, extra))

    def withf(self, fmt: str, *args: Any) -> "NestedError":
        extra = _errorf(fmt, args) if args else _Message(fmt)
        return NestedError(self.err, (*self.extras, extra))

    def unwrap(self) -> Optional[List[BaseException]]:
        if self.err is None:
            return list(self.extras) or None
        return [self.err, *self.extras]

    def matches(self, other: BaseException) -> bool:
        if error_is(self.err, other):
            return True
        return any(error_is(e, other) for e in self.extras)

    def __str__(self) -> str:
        return _render(self, 0)


class SubjectError(Exception):
    """An error prefixed by one or more subjects separated by ``" > "``."""

    def __init__(self, subject: str, err: BaseException) -> None:
        super().__init__()
        self.subject = subject
        self.err = err

    def prepend(self, subject: str) -> "SubjectError":
        """Return a copy with ``subject`` placed in front of the current ones."""
        if not subject:
            return SubjectError(self.subject, self.err)
        return SubjectError(subject + SUBJECT_SEP + self.subject, self.err)

    def matches(self, other: BaseException) -> bool:
        return self.err == other

    def unwrap(self) -> BaseException:
        return self.err

    def __str__(self) -> str:
        *outer, last = self.subject.split(SUBJECT_SEP)
        subjects = [*outer, _HIGHLIGHT_RED + last + _RESET]
        return SUBJECT_SEP.join(subjects) + ": " + str(self.err)

    def __repr__(self) -> str:
        return f"SubjectError({self.subject!r}, {self.err!r})"


def _line(text: str, level: int) -> str:
    if level == 0:
        return text
    return "  " * level + _BULLET + text


def _lines(errs: Iterable[BaseException], level: int) -> List[str]:
    lines: List[str] = []
    for err in errs:
        if isinstance(err, NestedError):
            if err.err is not None:
                lines.append(_line(str(err.err), level))
            lines.extend(_lines(err.extras, level + 1))
        else:
            lines.append(_line(str(err), level))
    return lines


def _render(err: Optional[BaseException], level: int) -> str:
    if err is None:
        return _line("<nil>", level)
    if isinstance(err, NestedError):
        lines = []
        if err.err is not None:
            lines.append(_line(str(err.err), level))
        lines.extend(_lines(err.extras, level + 1))
        return "\n".join(lines)
    return _line(str(err), level)


def prepend_subject(subject: str, err: Optional[BaseException]) -> Optional[BaseException]:
    """Attach ``subject`` in front of whatever subject ``err`` already has."""
    if err is None:
        return None
    if isinstance(err, SubjectError):
        return err.prepend(subject)
    if isinstance(err, (BaseError, NestedError)):
        return err.subject(subject)
    return SubjectError(subject, err)


def new(message: str) -> Optional[BaseError]:
    """Create an error from a message; an empty message gives ``None``."""
    if not message:
        return None
    return BaseError(_Message(message))


def errorf(fmt: str, *args: Any) -> BaseError:
    """Create an error from a %-format; exception arguments are wrapped."""
    return BaseError(_errorf(fmt, args))


def wrap(err: Optional[BaseException]) -> Optional[_Error]:
    """Turn any exception into a composable error, leaving those as they are."""
    if err is None:
        return None
    if isinstance(err, _Error):
        return err
    return BaseError(err)


def join(*args: Optional[BaseException]) -> Optional[NestedError]:
    """Group the non-``None`` errors under no headline."""
    errs = [err for err in args if err is not None]
    if not errs:
        return None
    return NestedError(None, errs)


class Builder:
    """Thread-safe collector of errors under a common headline."""

    def __init__(self, about: str) -> None:
        self._about = about
        self._errs: List[BaseException] = []
        self._lock = threading.Lock()

    def about(self) -> str:
        return self._about if self.has_error() else ""

    def has_error(self) -> bool:
        return bool(self._errs)

    def _error(self) -> Optional[NestedError]:
        if not self._errs:
            return None
        return NestedError(new(self._about), list(self._errs))

    def error(self) -> Optional[_Error]:
        """The collected error, or ``None`` if nothing was added."""
        if len(self._errs) == 1:
            return wrap(self._errs[0])
        return self._error()

    def __str__(self) -> str:
        err = self._error()
        return "" if err is None else str(err)

    def add(self, err: Optional[BaseException]) -> "Builder":
        """Add an error; ``None`` is ignored."""
        if err is None:
            return self
        with self._lock:
            if isinstance(err, BaseError):
                self._errs.append(err.err)
            elif isinstance(err, NestedError) and err.err is None:
                self._errs.extend(err.extras)
            else:
                self._errs.append(err)
        return self

    def adds(self, message: str) -> "Builder":
        with self._lock:
            self._errs.append(_Message(message))
        return self

    def addf(self, fmt: str, *args: Any) -> "Builder":
        if not args:
            return self.adds(fmt)
        with self._lock:
            self._errs.append(_errorf(fmt, args))
        return self

    def add_from(self, other: Optional["Builder"], flatten: bool) -> "Builder":
        """Add another builder's errors, flattened or as one nested error."""
        if other is None or not other.has_error():
            return self
        extra = list(other._errs) if flatten else [other._error()]
        with self._lock:
            self._errs.extend(extra)
        return self

    def add_range(self, *args: Optional[BaseException]) -> "Builder":
        with self._lock:
            self._errs.extend(err for err in args if err is not None)
        return self


def collect(builder: Builder, fn: Callable[..., Any], *args: Any) -> Any:
    """Call ``fn``; on failure record the exception and return ``None``."""
    try:
        return fn(*args)
    except Exception as exc:
        builder.add(exc)
        return None


def _get_logger(logger: Optional[logging.Logger]) -> logging.Logger:
    return logger if logger is not None else logging.getLogger(_LOGGER_NAME)


def log_fatal(msg: str, err: BaseException, logger: Optional[logging.Logger] = None) -> None:
    """Log the error text at critical level and exit; ``msg`` is context only."""
    _get_logger(logger).critical(str(err))
    raise SystemExit(1)


def log_error(msg: str, err: BaseException, logger: Optional[logging.Logger] = None) -> None:
    _get_logger(logger).error(str(err))


def log_warn(msg: str, err: BaseException, logger: Optional[logging.Logger] = None) -> None:
    _get_logger(logger).warning(str(err))


def log_info(msg: str, err: BaseException, logger: Optional[logging.Logger] = None) -> None:
    _get_logger(logger).info(str(err))


def log_debug(msg: str, err: BaseException, logger: Optional[logging.Logger] = None) -> None:
    _get_logger(logger).debug(str(err))