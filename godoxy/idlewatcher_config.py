"""Idle-watcher settings taken from container labels, with validation."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from fractions import Fraction
from typing import Optional

from godoxy import errors
from godoxy.docker_container import Container


class StopMethod(str, Enum):
    """How an idle container is put to sleep."""

    PAUSE = "pause"
    STOP = "stop"
    KILL = "kill"


VALID_SIGNALS = frozenset(
    {"", "SIGINT", "SIGTERM", "SIGHUP", "SIGQUIT", "INT", "TERM", "HUP", "QUIT"}
)

_NANOSECONDS = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,
    "\u03bcs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}

_MAX_NANOSECONDS = 2**63 - 1

_COMPONENT = re.compile(r"(\d*)(?:\.(\d*))?([^\d.]*)")


@dataclass
class IdlewatcherConfig:
    idle_timeout: timedelta = timedelta(0)
    wake_timeout: timedelta = timedelta(0)
    stop_timeout: int = 0  # whole seconds
    stop_method: Optional[StopMethod] = None
    stop_signal: str = ""
    docker_host: str = ""
    container_name: str = ""
    container_id: str = ""
    container_running: bool = False


def parse_duration(value: str) -> timedelta:
    """Parse a duration such as ``"1h30m"``, ``"1.5s"`` or ``"-300ms"``."""
    quoted = json.dumps(value, ensure_ascii=False)
    text = value
    negative = False
    if text and text[0] in "+-":
        negative = text[0] == "-"
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not text:
        raise ValueError(f"time: invalid duration {quoted}")

    total = Fraction(0)
    pos = 0
    while pos < len(text):
        match = _COMPONENT.match(text, pos)
        whole, frac, unit = match.group(1), match.group(2) or "", match.group(3)
        if not whole and not frac:
            raise ValueError(f"time: invalid duration {quoted}")
        if not unit:
            raise ValueError(f"time: missing unit in duration {quoted}")
        if unit not in _NANOSECONDS:
            raise ValueError(
                f"time: unknown unit {json.dumps(unit, ensure_ascii=False)} in duration {quoted}"
            )
        amount = Fraction(int(whole or "0"))
        if frac:
            amount += Fraction(int(frac), 10 ** len(frac))
        total += amount * _NANOSECONDS[unit]
        pos = match.end()

    if total > _MAX_NANOSECONDS:
        raise ValueError(f"time: invalid duration {quoted}")
    microseconds = total / 1000
    return timedelta(microseconds=float(-microseconds if negative else microseconds))


def _validate_duration_positive(value: str) -> timedelta:
    duration = parse_duration(value)
    if duration < timedelta(0):
        raise ValueError("duration must be positive")
    return duration


def _validate_signal(value: str) -> str:
    if value in VALID_SIGNALS:
        return value
    raise ValueError("invalid signal " + value)


def _validate_stop_method(value: str) -> StopMethod:
    try:
        return StopMethod(value)
    except ValueError:
        raise ValueError("invalid stop method " + value) from None


def validate_config(container: Optional[Container]) -> Optional[IdlewatcherConfig]:
    """Build the idle-watcher config of a container.

    A container without an idle timeout gets a config with only its identity
    filled in. Invalid settings raise one error listing every problem.
    """
    if container is None:
        return None

    if not container.idle_timeout:
        return IdlewatcherConfig(
            docker_host=container.docker_host,
            container_name=container.container_name,
            container_id=container.container_id,
            container_running=container.running,
        )

    errs = errors.Builder("invalid idlewatcher config")
    idle_timeout = errors.collect(errs, _validate_duration_positive, container.idle_timeout)
    wake_timeout = errors.collect(errs, _validate_duration_positive, container.wake_timeout)
    stop_timeout = errors.collect(errs, _validate_duration_positive, container.stop_timeout)
    stop_method = errors.collect(errs, _validate_stop_method, container.stop_method)
    stop_signal = errors.collect(errs, _validate_signal, container.stop_signal)

    if errs.has_error():
        raise errs.error()

    return IdlewatcherConfig(
        idle_timeout=idle_timeout,
        wake_timeout=wake_timeout,
        stop_timeout=int(stop_timeout.total_seconds()),
        stop_method=stop_method,
        stop_signal=stop_signal,
        docker_host=container.docker_host,
        container_name=container.container_name,
        container_id=container.container_id,
        container_running=container.running,
    )