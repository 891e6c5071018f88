"""Container label names, parsing and application onto objects.

Label formats:
  namespace.attribute
  namespace.target.attribute
  namespace.target.attribute.namespace2.attribute
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from godoxy import errors

WILDCARD_ALIAS = "*"

NS_PROXY = "proxy"
NS_HOMEPAGE = "homepage"

LABEL_ALIASES = NS_PROXY + ".aliases"
LABEL_EXCLUDE = NS_PROXY + ".exclude"
LABEL_IDLE_TIMEOUT = NS_PROXY + ".idle_timeout"
LABEL_WAKE_TIMEOUT = NS_PROXY + ".wake_timeout"
LABEL_STOP_METHOD = NS_PROXY + ".stop_method"
LABEL_STOP_TIMEOUT = NS_PROXY + ".stop_timeout"
LABEL_STOP_SIGNAL = NS_PROXY + ".stop_signal"

NestedLabelMap = Dict[str, Dict[str, Any]]

ERR_APPLY_TO_NIL = errors.new("label value is nil")
ERR_FIELD_NOT_EXIST = errors.new("field does not exist")


@dataclass
class Label:
    """A parsed label; ``value`` is a string or a nested Label."""

    namespace: str
    target: str = ""
    attribute: str = ""
    value: Any = None

    def __str__(self) -> str:
        if not self.attribute:
            return f"{self.namespace}.{self.target}"
        return f"{self.namespace}.{self.target}.{self.attribute}"


def parse_label(label: str, value: str) -> Label:
    """Split a dotted label name; parts after the third form a nested label."""
    parts = label.split(".")
    if len(parts) < 2:
        return Label(namespace=label, value=value)
    namespace, target, *rest = parts
    if not rest:
        return Label(namespace, target, target, value)
    if len(rest) == 1:
        return Label(namespace, target, rest[0], value)
    return Label(namespace, target, rest[0], parse_label(".".join(rest[1:]), value))


def _field_name(obj: Any, attribute: str) -> Optional[str]:
    if isinstance(obj, Mapping):
        return attribute
    if dataclasses.is_dataclass(obj):
        for f in dataclasses.fields(obj):
            if f.metadata.get("yaml", f.name) == attribute:
                return f.name
        return None
    return attribute if hasattr(obj, attribute) else None


def _get(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name)


def _set(obj: Any, name: str, value: Any) -> None:
    if isinstance(obj, MutableMapping):
        obj[name] = value
    else:
        setattr(obj, name, value)


def _field_factory(obj: Any, name: str) -> Callable[[], Any]:
    """How to create an unset field: its ``factory`` metadata, its default factory, or a dict."""
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        for f in dataclasses.fields(obj):
            if f.name != name:
                continue
            factory = f.metadata.get("factory")
            if callable(factory):
                return factory
            if f.default_factory is not dataclasses.MISSING:
                return f.default_factory
    return dict


def _apply(obj: Any, attribute: str, value: Any, label_str: str) -> None:
    if obj is None:
        raise ERR_APPLY_TO_NIL.subject(label_str)
    name = _field_name(obj, attribute)
    if name is None:
        raise ERR_FIELD_NOT_EXIST.subject(attribute).subject(label_str)
    if not isinstance(value, Label):
        _set(obj, name, value)
        return

    current = _get(obj, name)
    if current is None:
        current = _field_factory(obj, name)()
        _set(obj, name, current)
    if isinstance(current, MutableMapping):
        inner = current.get(value.namespace)
        if inner is None:
            inner = current[value.namespace] = {}
        inner[value.attribute] = value.value
        return
    _apply(current, value.namespace, value.value, label_str)


def apply_label(obj: Any, label: Label) -> None:
    """Set the field named by ``label.attribute`` on ``obj`` to the label value.

    A nested label goes into a mapping field as ``field[ns][attr] = value``,
    or into a sub-object field as ``field.ns = value``.
    """
    _apply(obj, label.attribute, label.value, str(label))