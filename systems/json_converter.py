"""cattrs converter configuration for JSON output.

Configures cattrs to serialize runs, model issues and links to JSON with
camelCase keys. Output only: models are never persisted.
"""

from __future__ import annotations

import json
import math
from dataclasses import MISSING, fields
from enum import IntEnum
from typing import Any, Callable, Union

import cattrs

from .analysis import Link, LinkKind
from .errors import ErrorCode
from .rates import FlowKind
from .run import Run
from .types import ModelIssue, RunSpec


def _to_camel_case(snake_str: str) -> str:
    """Convert a snake_case string to camelCase."""
    components = snake_str.split("_")
    return components[0] + "".join(x.title() for x in components[1:])


def _make_omit_default_hook(
    cls: type,
    conv: cattrs.Converter,
    required_fields: set[str] | None = None,
) -> Callable[[Any], dict[str, Any]]:
    """Create an unstructure hook that omits fields equal to their defaults.

    Output field names are converted from snake_case to camelCase for JSON.

    Args:
        cls: The dataclass type
        conv: The cattrs converter
        required_fields: Set of field names that must always be included (even if default)
    """
    if required_fields is None:
        required_fields = set()

    _NO_DEFAULT = object()

    # (python_name, json_name, default, is_required)
    field_info: list[tuple[str, str, Any, bool]] = []
    for fld in fields(cls):
        if fld.default is not MISSING:
            default = fld.default
        elif fld.default_factory is not MISSING:
            default = fld.default_factory()
        else:
            default = _NO_DEFAULT

        field_info.append((fld.name, _to_camel_case(fld.name), default, fld.name in required_fields))

    def unstructure(obj: Any) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for py_name, json_name, default, is_required in field_info:
            val = getattr(obj, py_name)
            if is_required or default is _NO_DEFAULT or val != default:
                result[json_name] = conv.unstructure(val)
        return result

    return unstructure


def _unstructure_value(value: float) -> Union[float, int, str]:
    """JSON has no infinity or NaN, so non-finite values become strings."""
    if math.isnan(value):
        return "nan"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if value.is_integer():
        return int(value)
    return value


def _create_converter() -> cattrs.Converter:
    """Create and configure a cattrs converter for JSON serialization."""
    conv = cattrs.Converter()

    conv.register_unstructure_hook(float, _unstructure_value)

    # Enums are written by name, lowercased
    def unstructure_enum(value: IntEnum) -> str:
        return value.name.lower()

    for enum_cls in (ErrorCode, LinkKind, FlowKind):
        conv.register_unstructure_hook(enum_cls, unstructure_enum)

    def unstructure_link(link: Link) -> dict[str, Any]:
        return {
            "from": link.from_var,
            "to": link.to_var,
            "kind": conv.unstructure(link.kind),
        }

    conv.register_unstructure_hook(Link, unstructure_link)

    def unstructure_run(run: Run) -> dict[str, Any]:
        return {
            "columns": list(run.columns),
            "rounds": run.rounds,
            "snapshots": [
                {name: _unstructure_value(value) for name, value in snapshot.items()}
                for snapshot in run.snapshots
            ],
        }

    conv.register_unstructure_hook(Run, unstructure_run)

    type_required_fields: dict[type, set[str]] = {
        ModelIssue: {"severity", "message"},
        RunSpec: set(),
    }

    for cls, required in type_required_fields.items():
        conv.register_unstructure_hook(cls, _make_omit_default_hook(cls, conv, required))

    return conv


# Global converter instance
converter: cattrs.Converter = _create_converter()


def to_json(obj: Any, indent: int | None = 2) -> str:
    """Serialize a run, issue, link, or a list of them, to a JSON string."""
    return json.dumps(converter.unstructure(obj), indent=indent)
