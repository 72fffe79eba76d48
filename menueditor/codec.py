"""
Conversion between the editor's JSON wire format and the YAML menu.yml format.

The two grammars only share a tree shape, so a value that is fine in JSON may
not survive YAML (reserved characters, numbers that look like strings). The
only proof is a reparse: ``verify_round_trip`` must pass before encoded bytes
are allowed to replace the live document.

Menus may nest up to ``MAX_DEPTH`` submenu levels. The JSON parser, the YAML
dumper and loader, and model validation all recurse once per level, so deeper
trees are rejected with a DecodeError naming the limit.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import yaml
from pydantic import ValidationError

from .errors import DecodeError
from .models import MenuDocument

logger = logging.getLogger(__name__)

INDENT = 4

# Deepest submenu level accepted; top-level items are level 0.
MAX_DEPTH = 64
# Raw JSON container nesting: two per menu level plus room for metadata values.
MAX_JSON_NESTING = 2 * MAX_DEPTH + 16


def _too_deep(source: str) -> DecodeError:
    return DecodeError(f"{source}: menus may nest at most {MAX_DEPTH} submenu levels")


def _json_nesting_exceeds(text: str, limit: int) -> bool:
    """Scan JSON text without parsing it; true once brackets nest deeper than ``limit``."""
    depth = 0
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch in "[{":
            depth += 1
            if depth > limit:
                return True
        elif ch in "]}":
            depth -= 1
    return False


def _validate(tree: Any, *, source: str) -> MenuDocument:
    if not isinstance(tree, dict):
        raise DecodeError(f"{source}: expected an object of menus, got {type(tree).__name__}")
    try:
        doc = MenuDocument.model_validate(tree)
    except RecursionError as e:
        raise _too_deep(source) from e
    except ValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(p) for p in first.get("loc", ()))
        raise DecodeError(f"{source}: invalid menu at {where or '<root>'}: {first.get('msg')}") from e
    if doc.depth() > MAX_DEPTH:
        raise _too_deep(source)
    return doc


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-finite number {name} is not allowed")


def decode_wire(raw: str | bytes) -> MenuDocument:
    """Parse the JSON ``menus`` payload. Anything short of a complete menu tree is rejected."""
    try:
        text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        if _json_nesting_exceeds(text, MAX_JSON_NESTING):
            raise _too_deep("wire payload")
        tree = json.loads(text, parse_constant=_reject_constant)
    except RecursionError as e:
        raise _too_deep("wire payload") from e
    except (ValueError, TypeError) as e:
        # json.JSONDecodeError and UnicodeDecodeError are both ValueErrors.
        raise DecodeError(f"wire payload is not valid JSON: {e}") from e
    return _validate(tree, source="wire payload")


def encode_wire(doc: MenuDocument, *, indent: int | None = None) -> str:
    return json.dumps(doc.to_config(), ensure_ascii=False, indent=indent)


def encode_config(doc: MenuDocument) -> bytes:
    text = yaml.safe_dump(
        doc.to_config(),
        indent=INDENT,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
        width=float("inf"),
    )
    return text.encode("utf-8")


def _parse_config(encoded: bytes) -> Any:
    return yaml.safe_load(encoded.decode("utf-8"))


def decode_config(encoded: bytes) -> MenuDocument:
    try:
        tree = _parse_config(encoded)
    except RecursionError as e:
        raise _too_deep("menu configuration") from e
    except (yaml.YAMLError, UnicodeDecodeError) as e:
        raise DecodeError(f"menu configuration is not valid YAML: {e}") from e
    if tree is None:
        return MenuDocument({})
    return _validate(tree, source="menu configuration")


def verify_round_trip(encoded: bytes, expected: MenuDocument | None = None) -> bool:
    """
    Reparse freshly encoded bytes with the YAML parser.

    With ``expected``, the reparsed tree must also equal it.
    """
    try:
        tree = _parse_config(encoded)
    except (yaml.YAMLError, UnicodeDecodeError, RecursionError) as e:
        logger.error("ROUND TRIP: encoded menu does not reparse: %r", e)
        return False
    if expected is not None and tree != expected.to_config():
        logger.error("ROUND TRIP: reparsed menu differs from the submitted tree")
        return False
    return True
