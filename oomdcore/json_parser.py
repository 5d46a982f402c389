"""Parse the JSON configuration language into the configuration IR."""

from __future__ import annotations

import json
from typing import Any, Iterable, Type, TypeVar

from .config_types import (
    Action,
    Detector,
    DetectorGroup,
    DropIn,
    Plugin,
    PrekillHook,
    Root,
    Ruleset,
    dump_ir,
)

P = TypeVar("P", bound=Plugin)


class ConfigParseError(ValueError):
    """Raised when a configuration document cannot be parsed."""


def _strip_comments(text: str) -> str:
    """Remove // and /* */ comments that are outside string literals."""
    out = []
    i = 0
    n = len(text)
    in_string = False
    while i < n:
        c = text[i]
        if in_string:
            out.append(c)
            if c == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if c == '"':
                in_string = False
            i += 1
            continue
        if c == '"':
            in_string = True
            out.append(c)
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            if end == -1:
                raise ConfigParseError("Unable to parse JSON: unterminated comment")
            out.append(" ")
            i = end + 2
        else:
            out.append(c)
            i += 1
    return "".join(out)


def _drop_trailing_commas(text: str) -> str:
    """Remove commas that directly precede a closing bracket or brace."""
    out = []
    n = len(text)
    in_string = False
    i = 0
    while i < n:
        c = text[i]
        if in_string:
            out.append(c)
            if c == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if c == '"':
                in_string = False
            i += 1
            continue
        if c == '"':
            in_string = True
        elif c == ",":
            j = i + 1
            while j < n and text[j].isspace():
                j += 1
            if j < n and text[j] in "}]":
                i += 1
                continue
        out.append(c)
        i += 1
    return "".join(out)


def _load_json(text: str) -> Any:
    cleaned = _drop_trailing_commas(_strip_comments(text)).lstrip("\ufeff").lstrip()
    try:
        value, _ = json.JSONDecoder().raw_decode(cleaned)
    except json.JSONDecodeError as exc:
        raise ConfigParseError(f"Unable to parse JSON: {exc}") from exc
    return value


def _format_real(value: float) -> str:
    text = format(value, ".17g")
    if "e" in text or "n" in text:
        return text
    if "." not in text:
        return text + ".0"
    text = text.rstrip("0")
    if text.endswith("."):
        text += "0"
    return text


def _as_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _format_real(value)
    raise ConfigParseError(f"Expected a scalar value, got {type(value).__name__}")


def _as_bool(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (bool, int, float)):
        return bool(value)
    raise ConfigParseError(f"Expected a boolean value, got {type(value).__name__}")


def _get(obj: Any, key: str, default: Any = None) -> Any:
    if obj is None:
        return default
    if not isinstance(obj, dict):
        raise ConfigParseError(f"Expected an object to look up {key!r}")
    return obj.get(key, default)


def _members(value: Any) -> Iterable[Any]:
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        return value.values()
    return ()


def _is_arg_value(value: Any) -> bool:
    return isinstance(value, (str, int, float, bool))


def _parse_plugin(cls: Type[P], plugin: Any) -> P:
    if not isinstance(plugin, dict):
        return cls()
    name = plugin.get("name")
    if not isinstance(name, str):
        return cls()

    parsed = cls(name=name)
    json_args = plugin.get("args")
    if not isinstance(json_args, dict):
        return parsed

    for key in sorted(json_args):
        value = json_args[key]
        if not _is_arg_value(value):
            return parsed
        parsed.args[key] = _as_string(value)
    return parsed


def _parse_detector_group(detector_group: Any) -> DetectorGroup:
    if not isinstance(detector_group, list):
        return DetectorGroup()
    group = DetectorGroup()
    for index, item in enumerate(detector_group):
        if index == 0 and isinstance(item, str):
            group.name = item
            continue
        group.detectors.append(_parse_plugin(Detector, item))
    return group


def _parse_drop_in(dropin: Any) -> DropIn:
    return DropIn(
        disable_on_drop_in=_as_bool(_get(dropin, "disable-on-drop-in", False)),
        detectorgroups_enabled=_as_bool(_get(dropin, "detectors", False)),
        actiongroup_enabled=_as_bool(_get(dropin, "actions", False)),
    )


def _parse_ruleset(ruleset: Any) -> Ruleset:
    return Ruleset(
        name=_as_string(_get(ruleset, "name", "")),
        dropin=_parse_drop_in(_get(ruleset, "drop-in")),
        silence_logs=_as_string(_get(ruleset, "silence-logs")),
        post_action_delay=_as_string(_get(ruleset, "post_action_delay")),
        prekill_hook_timeout=_as_string(_get(ruleset, "prekill_hook_timeout")),
        dgs=[_parse_detector_group(dg) for dg in _members(_get(ruleset, "detectors"))],
        acts=[_parse_plugin(Action, act) for act in _members(_get(ruleset, "actions"))],
        xattr_filter=_as_string(_get(ruleset, "xattr_filter")),
        cgroup=_as_string(_get(ruleset, "cgroup")),
    )


def parse_config(text: str) -> Root:
    """Parse a JSON configuration (comments allowed) into a Root.

    Raises ConfigParseError if the text is not valid JSON or its shape
    cannot be interpreted.
    """
    document = _load_json(text)
    root = Root(
        rulesets=[_parse_ruleset(rs) for rs in _members(_get(document, "rulesets"))],
        prekill_hooks=[
            _parse_plugin(PrekillHook, hook)
            for hook in _members(_get(document, "prekill_hooks"))
        ],
    )
    dump_ir(root)
    return root