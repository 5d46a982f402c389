"""Intermediate representation of an oomd configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List

logger = logging.getLogger(__name__)


@dataclass
class Plugin:
    name: str = ""
    args: Dict[str, str] = field(default_factory=dict)


@dataclass
class Detector(Plugin):
    pass


@dataclass
class Action(Plugin):
    pass


@dataclass
class PrekillHook(Plugin):
    pass


@dataclass
class DetectorGroup:
    name: str = ""
    detectors: List[Detector] = field(default_factory=list)


@dataclass
class DropIn:
    disable_on_drop_in: bool = False
    detectorgroups_enabled: bool = False
    actiongroup_enabled: bool = False


@dataclass
class Ruleset:
    name: str = ""
    dgs: List[DetectorGroup] = field(default_factory=list)
    acts: List[Action] = field(default_factory=list)
    dropin: DropIn = field(default_factory=DropIn)
    silence_logs: str = ""
    post_action_delay: str = ""
    prekill_hook_timeout: str = ""
    xattr_filter: str = ""
    cgroup: str = ""


@dataclass
class Root:
    rulesets: List[Ruleset] = field(default_factory=list)
    prekill_hooks: List[PrekillHook] = field(default_factory=list)


def _flag(value: bool) -> str:
    return "1" if value else "0"


def _plugin_lines(kind: str, plugin: Plugin, depth: int) -> List[tuple]:
    lines = [(depth, f"{kind}={plugin.name}"), (depth + 1, "Args=")]
    lines.extend((depth + 2, f"{k}={v}") for k, v in plugin.args.items())
    return lines


def format_ir(root: Root) -> str:
    """Render the IR as an indented, human readable tree."""
    lines: List[tuple] = [(0, f"{len(root.prekill_hooks)} PrekillHooks=")]
    for hook in root.prekill_hooks:
        lines.extend(_plugin_lines("Hook", hook, 1))

    lines.append((0, f"{len(root.rulesets)} Rulesets="))
    for ruleset in root.rulesets:
        lines.append((1, f"Ruleset={ruleset.name}"))
        lines.append((2, "DropIn="))
        lines.append((3, f"Detectors={_flag(ruleset.dropin.detectorgroups_enabled)}"))
        lines.append((3, f"Actions={_flag(ruleset.dropin.actiongroup_enabled)}"))
        lines.append((3, f"DisableOnDrop={_flag(ruleset.dropin.disable_on_drop_in)}"))
        lines.append((2, f"SilenceLogs={ruleset.silence_logs}"))
        lines.append((2, f"PostActionDelay={ruleset.post_action_delay}"))
        lines.append((2, f"PrekillHookTimeout={ruleset.prekill_hook_timeout}"))
        lines.append((2, f"XattrFilter={ruleset.xattr_filter}"))
        lines.append((2, f"Cgroup={ruleset.cgroup}"))
        for dg in ruleset.dgs:
            lines.append((2, f"DetectorGroup={dg.name}"))
            for detector in dg.detectors:
                lines.extend(_plugin_lines("Detector", detector, 3))
        for act in ruleset.acts:
            lines.extend(_plugin_lines("Action", act, 2))

    return "\n".join("  " * depth + text for depth, text in lines)


def dump_ir(root: Root) -> None:
    """Log the IR tree, one line per log record."""
    for line in format_ir(root).splitlines():
        logger.info("%s", line)