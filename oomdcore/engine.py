"""The engine: runs every ruleset and its drop ins, and routes prekill hooks."""

from __future__ import annotations

import logging
from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Deque, List, Optional, Sequence

from .cgroup_path import CgroupPath
from .plugin import PrekillHook, PrekillHookInvocation, RunContext
from .ruleset import Ruleset
from .types import CoreStats

logger = logging.getLogger(__name__)


@dataclass
class DropInUnit:
    """Compiled drop in config: rulesets to inject and prekill hooks to add."""

    prekill_hooks: List[PrekillHook] = field(default_factory=list)
    rulesets: List[Ruleset] = field(default_factory=list)


@dataclass
class _DropInRuleset:
    tag: str
    ruleset: Ruleset


@dataclass
class _BaseRuleset:
    ruleset: Ruleset
    dropins: Deque[_DropInRuleset] = field(default_factory=deque)


@dataclass
class _TaggedPrekillHook:
    dropin_tag: Optional[str]
    hook: PrekillHook


class Engine:
    """Holds the base rulesets, their drop ins and the prekill hooks."""

    def __init__(
        self,
        rulesets: Sequence[Optional[Ruleset]],
        prekill_hooks: Sequence[PrekillHook],
    ) -> None:
        self._rulesets: List[_BaseRuleset] = [
            _BaseRuleset(ruleset=rs) for rs in rulesets if rs is not None
        ]
        # Kept in the order they are tried: most recent drop ins first,
        # then the base config hooks in config order.
        self._prekill_hooks: List[_TaggedPrekillHook] = [
            _TaggedPrekillHook(dropin_tag=None, hook=hook) for hook in prekill_hooks
        ]
        self.stats: Counter = Counter()

    def add_drop_in_config(self, tag: str, unit: DropInUnit) -> bool:
        """Inject a compiled drop in under tag.

        Returns False, with nothing of the drop in left behind, if any of its
        rulesets has no target.
        """
        for ruleset in unit.rulesets:
            if not self.add_drop_in_ruleset(tag, ruleset):
                self.remove_drop_in_config(tag)
                return False

        self._prekill_hooks[0:0] = [
            _TaggedPrekillHook(dropin_tag=tag, hook=hook) for hook in unit.prekill_hooks
        ]
        return True

    def add_drop_in_ruleset(self, tag: str, ruleset: Optional[Ruleset]) -> bool:
        """Add a drop in ruleset in front of the base ruleset of the same name."""
        if ruleset is None:
            return False

        base = next((b for b in self._rulesets if b.ruleset.name == ruleset.name), None)
        if base is None:
            logger.error("Error: could not locate targeted ruleset: %s", ruleset.name)
            return False

        # Drop ins run in LIFO order.
        base.dropins.appendleft(_DropInRuleset(tag=tag, ruleset=ruleset))
        base.ruleset.mark_drop_in_targeted()
        self.stats[CoreStats.NUM_DROP_IN_ADDS] += 1
        return True

    def remove_drop_in_config(self, tag: str) -> None:
        """Remove every ruleset and prekill hook added under tag."""
        for base in self._rulesets:
            kept = deque(d for d in base.dropins if d.tag != tag)
            removed = len(base.dropins) - len(kept)
            if not removed:
                continue
            base.dropins = kept
            for _ in range(removed):
                base.ruleset.mark_drop_in_untargeted()
            self.stats[CoreStats.NUM_DROP_IN_ADDS] -= removed

        self._prekill_hooks = [
            tagged for tagged in self._prekill_hooks if tagged.dropin_tag != tag
        ]

    def prerun(self, context: RunContext) -> None:
        for base in self._rulesets:
            for dropin in base.dropins:
                dropin.ruleset.prerun(context)
            base.ruleset.prerun(context)

    def run_once(self, context: RunContext) -> None:
        """Run every ruleset once, each one's drop ins before the base."""
        dropins_run = 0
        for base in self._rulesets:
            for dropin in list(base.dropins):
                dropins_run += dropin.ruleset.run_once(context)
            base.ruleset.run_once(context)
        self.stats[CoreStats.NUM_DROP_IN_FIRED] += dropins_run

    def fire_prekill_hook(
        self, cgroup: CgroupPath, context: RunContext
    ) -> Optional[PrekillHookInvocation]:
        """Fire the first hook that applies to cgroup; None if none applies."""
        for tagged in self._prekill_hooks:
            if tagged.hook.can_run_on_cgroup(cgroup):
                return tagged.hook.fire(cgroup, context.action_context)
        return None