"""A ruleset: detector groups that, when one fires, start an action chain."""

from __future__ import annotations

import errno
import logging
import os
import time
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .cgroup_path import CgroupPath
from .detector_group import DetectorGroup, _plugin_logs
from .plugin import (
    ActionContext,
    BasePlugin,
    PluginConstructionContext,
    PluginRet,
    RunContext,
    plugin_registry,
)
from .types import LogSources

logger = logging.getLogger(__name__)

DEFAULT_POST_ACTION_DELAY = 15
DEFAULT_PREKILL_HOOK_TIMEOUT = 5

_listxattr = getattr(os, "listxattr", None)


def _has_xattr(path: str, attr: str) -> bool:
    """Whether the file at path carries the extended attribute attr."""
    if _listxattr is None:
        raise OSError(errno.ENOTSUP, "extended attributes are not supported")
    return attr in _listxattr(path)


@dataclass
class _AsyncActionChainState:
    active_plugin: BasePlugin
    action_context: ActionContext


class Ruleset:
    """Detector groups plus an action chain run when any group fires.

    A ruleset with a cgroup pattern runs a separate copy of itself for every
    existing cgroup the pattern resolves to.
    """

    def __init__(
        self,
        name: str,
        detector_groups: Sequence[DetectorGroup],
        action_group: Sequence[BasePlugin],
        disable_on_drop_in: bool = False,
        detectorgroups_dropin_enabled: bool = False,
        actiongroup_dropin_enabled: bool = False,
        silenced_logs: int = 0,
        post_action_delay: int = DEFAULT_POST_ACTION_DELAY,
        prekill_hook_timeout: int = DEFAULT_PREKILL_HOOK_TIMEOUT,
        xattr_filter: str = "",
        cgroup: Optional[CgroupPath] = None,
    ) -> None:
        self.name = name
        self._detector_groups: List[DetectorGroup] = list(detector_groups)
        self._action_group: List[BasePlugin] = list(action_group)
        self._disable_on_drop_in = disable_on_drop_in
        self._detectorgroups_dropin_enabled = detectorgroups_dropin_enabled
        self._actiongroup_dropin_enabled = actiongroup_dropin_enabled
        self._silenced_logs = int(silenced_logs)
        self._post_action_delay = post_action_delay
        self._prekill_hook_timeout = prekill_hook_timeout
        self._xattr_filter = xattr_filter
        self._cgroup = cgroup
        self._enabled = True
        self._num_targeted = 0
        self._runnable_rulesets: Dict[str, Ruleset] = {}
        self._active_chain: Optional[_AsyncActionChainState] = None
        self._pause_actions_until = float("-inf")
        self._plugin_overrode_post_action_delay = False

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def cgroup(self) -> Optional[CgroupPath]:
        return self._cgroup

    def _engine_logs(self) -> bool:
        return not self._silenced_logs & LogSources.ENGINE

    def merge_with_drop_in(self, ruleset: Optional[Ruleset]) -> bool:
        """Take the drop in's detector groups and actions where it has any.

        Returns False if the drop in overrides a part that does not accept
        drop ins.
        """
        if ruleset is None:
            logger.error("Error: merging with null ruleset")
            return False

        if ruleset._detector_groups:
            if not self._detectorgroups_dropin_enabled:
                logger.error("Error: DetectorGroup drop-in configs disabled")
                return False
            self._detector_groups = ruleset._detector_groups

        if ruleset._action_group:
            if not self._actiongroup_dropin_enabled:
                logger.error("Error: Action drop-in configs disabled")
                return False
            self._action_group = ruleset._action_group

        return True

    def mark_drop_in_targeted(self) -> None:
        self._num_targeted += 1
        if self._disable_on_drop_in and self._num_targeted:
            self._enabled = False

    def mark_drop_in_untargeted(self) -> None:
        self._num_targeted -= 1
        if self._num_targeted <= 0:
            self._enabled = True

    def prerun(self, context: RunContext) -> None:
        if not self._enabled:
            return
        for dg in self._detector_groups:
            dg.prerun(context)
        for action in self._action_group:
            action.prerun(context)

    def run_once(self, context: RunContext) -> int:
        """Run the detector groups and, if one fires, the action chain.

        Returns 1 if an action chain was run to its end, 0 otherwise.
        """
        if not self._enabled:
            return 0
        if self._cgroup is None:
            return self._run_once_impl(context)

        visited = set()
        ret = 0
        for cgroup in self._cgroup.resolve_wildcard():
            path = cgroup.absolute_path()
            if not os.path.isdir(path):
                continue
            if self._xattr_filter:
                try:
                    has_xattr = _has_xattr(path, self._xattr_filter)
                except OSError as exc:
                    logger.warning(
                        "Failed to fetch xattr: %s for cgroup: %s. Error: %s",
                        self._xattr_filter,
                        path,
                        exc,
                    )
                    continue
                if not has_xattr:
                    continue
            runnable = self._runnable_rulesets.get(path)
            if runnable is None:
                logger.info("Adding runnable ruleset for cgroup: %s", path)
                runnable = self._register_runnable_ruleset(context, cgroup)
            context.ruleset_cgroup = cgroup
            ret = runnable._run_once_impl(context)
            visited.add(path)

        for path in list(self._runnable_rulesets):
            if path not in visited:
                logger.info("Dropping runnable ruleset for cgroup: %s", path)
                del self._runnable_rulesets[path]
        return ret

    def pause_actions(self, seconds: float) -> None:
        """Do not run the action chain for the next seconds, even if fired."""
        self._pause_actions_until = time.monotonic() + seconds
        self._plugin_overrode_post_action_delay = True

    def _run_once_impl(self, context: RunContext) -> int:
        # Every group is checked so that detectors with sliding windows update.
        run_actions = False
        for dg in self._detector_groups:
            if dg.check(context, self._silenced_logs) and not run_actions:
                run_actions = True
                context.action_context = ActionContext(
                    ruleset=self.name,
                    detectorgroup=dg.name,
                    action_uuid=str(uuid.uuid4()),
                    prekill_hook_timeout_ts=time.monotonic()
                    + self._prekill_hook_timeout,
                    cgroup=context.ruleset_cgroup,
                )
                context.invoking_ruleset = self

        try:
            return self._run_actions(context, run_actions)
        finally:
            context.action_context = ActionContext()
            context.invoking_ruleset = None
            context.ruleset_cgroup = None

    def _target_cgroup(self) -> str:
        return self._cgroup.absolute_path() if self._cgroup is not None else ""

    def _run_actions(self, context: RunContext, run_actions: bool) -> int:
        # A delay of 0 must not cause a pause, hence the strict comparison.
        if time.monotonic() < self._pause_actions_until:
            return 0

        if self._active_chain is not None:
            state = self._active_chain
            self._active_chain = None
            context.action_context = state.action_context
            for index, action in enumerate(self._action_group):
                if action is not state.active_plugin:
                    continue
                if self._engine_logs():
                    logger.info(
                        "DetectorGroup=%s has fired for Ruleset=%s with target "
                        "cgroup=%s. Running action chain from state.",
                        context.action_context.detectorgroup,
                        self.name,
                        self._target_cgroup(),
                    )
                return self._run_action_chain(index, context)

        if not run_actions:
            return 0

        if self._engine_logs():
            logger.info(
                "DetectorGroup=%s has fired for Ruleset=%s with ruleset "
                "cgroup=%s. Running action chain.",
                context.action_context.detectorgroup,
                self.name,
                self._target_cgroup(),
            )
        return self._run_action_chain(0, context)

    def _run_action_chain(self, start: int, context: RunContext) -> int:
        for action in self._action_group[start:]:
            if self._engine_logs():
                logger.info("Running Action=%s", action.name)

            with _plugin_logs(self._silenced_logs):
                ret = action.run(context)

            if ret is PluginRet.CONTINUE:
                if self._engine_logs():
                    logger.info(
                        "Action=%s returned CONTINUE. Continuing action chain.",
                        action.name,
                    )
                continue

            if ret is PluginRet.ASYNC_PAUSED:
                self._active_chain = _AsyncActionChainState(
                    active_plugin=action, action_context=context.action_context
                )
                logger.info(
                    "Action=%s returned ASYNC. Yielding action chain.", action.name
                )
                return 0

            if self._engine_logs():
                logger.info(
                    "Action=%s returned STOP. Terminating action chain.", action.name
                )
            if not self._plugin_overrode_post_action_delay:
                self._pause_actions_until = time.monotonic() + self._post_action_delay
            self._plugin_overrode_post_action_delay = False
            break

        return 1

    def _register_runnable_ruleset(
        self, context: RunContext, cgroup: CgroupPath
    ) -> Ruleset:
        detector_groups = [dg.clone() for dg in self._detector_groups]
        construction_context = PluginConstructionContext(cgroup_fs=cgroup.cgroup_fs())
        actions = []
        for template in self._action_group:
            plugin = plugin_registry.create(template.name)
            plugin.name = template.name
            args = dict(template.args)
            args.setdefault("cgroup", cgroup.relative_path())
            plugin.init_plugin(args, construction_context)
            actions.append(plugin)

        ruleset = Ruleset(
            self.name,
            detector_groups,
            actions,
            disable_on_drop_in=self._disable_on_drop_in,
            detectorgroups_dropin_enabled=self._detectorgroups_dropin_enabled,
            actiongroup_dropin_enabled=self._actiongroup_dropin_enabled,
            silenced_logs=self._silenced_logs,
            post_action_delay=self._post_action_delay,
            prekill_hook_timeout=self._prekill_hook_timeout,
            cgroup=CgroupPath(cgroup.cgroup_fs(), cgroup.relative_path()),
        )
        ruleset.prerun(context)
        self._runnable_rulesets[cgroup.absolute_path()] = ruleset
        return ruleset

    def __repr__(self) -> str:
        return f"Ruleset({self.name!r})"