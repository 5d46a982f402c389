"""A named group of detectors that fires when none of them stop."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, List

from .plugin import BasePlugin, PluginRet, RunContext, plugin_registry
from .types import LogSources


@contextmanager
def _plugin_logs(silenced_logs: int) -> Iterator[None]:
    if not silenced_logs & LogSources.PLUGINS:
        yield
        return
    previous = logging.root.manager.disable
    logging.disable(logging.CRITICAL)
    try:
        yield
    finally:
        logging.disable(previous)


class DetectorGroup:
    """Runs its detectors; triggered when no detector returns STOP."""

    def __init__(self, name: str, detectors: List[BasePlugin]) -> None:
        self.name = name
        self.detectors = list(detectors)

    def clone(self) -> DetectorGroup:
        """Build a group of fresh detector instances from the plugin registry."""
        detectors = []
        for detector in self.detectors:
            plugin = plugin_registry.create(detector.name)
            plugin.name = detector.name
            plugin.init_plugin(detector.args, detector.construction_context)
            detectors.append(plugin)
        return DetectorGroup(self.name, detectors)

    def prerun(self, context: RunContext) -> None:
        for detector in self.detectors:
            detector.prerun(context)

    def check(self, context: RunContext, silenced_logs: int) -> bool:
        """Run every detector; True if none returned STOP.

        All detectors run even after one stops, so that detectors keeping
        sliding windows update them. ASYNC_PAUSED is treated as CONTINUE.
        """
        triggered = True
        for detector in self.detectors:
            with _plugin_logs(silenced_logs):
                ret = detector.run(context)
            if ret is PluginRet.STOP:
                triggered = False
        return triggered

    def __repr__(self) -> str:
        return f"DetectorGroup({self.name!r}, {[d.name for d in self.detectors]!r})"