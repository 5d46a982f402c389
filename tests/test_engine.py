from typing import List

import pytest

from oomdcore.cgroup_path import CgroupPath
from oomdcore.detector_group import DetectorGroup
from oomdcore.engine import DropInUnit, Engine
from oomdcore.plugin import (
    BasePlugin,
    PluginConstructionContext,
    PluginRet,
    PrekillHook,
    PrekillHookInvocation,
    RunContext,
)
from oomdcore.ruleset import Ruleset
from oomdcore.types import CoreStats

FS = "/sys/fs/cgroup"


class _Always(BasePlugin):
    def init(self, args, context):
        pass

    def run(self, context):
        return PluginRet.CONTINUE


class _Recorder(BasePlugin):
    def __init__(self, label: str, log: List[str], preruns: List[str]) -> None:
        super().__init__()
        self.label = label
        self.log = log
        self.preruns = preruns

    def init(self, args, context):
        pass

    def prerun(self, context):
        self.preruns.append(self.label)

    def run(self, context):
        self.log.append(self.label)
        return PluginRet.CONTINUE


class _Invocation(PrekillHookInvocation):
    def __init__(self, label: str) -> None:
        self.label = label

    def did_finish(self):
        return True


class _Hook(PrekillHook):
    def __init__(self, label: str, cgroup: str) -> None:
        super().__init__()
        self.label = label
        self.init_plugin({"cgroup": cgroup}, PluginConstructionContext(FS))

    def fire(self, cgroup, action_context):
        return _Invocation(self.label)


@pytest.fixture
def log():
    return []


@pytest.fixture
def preruns():
    return []


def make_ruleset(name, label, log, preruns, disable_on_drop_in=False):
    return Ruleset(
        name,
        [DetectorGroup("dg", [_Always()])],
        [_Recorder(label, log, preruns)],
        disable_on_drop_in=disable_on_drop_in,
    )


def test_drop_ins_run_lifo_before_base(log, preruns):
    engine = Engine([make_ruleset("rs", "base", log, preruns)], [])
    assert engine.add_drop_in_ruleset("0", make_ruleset("rs", "d0", log, preruns))
    assert engine.add_drop_in_ruleset("1", make_ruleset("rs", "d1", log, preruns))
    engine.run_once(RunContext())
    assert log == ["d1", "d0", "base"]


def test_prerun_covers_drop_ins_and_base(log, preruns):
    engine = Engine([make_ruleset("rs", "base", log, preruns)], [])
    engine.add_drop_in_ruleset("0", make_ruleset("rs", "d0", log, preruns))
    engine.prerun(RunContext())
    assert preruns == ["d0", "base"]


def test_add_drop_in_ruleset_rejects_unknown_target_and_none(log, preruns):
    engine = Engine([make_ruleset("rs", "base", log, preruns)], [])
    assert engine.add_drop_in_ruleset("0", make_ruleset("other", "x", log, preruns)) is False
    assert engine.add_drop_in_ruleset("0", None) is False
    assert engine.stats[CoreStats.NUM_DROP_IN_ADDS] == 0


def test_remove_drop_in_config_restores_base(log, preruns):
    engine = Engine([make_ruleset("rs", "base", log, preruns)], [])
    engine.add_drop_in_ruleset("0", make_ruleset("rs", "d0", log, preruns))
    assert engine.stats[CoreStats.NUM_DROP_IN_ADDS] == 1
    engine.remove_drop_in_config("0")
    assert engine.stats[CoreStats.NUM_DROP_IN_ADDS] == 0
    engine.run_once(RunContext())
    assert log == ["base"]


def test_disable_on_drop_in_base_paused_while_targeted(log, preruns):
    base = make_ruleset("rs", "base", log, preruns, disable_on_drop_in=True)
    engine = Engine([base], [])
    engine.add_drop_in_ruleset("0", make_ruleset("rs", "d0", log, preruns))
    engine.run_once(RunContext())
    assert log == ["d0"]
    engine.remove_drop_in_config("0")
    engine.run_once(RunContext())
    assert log == ["d0", "base"]


def test_failed_drop_in_config_is_rolled_back(log, preruns):
    engine = Engine([make_ruleset("rs", "base", log, preruns)], [])
    unit = DropInUnit(
        prekill_hooks=[_Hook("dropin", "/")],
        rulesets=[
            make_ruleset("rs", "d0", log, preruns),
            make_ruleset("missing", "d1", log, preruns),
        ],
    )
    assert engine.add_drop_in_config("tag", unit) is False
    engine.run_once(RunContext())
    assert log == ["base"]
    assert engine.stats[CoreStats.NUM_DROP_IN_ADDS] == 0
    assert engine.fire_prekill_hook(CgroupPath(FS, "a"), RunContext()) is None


def test_drop_in_fired_stat_counts_drop_in_runs(log, preruns):
    engine = Engine([make_ruleset("rs", "base", log, preruns)], [])
    engine.add_drop_in_ruleset("0", make_ruleset("rs", "d0", log, preruns))
    engine.run_once(RunContext())
    assert engine.stats[CoreStats.NUM_DROP_IN_FIRED] == 1


def test_prekill_hooks_first_match_and_drop_ins_first(log, preruns):
    engine = Engine(
        [make_ruleset("rs", "base", log, preruns)],
        [_Hook("specific", "/a"), _Hook("catchall", "/")],
    )
    ctx = RunContext()
    assert engine.fire_prekill_hook(CgroupPath(FS, "a/b"), ctx).label == "specific"
    assert engine.fire_prekill_hook(CgroupPath(FS, "c"), ctx).label == "catchall"

    assert engine.add_drop_in_config("d", DropInUnit(prekill_hooks=[_Hook("dropin", "/")]))
    assert engine.fire_prekill_hook(CgroupPath(FS, "a/b"), ctx).label == "dropin"

    engine.remove_drop_in_config("d")
    assert engine.fire_prekill_hook(CgroupPath(FS, "a/b"), ctx).label == "specific"


def test_fire_prekill_hook_without_match_returns_none(log, preruns):
    engine = Engine([make_ruleset("rs", "base", log, preruns)], [_Hook("only", "/a")])
    assert engine.fire_prekill_hook(CgroupPath(FS, "b"), RunContext()) is None