import logging

from oomdcore.config_types import (
    Action,
    Detector,
    DetectorGroup,
    DropIn,
    Plugin,
    PrekillHook,
    Root,
    Ruleset,
    dump_ir,
    format_ir,
)


def _sample_root():
    return Root(
        rulesets=[
            Ruleset(
                name="my first ruleset",
                dgs=[
                    DetectorGroup(
                        name="group1",
                        detectors=[
                            Detector(
                                name="pressure_rising_beyond",
                                args={"cgroup": "workload.slice"},
                            )
                        ],
                    )
                ],
                acts=[Action(name="kill_by_memory_size_or_growth", args={"cgroup": "system.slice"})],
                dropin=DropIn(detectorgroups_enabled=True, disable_on_drop_in=True),
                silence_logs="engine,plugins",
                post_action_delay="10",
            )
        ],
        prekill_hooks=[PrekillHook(name="hypothetical_prekill_hook")],
    )


def _stripped(text):
    return [line.strip() for line in text.splitlines()]


def test_defaults():
    rs = Ruleset()
    assert rs.dropin == DropIn(False, False, False)
    assert rs.dgs == [] and rs.acts == []
    assert Root().rulesets == []


def test_mutable_defaults_not_shared():
    a = Plugin()
    b = Plugin()
    a.args["x"] = "1"
    assert b.args == {}


def test_subclass_fields_and_kind():
    detector = Detector(name="n", args={"threshold": "5"})
    assert detector.name == "n"
    assert detector.args == {"threshold": "5"}
    assert detector == Detector(name="n", args={"threshold": "5"})
    action = Action(name="a")
    assert action.name == "a"
    assert action.args == {}
    assert isinstance(action, Plugin)


def test_format_ir_contains_entries():
    root = _sample_root()
    lines = _stripped(format_ir(root))
    assert "Hook=" + root.prekill_hooks[0].name in lines
    assert "Ruleset=" + root.rulesets[0].name in lines
    assert "DetectorGroup=group1" in lines
    assert "Detector=pressure_rising_beyond" in lines
    assert "cgroup=workload.slice" in lines
    assert "SilenceLogs=engine,plugins" in lines


def test_format_ir_booleans_and_counts():
    lines = _stripped(format_ir(_sample_root()))
    assert lines[0] == "1 PrekillHooks="
    assert "Detectors=1" in lines
    assert "Actions=0" in lines


def test_format_ir_indentation_nesting():
    text = format_ir(_sample_root())
    indents = {line.strip(): len(line) - len(line.lstrip()) for line in text.splitlines()}
    assert indents["Ruleset=my first ruleset"] < indents["DetectorGroup=group1"]
    assert indents["DetectorGroup=group1"] < indents["Detector=pressure_rising_beyond"]
    assert indents["Detector=pressure_rising_beyond"] < indents["cgroup=workload.slice"]


def test_format_empty_root():
    assert _stripped(format_ir(Root())) == ["0 PrekillHooks=", "0 Rulesets="]


def test_dump_ir_logs_every_line(caplog):
    root = _sample_root()
    with caplog.at_level(logging.INFO, logger="oomdcore.config_types"):
        dump_ir(root)
    assert [r.getMessage() for r in caplog.records] == format_ir(root).splitlines()