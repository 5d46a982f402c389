# oomdcore

The rule engine behind a userspace out-of-memory killer. Rulesets pair
*detector groups*, which watch the system, with an *action chain*, which
runs when a detector group fires. `oomdcore` holds the configuration
model, a JSON front end for it, the plugin interfaces, and an engine that
runs rulesets each tick and lets drop-in rulesets be layered on top.

## Install

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `oomdcore.config_types`: the configuration IR as dataclasses: `Root`,
  `Ruleset`, `DetectorGroup`, `Detector`, `Action`, `PrekillHook`,
  `DropIn`. All ruleset settings (`silence_logs`, `post_action_delay`,
  `prekill_hook_timeout`, `xattr_filter`, `cgroup`) are kept as strings.
  `format_ir(root)` renders the tree as indented text; `dump_ir(root)`
  logs it line by line at INFO.
- `oomdcore.json_parser`: `parse_config(text)` reads a JSON document
  (`//` and `/* */` comments and trailing commas are accepted) and
  returns a `Root`. Invalid JSON, or a shape it cannot read, raises
  `ConfigParseError` (a `ValueError`). Plugin arguments that are numbers
  or booleans become strings. The parsed tree is passed to `dump_ir`.
- `oomdcore.plugin`: `PluginRet` (`CONTINUE`, `STOP`, `ASYNC_PAUSED`),
  `PluginConstructionContext`, `ActionContext`, `RunContext`, the
  abstract `BasePlugin` (implement `init` and `run`, optionally
  `prerun`), `PrekillHook` and `PrekillHookInvocation`, and
  `PluginRegistry`. `register_plugin(name, factory)` and
  `register_prekill_hook(name, factory)` add factories to the module's
  registries.
- `oomdcore.detector_group`: `DetectorGroup` runs all of its detectors
  and reports whether none returned `STOP`.
- `oomdcore.ruleset`: `Ruleset` checks its detector groups and runs its
  action chain when one fires. It supports post-action delays, action
  chains that pause with `ASYNC_PAUSED` and resume on a later tick,
  `pause_actions(seconds)`, drop-in merging, and, when given a
  `CgroupPath` pattern, one copy of itself per matching cgroup directory
  (optionally only those carrying an extended attribute). Those copies
  are built from `plugin_registry`, so plugins used in such rulesets
  must be registered.
- `oomdcore.engine`: `Engine` runs every ruleset, each ruleset's drop-ins
  before the base ruleset, most recent drop-in first.
  `add_drop_in_config(tag, DropInUnit(...))` and
  `remove_drop_in_config(tag)` manage drop-ins by tag.
  `fire_prekill_hook(cgroup, context)` fires the first prekill hook whose
  `cgroup` patterns match, trying drop-in hooks before base hooks.
  `Engine.stats` is a `Counter` keyed by `CoreStats` names.
- `oomdcore.cgroup_path`: `CgroupPath` joins a cgroup filesystem root
  with a relative path, walks to parents and children, resolves glob
  patterns to existing directories, and matches `*` path components with
  `has_descendant_with_prefix_matching`.
- `oomdcore.types`: shared value types (`ResourcePressure`,
  `DeviceIOStat`, `IOCostCoeffs`, `SystemContext`, `KillPreference`,
  `LogSources`, ...) and the `CoreStats` keys.

## Example

```python
from oomdcore.detector_group import DetectorGroup
from oomdcore.engine import Engine
from oomdcore.plugin import (
    BasePlugin,
    PluginConstructionContext,
    PluginRet,
    RunContext,
)
from oomdcore.ruleset import Ruleset


class Always(BasePlugin):
    def init(self, args, context):
        pass

    def run(self, context):
        return PluginRet.CONTINUE


class Report(BasePlugin):
    def init(self, args, context):
        pass

    def run(self, context):
        print("action fired for", context.action_context.ruleset)
        return PluginRet.STOP


construction = PluginConstructionContext("/sys/fs/cgroup")
detector, action = Always(), Report()
for plugin, name in ((detector, "always"), (action, "report")):
    plugin.name = name
    plugin.init_plugin({}, construction)

ruleset = Ruleset(
    "demo",
    [DetectorGroup("group", [detector])],
    [action],
    post_action_delay=0,
)
engine = Engine([ruleset], [])

ctx = RunContext()
engine.prerun(ctx)
engine.run_once(ctx)
```

## What this package does not do

- There is no step that turns a parsed `Root` into an `Engine`: the IR
  from `parse_config` is not validated against the plugin registry, and
  `Ruleset`, `DetectorGroup` and `Engine` objects are built by hand as
  above.
- Nothing watches a directory for drop-in files or queues drop-in
  changes; drop-ins are added with `Engine.add_drop_in_config` directly.
- No detector, action or prekill hook plugins ship with the package, and
  there is no command or daemon that reads system state and drives the
  engine on a timer.