"""Plugin interfaces, prekill hooks and plugin registries."""

from __future__ import annotations

import abc
import enum
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, Mapping, Optional, Set, TypeVar

from .cgroup_path import CgroupPath
from .types import PluginArgs


class PluginRet(enum.Enum):
    """What a plugin's run() asks the engine to do next."""

    CONTINUE = 0
    STOP = 1
    ASYNC_PAUSED = 2


@dataclass(frozen=True)
class PluginConstructionContext:
    """Information handed to plugins when they are initialised."""

    cgroup_fs: str = ""


@dataclass
class ActionContext:
    """Describes the ruleset and detector group that triggered an action chain."""

    ruleset: str = ""
    detectorgroup: str = ""
    action_uuid: str = ""
    prekill_hook_timeout_ts: Optional[float] = None
    """Monotonic deadline for prekill hooks, if any."""
    cgroup: Optional[CgroupPath] = None


PrekillHooksHandler = Callable[[CgroupPath], Optional["PrekillHookInvocation"]]


@dataclass
class RunContext:
    """Per-interval state shared between the engine and running plugins."""

    action_context: ActionContext = field(default_factory=ActionContext)
    invoking_ruleset: Optional[Any] = None
    ruleset_cgroup: Optional[CgroupPath] = None
    prekill_hooks_handler: Optional[PrekillHooksHandler] = None

    def fire_prekill_hook(self, cgroup: CgroupPath) -> Optional["PrekillHookInvocation"]:
        """Ask the installed handler to fire a prekill hook for a cgroup."""
        if self.prekill_hooks_handler is None:
            return None
        return self.prekill_hooks_handler(cgroup)


class BasePlugin(abc.ABC):
    """A detector or action that the engine runs each interval."""

    def __init__(self) -> None:
        self.name = ""
        self.args: PluginArgs = {}
        self.construction_context = PluginConstructionContext()

    def init_plugin(
        self, args: Mapping[str, str], context: PluginConstructionContext
    ) -> None:
        """Record the arguments and context, then initialise the plugin."""
        self.args.update(args)
        self.construction_context = context
        self.init(dict(args), context)

    @abc.abstractmethod
    def init(self, args: PluginArgs, context: PluginConstructionContext) -> None:
        """Initialise from config arguments; raise ValueError if they are bad."""

    def prerun(self, context: RunContext) -> None:
        """Called at the start of every interval, before any run()."""

    @abc.abstractmethod
    def run(self, context: RunContext) -> PluginRet:
        """Do the plugin's work for one interval."""


class PrekillHookInvocation(abc.ABC):
    """A running prekill hook whose completion is polled."""

    @abc.abstractmethod
    def did_finish(self) -> bool:
        """True once the hook's work is done."""


def _parse_cgroup_patterns(
    context: PluginConstructionContext, value: str
) -> Set[CgroupPath]:
    patterns = set()
    for part in value.split(","):
        part = part.strip()
        if not part:
            raise ValueError(f"invalid cgroup argument {value!r}")
        patterns.add(CgroupPath(context.cgroup_fs, part))
    return patterns


class PrekillHook(abc.ABC):
    """A hook fired before a cgroup is killed."""

    def __init__(self) -> None:
        self.name = ""
        self.cgroup_patterns: Set[CgroupPath] = set()

    def init_plugin(
        self, args: Mapping[str, str], context: PluginConstructionContext
    ) -> None:
        self.init(dict(args), context)

    def init(self, args: PluginArgs, context: PluginConstructionContext) -> None:
        """Read the comma separated "cgroup" patterns this hook applies to."""
        value = args.get("cgroup")
        if value is not None:
            self.cgroup_patterns = _parse_cgroup_patterns(context, value)

    @abc.abstractmethod
    def fire(
        self, cgroup: CgroupPath, action_context: ActionContext
    ) -> PrekillHookInvocation:
        """Start the hook's work without blocking."""

    def can_run_on_cgroup(self, cgroup: CgroupPath) -> bool:
        return any(
            cgroup.has_descendant_with_prefix_matching(pattern)
            for pattern in self.cgroup_patterns
        )


T = TypeVar("T")


class PluginRegistry(Generic[T]):
    """Maps plugin names to factories that build new instances."""

    def __init__(self) -> None:
        self._factories: Dict[str, Callable[[], T]] = {}

    def register(self, name: str, factory: Callable[[], T]) -> Callable[[], T]:
        self._factories[name] = factory
        return factory

    def create(self, name: str) -> T:
        """Build a new instance; raise KeyError if the name is unknown."""
        try:
            factory = self._factories[name]
        except KeyError:
            raise KeyError(f"no plugin registered as {name!r}") from None
        return factory()

    def names(self) -> List[str]:
        return sorted(self._factories)

    def __contains__(self, name: object) -> bool:
        return name in self._factories


plugin_registry: PluginRegistry[BasePlugin] = PluginRegistry()
prekill_hook_registry: PluginRegistry[PrekillHook] = PluginRegistry()


def register_plugin(name: str, factory: Callable[[], BasePlugin]) -> Callable[[], BasePlugin]:
    """Register a detector/action plugin factory under a name."""
    return plugin_registry.register(name, factory)


def register_prekill_hook(
    name: str, factory: Callable[[], PrekillHook]
) -> Callable[[], PrekillHook]:
    """Register a prekill hook factory under a name."""
    return prekill_hook_registry.register(name, factory)