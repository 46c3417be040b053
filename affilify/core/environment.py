"""
Runtime Environment Detection
=============================

Classifies the execution context so callers can pick a compatible code path:

    browser  - interpreter embedded in a web page (Pyodide / Emscripten)
    server   - anything that is not a browser
    edge     - server-side, restricted runtime without native modules
    node     - server-side, full runtime

Classification reads only a global ``window`` object and environment
variables. Every signal that is missing or unreadable resolves to False;
detection never raises.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Callable, Final, Mapping, Optional, TypeVar, Union

from affilify.core.config import RuntimeConfig

T = TypeVar("T")


class RuntimeEnvironment(Enum):
    """Concrete runtime an operation executes in."""
    BROWSER = auto()
    EDGE = auto()
    NODE = auto()


class TargetEnvironment(str, Enum):
    """Environment selector accepted by run_in_environment."""
    BROWSER = "browser"
    SERVER = "server"
    EDGE = "edge"
    NODE = "node"


class _NoOp:
    """Result of run_in_environment when nothing was run."""

    _instance: Optional[_NoOp] = None

    def __new__(cls) -> _NoOp:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOOP"


NOOP: Final[_NoOp] = _NoOp()


@dataclass(frozen=True, slots=True)
class EnvironmentInfo:
    """
    Facts about the current execution context, computed once.

    Attributes:
        is_browser: A browser ``window`` global is present
        is_edge_runtime: Server-side and the runtime variable signals "edge"
        is_development: The mode variable equals "development"
        is_production: The mode variable equals "production"
    """

    is_browser: bool = False
    is_edge_runtime: bool = False
    is_development: bool = False
    is_production: bool = False

    def __post_init__(self) -> None:
        if self.is_browser and self.is_edge_runtime:
            raise ValueError("An environment cannot be both browser and edge runtime")

    @property
    def is_server(self) -> bool:
        return not self.is_browser

    @property
    def is_node_runtime(self) -> bool:
        return self.is_server and not self.is_edge_runtime

    @property
    def runtime(self) -> RuntimeEnvironment:
        if self.is_browser:
            return RuntimeEnvironment.BROWSER
        if self.is_edge_runtime:
            return RuntimeEnvironment.EDGE
        return RuntimeEnvironment.NODE

    def matches(self, target: Union[TargetEnvironment, str]) -> bool:
        """Check whether this environment satisfies a target selector."""
        if isinstance(target, str) and not isinstance(target, TargetEnvironment):
            target = target.strip().lower()
        try:
            target = TargetEnvironment(target)
        except ValueError:
            return False

        return {
            TargetEnvironment.BROWSER: self.is_browser,
            TargetEnvironment.SERVER: self.is_server,
            TargetEnvironment.EDGE: self.is_edge_runtime,
            TargetEnvironment.NODE: self.is_node_runtime,
        }[target]

    @classmethod
    def for_runtime(cls, runtime: RuntimeEnvironment, **flags: bool) -> EnvironmentInfo:
        """Build an EnvironmentInfo for an explicit runtime (tests, injection)."""
        return cls(
            is_browser=runtime is RuntimeEnvironment.BROWSER,
            is_edge_runtime=runtime is RuntimeEnvironment.EDGE,
            **flags,
        )


def _probe_window() -> bool:
    """Return True if a browser ``window`` global is reachable."""
    if sys.platform != "emscripten":
        return False
    try:
        import js  # Pyodide bridge to the JavaScript globals
    except ImportError:
        return False
    try:
        return getattr(js, "window", None) is not None
    except Exception:
        # Proxy access errors from the JS side mean "no window"
        return False


def _read_var(environ: Mapping[str, str], *names: str) -> str:
    for name in names:
        try:
            value = environ.get(name)
        except Exception:
            value = None
        if value:
            return str(value).strip().lower()
    return ""


def detect_environment(
    environ: Optional[Mapping[str, str]] = None,
    window_probe: Optional[Callable[[], bool]] = None,
    runtime_config: Optional[RuntimeConfig] = None,
) -> EnvironmentInfo:
    """
    Classify the current execution context.

    Args:
        environ: Environment mapping (defaults to os.environ)
        window_probe: Callable reporting whether a browser window exists
        runtime_config: Variable names to read (defaults to RuntimeConfig())

    Returns:
        EnvironmentInfo; never raises
    """
    environ = os.environ if environ is None else environ
    window_probe = window_probe or _probe_window
    runtime_config = runtime_config or RuntimeConfig()

    try:
        is_browser = bool(window_probe())
    except Exception:
        is_browser = False

    runtime = _read_var(environ, runtime_config.runtime_override_var, runtime_config.runtime_var)
    mode = _read_var(environ, runtime_config.mode_override_var, runtime_config.mode_var)

    return EnvironmentInfo(
        is_browser=is_browser,
        is_edge_runtime=not is_browser and runtime == runtime_config.edge_value.lower(),
        is_development=mode == "development",
        is_production=mode == "production",
    )


# Process-wide constants, computed once at import
CURRENT_ENVIRONMENT: Final[EnvironmentInfo] = detect_environment()

IS_BROWSER: Final[bool] = CURRENT_ENVIRONMENT.is_browser
IS_SERVER: Final[bool] = CURRENT_ENVIRONMENT.is_server
IS_EDGE_RUNTIME: Final[bool] = CURRENT_ENVIRONMENT.is_edge_runtime
IS_NODE_RUNTIME: Final[bool] = CURRENT_ENVIRONMENT.is_node_runtime
IS_DEVELOPMENT: Final[bool] = CURRENT_ENVIRONMENT.is_development
IS_PRODUCTION: Final[bool] = CURRENT_ENVIRONMENT.is_production


def run_in_environment(
    target: Union[TargetEnvironment, str],
    fn: Callable[[], T],
    fallback: Optional[Callable[[], T]] = None,
    *,
    environment: Optional[EnvironmentInfo] = None,
) -> Union[T, Any]:
    """
    Run ``fn`` only when the environment matches ``target``.

    Args:
        target: "browser", "server", "edge" or "node"
        fn: Callable to run on a match
        fallback: Callable to run otherwise
        environment: Environment to test (defaults to CURRENT_ENVIRONMENT)

    Returns:
        The result of ``fn`` or ``fallback``, or NOOP when neither ran.
        An unknown target never matches.
    """
    environment = environment or CURRENT_ENVIRONMENT

    if environment.matches(target):
        return fn()
    if fallback is not None:
        return fallback()
    return NOOP
