"""Per-caller configuration and environment overrides, for tests that run concurrently."""
from importlib.metadata import PackageNotFoundError, version

from . import caller, concurrency, config, errors, log, merge, sources, store  # noqa: F401
from .caller import CallerId, caller_scope, current_caller, new_caller  # noqa: F401
from .errors import MustProvideCaller, NoOverridesFound, NotStarted, OverlayError  # noqa: F401
from .store import (  # noqa: F401
    CallerOverrides,
    OverrideStore,
    copy,
    copy_or_raise,
    get_config,
    get_env,
    replace_config,
    replace_env,
    start,
)

try:
    __version__ = version("thds.overlay")
except PackageNotFoundError:  # running from a source checkout
    __version__ = ""
