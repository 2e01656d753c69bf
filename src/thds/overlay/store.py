"""Per-caller overrides of configuration and environment variables.

Code that would normally read global configuration or the environment reads
through this module instead, naming the caller it is running on behalf of:

```
from thds.overlay import store
from thds.overlay.caller import current_caller

url = store.get_env("API_URL", current_caller())
retries = store.get_config("payments", "retries", current_caller())
```

With no store started, those are plain reads of the global sources. Tests start
the store once and then override values for their own caller only, leaving every
other concurrently running test untouched:

```
store.start()
store.replace_config("payments", "retries", 0, current_caller())
```

Configuration overrides are deep-merged per caller, so overriding one key leaves
other keys in the same namespace reading from their previous override or from
the global source. Environment overrides are merged by name. A single lookup is
never merged with the global value: if a caller has an override for that exact
namespace/key or name, it is returned as-is.
"""
import threading
import typing as ty
from dataclasses import dataclass, field

from . import config
from .caller import CallerId, ensure_caller
from .errors import MustProvideCaller, NoOverridesFound, NotStarted  # noqa: F401
from .log import getLogger
from .merge import deep_merge
from .sources import APPLICATION, OS_ENV, GlobalConfigSource, GlobalEnvSource

_cfg = config.in_module(__name__)
DEFAULT_NAME = _cfg("default_name", "thds.overlay")

logger = getLogger(__name__)
_ABSENT = object()


@dataclass
class CallerOverrides:
    configuration: ty.Dict[ty.Hashable, ty.Dict[ty.Hashable, ty.Any]] = field(default_factory=dict)
    env: ty.Dict[str, ty.Any] = field(default_factory=dict)


def _copy_overrides(overrides: CallerOverrides) -> CallerOverrides:
    # new containers, same values: overrides are often mocks or live clients.
    return CallerOverrides(
        configuration={ns: dict(keys) for ns, keys in overrides.configuration.items()},
        env=dict(overrides.env),
    )


def _check_env_name(name: object) -> str:
    if not isinstance(name, str) or not name:
        raise ValueError(f"Environment variable name must be a non-empty string, got {name!r}")
    return name


class OverrideStore:
    """A registry of CallerOverrides guarded by a single lock.

    Every operation takes the lock exactly once; global sources are consulted
    after it is released.
    """

    def __init__(
        self,
        name: str,
        config_source: GlobalConfigSource = APPLICATION,
        env_source: GlobalEnvSource = OS_ENV,
    ):
        self.name = name
        self.config_source = config_source
        self.env_source = env_source
        self._lock = threading.Lock()
        self._registry: ty.Dict[CallerId, CallerOverrides] = dict()

    def __repr__(self) -> str:
        return f"OverrideStore({self.name!r})"

    def get_config(self, namespace: ty.Hashable, key: ty.Hashable, caller: CallerId) -> ty.Any:
        ensure_caller(caller, "get_config")
        with self._lock:
            overrides = self._registry.get(caller)
            value = (
                overrides.configuration.get(namespace, {}).get(key, _ABSENT)
                if overrides is not None
                else _ABSENT
            )
        if value is _ABSENT:
            return self.config_source.get(namespace, key)
        return value

    def get_env(self, name: str, caller: CallerId) -> ty.Any:
        ensure_caller(caller, "get_env")
        _check_env_name(name)
        with self._lock:
            overrides = self._registry.get(caller)
            value = overrides.env.get(name, _ABSENT) if overrides is not None else _ABSENT
        if value is _ABSENT:
            return self.env_source.get(name)
        return value

    def replace_config(
        self, namespace: ty.Hashable, key: ty.Hashable, value: ty.Any, caller: CallerId
    ) -> None:
        ensure_caller(caller, "replace_config")
        update = {namespace: {key: value}}
        with self._lock:
            overrides = self._registry.setdefault(caller, CallerOverrides())
            overrides.configuration = deep_merge(overrides.configuration, update)
        logger.debug("Overrode config", store=self.name, caller=caller, namespace=namespace, key=key)

    def replace_env(self, name: str, value: ty.Any, caller: CallerId) -> None:
        ensure_caller(caller, "replace_env")
        _check_env_name(name)
        with self._lock:
            overrides = self._registry.setdefault(caller, CallerOverrides())
            overrides.env = {**overrides.env, name: value}
        logger.debug("Overrode env", store=self.name, caller=caller, name=name)

    def copy(self, from_caller: CallerId, to_caller: CallerId) -> ty.Optional[CallerOverrides]:
        """Replace everything `to_caller` has overridden with what `from_caller` has.

        Returns a copy of the overrides, or None (changing nothing) if
        `from_caller` has never written any. Both callers then read the very
        same override values.
        """
        ensure_caller(from_caller, "copy")
        ensure_caller(to_caller, "copy")
        with self._lock:
            overrides = self._registry.get(from_caller)
            if overrides is None:
                return None
            self._registry[to_caller] = _copy_overrides(overrides)
            copied = _copy_overrides(overrides)
        logger.debug("Copied overrides", store=self.name, from_caller=from_caller, to_caller=to_caller)
        return copied

    def copy_or_raise(self, from_caller: CallerId, to_caller: CallerId) -> None:
        if self.copy(from_caller, to_caller) is None:
            raise NoOverridesFound(
                f"Expected overrides for caller {from_caller} in store '{self.name}', but none found"
            )

    def overrides_for(self, caller: CallerId) -> ty.Optional[CallerOverrides]:
        ensure_caller(caller, "overrides_for")
        with self._lock:
            overrides = self._registry.get(caller)
            return _copy_overrides(overrides) if overrides is not None else None


_STORES: ty.Dict[str, OverrideStore] = dict()
_STORES_LOCK = threading.Lock()

StoreRef = ty.Union[OverrideStore, str, None]
# an OverrideStore, the name of a started one, or None for DEFAULT_NAME().


def start(
    name: ty.Optional[str] = None,
    *,
    config_source: ty.Optional[GlobalConfigSource] = None,
    env_source: ty.Optional[GlobalEnvSource] = None,
) -> OverrideStore:
    """Start the named store, or return it if it is already running.

    Sources only apply when the store is first created.
    """
    name = name or DEFAULT_NAME()
    existing = _STORES.get(name)
    if existing is None:
        with _STORES_LOCK:
            existing = _STORES.get(name)
            if existing is None:
                existing = _STORES[name] = OverrideStore(
                    name, config_source or APPLICATION, env_source or OS_ENV
                )
                logger.info("Started override store", store=name)
                return existing
    if (config_source is not None and config_source is not existing.config_source) or (
        env_source is not None and env_source is not existing.env_source
    ):
        logger.warning("Override store already running; ignoring the sources passed to start", store=name)
    return existing


def running(name: ty.Optional[str] = None) -> ty.Optional[OverrideStore]:
    return _STORES.get(name or DEFAULT_NAME())


def resolve(store: StoreRef) -> ty.Optional[OverrideStore]:
    if isinstance(store, OverrideStore):
        return store
    return running(store)


def _started(store: StoreRef) -> OverrideStore:
    resolved = resolve(store)
    if resolved is None:
        raise NotStarted(ty.cast(str, store) or DEFAULT_NAME())
    return resolved


def get_config(namespace: ty.Hashable, key: ty.Hashable, caller: CallerId, store: StoreRef = None) -> ty.Any:
    ensure_caller(caller, "get_config")
    resolved = resolve(store)
    if resolved is None:
        return APPLICATION.get(namespace, key)
    return resolved.get_config(namespace, key, caller)


def get_env(name: str, caller: CallerId, store: StoreRef = None) -> ty.Any:
    ensure_caller(caller, "get_env")
    resolved = resolve(store)
    if resolved is None:
        return OS_ENV.get(_check_env_name(name))
    return resolved.get_env(name, caller)


def replace_config(
    namespace: ty.Hashable, key: ty.Hashable, value: ty.Any, caller: CallerId, store: StoreRef = None
) -> None:
    ensure_caller(caller, "replace_config")
    _started(store).replace_config(namespace, key, value, caller)


def replace_env(name: str, value: ty.Any, caller: CallerId, store: StoreRef = None) -> None:
    ensure_caller(caller, "replace_env")
    _started(store).replace_env(name, value, caller)


def copy(from_caller: CallerId, to_caller: CallerId, store: StoreRef = None) -> ty.Optional[CallerOverrides]:
    ensure_caller(from_caller, "copy")
    ensure_caller(to_caller, "copy")
    return _started(store).copy(from_caller, to_caller)


def copy_or_raise(from_caller: CallerId, to_caller: CallerId, store: StoreRef = None) -> None:
    ensure_caller(from_caller, "copy_or_raise")
    ensure_caller(to_caller, "copy_or_raise")
    _started(store).copy_or_raise(from_caller, to_caller)


def overrides_for(caller: CallerId, store: StoreRef = None) -> ty.Optional[CallerOverrides]:
    resolved = resolve(store)
    if resolved is None:
        ensure_caller(caller, "overrides_for")
        return None
    return resolved.overrides_for(caller)
