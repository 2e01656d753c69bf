"""Settings for thds.overlay itself, such as the default store name and log level.

These are not overridable per caller. They are read by the library, not by the
code under test. Each setting is a registered ConfigItem, looked up by calling it,
and may be set:

- at startup, from an environment variable derived from its dotted name
  (`thds.overlay.store.default_name` -> `THDS_OVERLAY_STORE_DEFAULT_NAME`)
- for the process, with `set_global`
- for the current thread or task, with `set_local`
- in bulk, from nested tables such as a parsed TOML file, with `set_global_defaults`

```
from thds.overlay import config

_cfg = config.in_module(__name__)
DEFAULT_NAME = _cfg("default_name", "thds.overlay")

with DEFAULT_NAME.set_local("integration"):
    assert DEFAULT_NAME() == "integration"
```
"""
import importlib
import os
import typing as ty

from .stack_context import StackContext

T = ty.TypeVar("T")
_UNSET: ty.Any = object()


class UnconfiguredError(ValueError):
    pass


class ConfigNameCollisionError(KeyError):
    pass


def _env_var_names(name: str) -> ty.Iterator[str]:
    yield name
    underscored = name.replace("-", "_").replace(".", "_")
    yield underscored
    yield underscored.upper()


def _from_env(name: str) -> ty.Optional[str]:
    return next(filter(None, (os.environ.get(var) for var in _env_var_names(name))), None)


class ConfigItem(ty.Generic[T]):
    """Create at module level; the name is registered process-wide."""

    def __init__(
        self,
        name: str,
        default: T = _UNSET,
        *,
        parse: ty.Callable[[ty.Any], T] = lambda x: x,
        allow_env_var: bool = True,
    ):
        if name in _REGISTRY:
            raise ConfigNameCollisionError(f"Config item {name} has already been registered!")
        self.name = name
        self.parse = parse
        from_env = _from_env(name) if allow_env_var else None
        self.global_value: T = parse(from_env) if from_env else default
        self._local: StackContext[T] = StackContext(f"overlay setting {name}", _UNSET)
        _REGISTRY[name] = self

    def set_global(self, value: ty.Any) -> None:
        self.global_value = self.parse(value)

    def set_local(self, value: T) -> ty.ContextManager[T]:
        return self._local.set(value)

    def is_configured(self) -> bool:
        return self._local() is not _UNSET or self.global_value is not _UNSET

    def __call__(self) -> T:
        value = self._local()
        if value is _UNSET:
            value = self.global_value
        if value is _UNSET:
            raise UnconfiguredError(f"Config item '{self.name}' has not been configured!")
        return value

    def __repr__(self) -> str:
        return f"ConfigItem({self.name!r})"


item = ConfigItem

_REGISTRY: ty.Dict[str, ConfigItem] = dict()


def in_module(module_name: str) -> ty.Callable[..., ConfigItem]:
    """Name items after the module that owns them: `in_module(__name__)("level", ...)`."""

    def _item(name: str, *args, **kwargs) -> ConfigItem:
        return ConfigItem(f"{module_name}.{name}", *args, **kwargs)

    return _item


def config_by_name(name: str) -> ConfigItem:
    return _REGISTRY[name]


def is_registered(name: str) -> bool:
    return name in _REGISTRY


def _dotted(tables: ty.Mapping[str, ty.Any], prefix: str = "") -> ty.Iterator[ty.Tuple[str, ty.Any]]:
    for key, value in tables.items():
        name = f"{prefix}.{key}" if prefix else key
        if isinstance(value, ty.Mapping):
            yield from _dotted(value, name)
        else:
            yield name, value


def _registered_or_import_owner(name: str) -> ConfigItem:
    if name not in _REGISTRY:
        # the owning module registers its items on import.
        owner = name.rsplit(".", 1)[0]
        try:
            importlib.import_module(owner)
        except ModuleNotFoundError:
            pass
        if name not in _REGISTRY:
            raise KeyError(
                f"Config item {name} is not registered"
                f" and no module with the name {owner} was importable."
                " Please double-check your configuration."
            )
    return _REGISTRY[name]


def set_global_defaults(tables: ty.Mapping[str, ty.Any]) -> None:
    """Nested tables are joined with dots, so `{"thds": {"overlay": {...}}}` and
    `{"thds.overlay...": ...}` name the same items.
    """
    for name, value in _dotted(tables):
        _registered_or_import_owner(name).set_global(value)


def show_all_config() -> ty.Dict[str, ty.Any]:
    return {name: cfg() for name, cfg in _REGISTRY.items() if cfg.is_configured()}
