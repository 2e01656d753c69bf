"""The real, process-wide configuration and environment that overrides sit on top of.

These are only ever read by the override store. `None` means absent.
"""
import os
import threading
import typing as ty
from pathlib import Path

import toml

from . import config
from .merge import deep_merge


class GlobalConfigSource(ty.Protocol):
    def get(self, namespace: ty.Hashable, key: ty.Hashable) -> ty.Any:
        ...


class GlobalEnvSource(ty.Protocol):
    def get(self, name: str) -> ty.Optional[str]:
        ...


class OsEnvSource:
    def get(self, name: str) -> ty.Optional[str]:
        return os.environ.get(name)

    def __repr__(self) -> str:
        return "OsEnvSource()"


class MappingConfigSource:
    """Application configuration as a namespace -> key -> value mapping.

    Populate it once at startup, from code or from a TOML file whose top-level
    tables are namespaces:

    ```
    [payments]
    currency = "USD"
    retries = 3
    ```
    """

    def __init__(self, initial: ty.Optional[ty.Mapping[ty.Hashable, ty.Mapping]] = None):
        self._lock = threading.Lock()
        self._data: ty.Dict[ty.Hashable, ty.Dict] = deep_merge({}, initial or {})

    def get(self, namespace: ty.Hashable, key: ty.Hashable) -> ty.Any:
        with self._lock:
            return self._data.get(namespace, {}).get(key)

    def put(self, namespace: ty.Hashable, key: ty.Hashable, value: ty.Any) -> None:
        self.load({namespace: {key: value}})

    def load(self, mapping: ty.Mapping[ty.Hashable, ty.Mapping]) -> None:
        for namespace, keys in mapping.items():
            if not isinstance(keys, ty.Mapping):
                raise TypeError(f"Namespace {namespace!r} must map to a table of keys, got {keys!r}")
        with self._lock:
            self._data = deep_merge(self._data, mapping)

    def load_toml(self, path: ty.Union[str, os.PathLike]) -> None:
        self.load(toml.load(Path(path)))

    def clear(self) -> None:
        with self._lock:
            self._data = dict()


class ConfigRegistrySource:
    """Reads registered `thds.overlay.config` items named `{namespace}.{key}`."""

    def get(self, namespace: ty.Hashable, key: ty.Hashable) -> ty.Any:
        name = f"{namespace}.{key}"
        if not config.is_registered(name):
            return None
        item = config.config_by_name(name)
        return item() if item.is_configured() else None


APPLICATION = MappingConfigSource()
OS_ENV = OsEnvSource()
