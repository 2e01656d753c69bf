import tempfile
import typing as ty
import uuid
from pathlib import Path

import pytest

from thds.overlay import store
from thds.overlay.sources import MappingConfigSource


class FakeEnv:
    def __init__(self, **values: str):
        self.values = dict(values)

    def get(self, name: str) -> ty.Optional[str]:
        return self.values.get(name)


@pytest.fixture
def app_config() -> MappingConfigSource:
    return MappingConfigSource()


@pytest.fixture
def fake_env() -> FakeEnv:
    return FakeEnv()


@pytest.fixture
def overrides(app_config: MappingConfigSource, fake_env: FakeEnv) -> store.OverrideStore:
    """A freshly started, uniquely named store reading from fake global sources."""
    return store.start("test-" + uuid.uuid4().hex, config_source=app_config, env_source=fake_env)


@pytest.fixture
def temp_file() -> ty.Iterator[ty.Callable[[str], Path]]:
    with tempfile.TemporaryDirectory() as tempdir:

        def make_temp_file(some_text: str) -> Path:
            p = Path(tempdir) / ("cfile-" + uuid.uuid4().hex)
            with open(p, "w") as f:
                f.write(some_text)
            return p

        yield make_temp_file
