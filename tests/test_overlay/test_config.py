import pytest

from thds.overlay import config

A = config.item("tests.test_overlay.test_config.A", 1)
B = config.item("tests.test_overlay.test_config.B", 2)
C = config.item("tests.test_overlay.test_config.C", 3, parse=int)
NOT_SET = config.item("tests.test_overlay.test_config.NOT_SET")


def test_recursive_config_load():
    config.set_global_defaults(
        {
            "tests.test_overlay.test_config.A": 10,
            "tests": {"test_overlay": {"test_config": {"C": "20"}}},
        }
    )
    assert A() == 10
    assert C() == 20
    assert B() == 2


def test_set_global_defaults_error():
    with pytest.raises(KeyError, match="Config item tests.test_overlay.not_a_module.E is not registered"):
        config.set_global_defaults({"tests.test_overlay.not_a_module.E": 10})


def test_set_local_only_applies_inside_the_block():
    with B.set_local(7):
        assert B() == 7
    assert B() == 2


def test_unconfigured_items_raise():
    assert not NOT_SET.is_configured()
    with pytest.raises(config.UnconfiguredError):
        NOT_SET()
    assert "tests.test_overlay.test_config.NOT_SET" not in config.show_all_config()


def test_names_cannot_be_registered_twice():
    with pytest.raises(config.ConfigNameCollisionError):
        config.item("tests.test_overlay.test_config.A", 5)


def test_in_module_prefixes_names():
    item = config.in_module("tests.test_overlay.test_config.prefixed")("value", "x")
    assert item.name == "tests.test_overlay.test_config.prefixed.value"
    assert config.config_by_name(item.name) is item


def test_env_var_sets_initial_value(monkeypatch):
    monkeypatch.setenv("TESTS_TEST_OVERLAY_TEST_CONFIG_FROM_ENV", "42")
    item = config.item("tests.test_overlay.test_config.from-env", 0, parse=int)
    assert item() == 42


def test_store_default_name_is_registered():
    from thds.overlay import store  # noqa: F401

    assert config.show_all_config()["thds.overlay.store.default_name"] == "thds.overlay"
