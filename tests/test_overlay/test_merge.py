from collections import defaultdict
from types import MappingProxyType

import pytest

from thds.overlay.merge import deep_merge


@pytest.mark.parametrize(
    "left,right,expected",
    [
        ({}, {}, {}),
        ({"a": 1}, {}, {"a": 1}),
        ({}, {"a": 1}, {"a": 1}),
        ({"a": 1, "b": 2}, {"b": 3}, {"a": 1, "b": 3}),
        ({"ns": {"k1": 1}}, {"ns": {"k2": 2}}, {"ns": {"k1": 1, "k2": 2}}),
        ({"ns": {"k": {"x": 1}}}, {"ns": {"k": {"y": 2}}}, {"ns": {"k": {"x": 1, "y": 2}}}),
        # a non-mapping on either side is replaced whole
        ({"ns": {"k": 1}}, {"ns": {"k": {"y": 2}}}, {"ns": {"k": {"y": 2}}}),
        ({"ns": {"k": {"x": 1}}}, {"ns": {"k": None}}, {"ns": {"k": None}}),
        ({"ns": {"k": [1, 2]}}, {"ns": {"k": [3]}}, {"ns": {"k": [3]}}),
    ],
)
def test_deep_merge(left, right, expected):
    assert deep_merge(left, right) == expected


def test_deep_merge_does_not_mutate_inputs():
    left = {"ns": {"k1": 1}}
    right = {"ns": {"k2": 2}}
    deep_merge(left, right)
    assert left == {"ns": {"k1": 1}}
    assert right == {"ns": {"k2": 2}}


def test_deep_merge_keeps_right_hand_values_as_the_same_objects():
    value = defaultdict(list, x=[1])
    proxy = MappingProxyType({"y": 2})
    merged = deep_merge({"ns": {"k": 1}}, {"ns": {"k": value, "p": proxy}})
    assert merged["ns"]["k"] is value
    assert merged["ns"]["p"] is proxy


def test_deep_merge_builds_new_dicts_where_it_merges():
    left = {"ns": {"k": {"x": 1}}}
    right = {"ns": {"k": {"y": 2}}}
    merged = deep_merge(left, right)
    assert merged["ns"] is not left["ns"]
    assert merged["ns"]["k"] == {"x": 1, "y": 2}
    assert left == {"ns": {"k": {"x": 1}}}
