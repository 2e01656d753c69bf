import typing as ty


def deep_merge(left: ty.Mapping, right: ty.Mapping) -> ty.Dict:
    """Recursive union of two nested mappings, returning a new dict.

    Where both sides hold a mapping at the same key, those are merged into a new
    dict; anywhere else the right-hand value wins and is kept as the very same
    object. Neither argument is modified.

    Example
    --------

    assert deep_merge(
        {"db": {"host": "localhost", "port": 5432}, "debug": False},
        {"db": {"port": 6543}, "debug": {"sql": True}},
    ) == {"db": {"host": "localhost", "port": 6543}, "debug": {"sql": True}}
    """
    merged = dict(left)
    for key, value in right.items():
        existing = merged.get(key)
        if isinstance(existing, ty.Mapping) and isinstance(value, ty.Mapping):
            merged[key] = deep_merge(existing, value)
        else:
            merged[key] = value
    return merged
