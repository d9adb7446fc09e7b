"""
Traversal helpers for decoded JSON values.

The walk is pure: it yields the location of every string leaf and leaves
counting and document mutation to the caller.
"""

from __future__ import annotations

from typing import Any, Iterator, Tuple, Union

from .urls import is_asset_path

Locator = Tuple[Union[str, int], ...]


def iter_strings(value: Any, locator: Locator = ()) -> Iterator[Tuple[Locator, str]]:
    """Yield (locator, string) for every string leaf, depth first."""
    if isinstance(value, dict):
        for key, item in value.items():
            yield from iter_strings(item, locator + (key,))
    elif isinstance(value, list):
        for index, item in enumerate(value):
            yield from iter_strings(item, locator + (index,))
    elif isinstance(value, str):
        yield locator, value


def iter_asset_candidates(value: Any) -> Iterator[Tuple[Locator, str]]:
    """Only the string leaves that look like local asset paths."""
    for locator, text in iter_strings(value):
        if is_asset_path(text):
            yield locator, text


def set_at(value: Any, locator: Locator, new_value: Any) -> None:
    """Assign new_value at locator inside a decoded JSON container."""
    if not locator:
        raise ValueError("Cannot replace the root of a JSON value in place")
    container = value
    for step in locator[:-1]:
        container = container[step]
    container[locator[-1]] = new_value
