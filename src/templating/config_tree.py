"""Read-only configuration tree with dotted-path lookup."""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from typing import Any, Final


class _NotFound:
    """Sentinel returned by lookups that miss."""

    _instance: _NotFound | None = None

    def __new__(cls) -> _NotFound:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND: Final = _NotFound()

# Scalar | list[ConfigNode] | dict[str, ConfigNode]
ConfigNode = Any


class ConfigTree:
    """Layered key/value store built once per run.

    The wrapped data is deep-copied on construction so later changes to
    the source mapping never leak into a running deployment.
    """

    def __init__(self, data: Mapping[str, ConfigNode] | None = None) -> None:
        self._data: dict[str, ConfigNode] = copy.deepcopy(dict(data or {}))

    @classmethod
    def empty(cls) -> ConfigTree:
        return cls()

    def get(self, path: str | Sequence[str]) -> ConfigNode | _NotFound:
        """Look up a dotted path.

        Args:
            path: Dotted string (``cluster.context``) or sequence of keys

        Returns:
            The node at ``path``, or ``NOT_FOUND`` when a key is missing or
            a non-mapping node is reached before the path is exhausted
        """
        keys = path.split(".") if isinstance(path, str) else list(path)
        node: ConfigNode = self._data
        for key in keys:
            if not isinstance(node, Mapping) or key not in node:
                return NOT_FOUND
            node = node[key]
        return copy.deepcopy(node)

    def __bool__(self) -> bool:
        return bool(self._data)

    def __repr__(self) -> str:
        return f"ConfigTree(keys={sorted(self._data)})"
