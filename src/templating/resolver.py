"""Placeholder substitution for manifest templates.

Placeholders have the form ``${{ dotted.path }}``. A leading ``secrets``
segment reads from the secrets tree and is only honoured when the caller
passes ``secrets_allowed=True``; nothing ever falls back to the values
tree for such an expression.
"""

from __future__ import annotations

import datetime as dt
import json
import re
from typing import Any

from loguru import logger

from src.infra.errors import SecretsForbidden, TemplateError, UnknownPlaceholderKey

from .config_tree import NOT_FOUND, ConfigNode, ConfigTree

PLACEHOLDER_PATTERN = re.compile(r"\$\{\{\s*(.*?)\s*\}\}")
SECRETS_SEGMENT = "secrets"


def render_value(value: ConfigNode) -> str:
    """Render a configuration value as placeholder replacement text.

    Composite values are emitted as compact JSON (valid YAML flow style)
    and are not expanded any further.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return value.isoformat()
    return json.dumps(value, separators=(",", ":"), default=str)


class PlaceholderResolver:
    """Resolves ``${{ expr }}`` tokens against values and secrets."""

    def __init__(self, values: ConfigTree, secrets: ConfigTree | None = None):
        self._values = values
        self._secrets = secrets

    def lookup(self, expression: str, secrets_allowed: bool) -> ConfigNode:
        """Look up a single placeholder expression.

        Raises:
            SecretsForbidden: ``secrets.`` expression without permission
            UnknownPlaceholderKey: Path missing from the targeted tree
        """
        segments = expression.split(".")
        tree: ConfigTree | None = self._values
        if segments[0] == SECRETS_SEGMENT:
            if not secrets_allowed:
                raise SecretsForbidden(expression)
            tree = self._secrets
            segments = segments[1:]

        if tree is None or not segments:
            raise UnknownPlaceholderKey(expression)

        value = tree.get(segments)
        if value is NOT_FOUND:
            raise UnknownPlaceholderKey(expression)
        logger.debug(f"Resolved placeholder {expression}")
        return value

    def resolve(self, text: str, secrets_allowed: bool) -> str:
        """Substitute every placeholder in ``text``."""

        def replacer(match: re.Match[str]) -> str:
            return render_value(self.lookup(match.group(1), secrets_allowed))

        return PLACEHOLDER_PATTERN.sub(replacer, text)

    def resolve_scalar(self, text: str, secrets_allowed: bool) -> Any:
        """Resolve a scalar leaf, keeping native bool/number types.

        A leaf made of exactly one placeholder that points at a boolean or
        number keeps that type; everything else is resolved to a string.
        """
        match = PLACEHOLDER_PATTERN.match(text)
        if match is not None and match.end() == len(text):
            value = self.lookup(match.group(1), secrets_allowed)
            if isinstance(value, (bool, int, float)):
                return value
            return render_value(value)
        return self.resolve(text, secrets_allowed)

    def apply(self, node: ConfigNode, secrets_allowed: bool) -> ConfigNode:
        """Walk a parsed document and resolve every scalar leaf.

        Mapping keys, mapping values and sequence items are all visited.
        Non-string scalars cannot carry placeholders and pass through.

        Raises:
            TemplateError: If two mapping keys resolve to the same key
        """
        if isinstance(node, dict):
            resolved: dict[Any, ConfigNode] = {}
            for key, value in node.items():
                new_key = self._apply_key(key, secrets_allowed)
                if new_key in resolved:
                    raise TemplateError(
                        f"Duplicate mapping key {new_key!r} after resolving placeholders"
                    )
                resolved[new_key] = self.apply(value, secrets_allowed)
            return resolved
        if isinstance(node, list):
            return [self.apply(item, secrets_allowed) for item in node]
        if isinstance(node, str):
            return self.resolve_scalar(node, secrets_allowed)
        return node

    def _apply_key(self, key: Any, secrets_allowed: bool) -> Any:
        if isinstance(key, str):
            return self.resolve(key, secrets_allowed)
        return key
