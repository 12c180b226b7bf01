"""Multi-document manifest rendering.

Each source file is split into YAML documents, every document is parsed,
walked with the placeholder resolver and dumped again. Output is only
written once all documents of a file rendered successfully.
"""

from __future__ import annotations

import re
from pathlib import Path

import yaml  # type: ignore[import-untyped]
from loguru import logger

from src.infra.constants import DEFAULT_CONSTANTS
from src.infra.errors import TemplateError

from .config_tree import ConfigTree
from .resolver import PlaceholderResolver

DOCUMENT_SPLIT_PATTERN = re.compile(r"^---[ \t]*$", re.MULTILINE)
DOCUMENT_JOINER = f"\n{DEFAULT_CONSTANTS.DOCUMENT_SEPARATOR}\n"


def split_documents(content: str) -> list[str]:
    """Split a YAML stream on separator lines, normalizing line endings."""
    content = content.replace("\r\n", "\n")
    return DOCUMENT_SPLIT_PATTERN.split(content)


class DocumentPipeline:
    """Renders manifest files with public or public+secret resolution.

    Attributes:
        resolver: Resolver holding the values tree and, when supplied,
            the secrets tree
    """

    def __init__(self, values: ConfigTree, secrets: ConfigTree | None = None):
        """Initialize the pipeline.

        Args:
            values: Public configuration values
            secrets: Secret values, or None when no secrets were supplied
        """
        self.resolver = PlaceholderResolver(values, secrets)

    def render(self, content: str, secrets_allowed: bool, source: str = "<string>") -> str:
        """Render a YAML stream and return the joined output text.

        Raises:
            UnknownPlaceholderKey: A placeholder key is missing
            SecretsForbidden: A secret was referenced without permission
            TemplateError: A document is not valid YAML
        """
        rendered: list[str] = []
        for raw in split_documents(content):
            try:
                document = yaml.safe_load(raw)
            except yaml.YAMLError as e:
                raise TemplateError(f"Invalid YAML in {source}", details=str(e)) from e
            if document is None:
                continue

            resolved = self.resolver.apply(document, secrets_allowed)
            text = yaml.safe_dump(
                resolved,
                sort_keys=False,
                default_flow_style=False,
                allow_unicode=True,
            )
            if text.startswith("!"):
                text = text[text.find("\n") + 1 :] if "\n" in text else ""
            rendered.append(text.strip())

        return DOCUMENT_JOINER.join(rendered)

    def transform(self, source: Path, destination: Path, secrets_allowed: bool) -> Path:
        """Render ``source`` into ``destination`` with a ``.yaml`` extension.

        Args:
            source: Template file to read
            destination: Staging path; its extension is normalized
            secrets_allowed: Whether ``secrets.`` placeholders may resolve

        Returns:
            Path of the written file
        """
        content = source.read_text(encoding="utf-8")
        output = self.render(content, secrets_allowed, source=str(source))

        target = destination.with_suffix(DEFAULT_CONSTANTS.MANIFEST_EXTENSION)
        target.write_text(output, encoding="utf-8")
        logger.debug(f"Rendered {source} -> {target}")
        return target
