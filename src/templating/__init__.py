"""Manifest templating.

Example:
    from src.templating import ConfigTree, DocumentPipeline

    pipeline = DocumentPipeline(ConfigTree({"deployment": "demo"}))
    pipeline.transform(Path("deploy.yaml"), Path(".tmp/10-app.2.deploy.yaml"), False)
"""

from .config_tree import NOT_FOUND, ConfigNode, ConfigTree
from .pipeline import DocumentPipeline, split_documents
from .resolver import PLACEHOLDER_PATTERN, PlaceholderResolver, render_value

__all__ = [
    "ConfigNode",
    "ConfigTree",
    "DocumentPipeline",
    "NOT_FOUND",
    "PLACEHOLDER_PATTERN",
    "PlaceholderResolver",
    "render_value",
    "split_documents",
]
