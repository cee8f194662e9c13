"""Template metadata loading.

A metadata file is YAML with three top-level keys::

    version: "1.0.0"
    prompts:   {key: question fields, ...}   # ordered
    filters:   {glob: condition, ...}        # ordered

Conditions are compiled while loading.  A condition that does not parse is
reported once as a warning and then behaves as always-false, so a typo in a
template never aborts a generation run.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from quasarkit.config import DEFAULT_METADATA_PATH
from quasarkit.errors import MetadataError
from quasarkit.filters import FilterEngine
from quasarkit.schema.models import PromptSchema
from quasarkit.utils import print_warning


class TemplateMetadata(BaseModel):
    """Everything a template declares about how it is generated."""

    version: str = Field(default="0.0.0")
    prompts: PromptSchema = Field(default_factory=PromptSchema)
    filters: dict[str, str] = Field(default_factory=dict)

    def filter_engine(self) -> FilterEngine:
        return FilterEngine.from_mapping(self.filters)

    def helpers(self) -> dict[str, Callable[[], Any]]:
        """Template helpers exposed to the renderer (e.g. ``template_version()``)."""
        version = self.version
        return {"template_version": lambda: version}

    def condition_warnings(self) -> list[str]:
        """Describe every ``when`` or filter condition that failed to parse."""
        messages = [
            f"prompt {q.key!r}: {q.condition.error}"  # type: ignore[union-attr]
            for q in self.prompts.questions
            if q.has_invalid_condition
        ]
        messages.extend(
            f"filter {rule.pattern!r}: {rule.condition.error}"  # type: ignore[attr-defined]
            for rule in self.filter_engine().invalid_rules
        )
        return messages


def parse_metadata(data: Any, source: str = "<metadata>") -> TemplateMetadata:
    """Validate an already-decoded metadata mapping.

    Raises:
        MetadataError: If the structure is not valid metadata.
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise MetadataError(f"{source}: expected a mapping at the top level")

    prompts = data.get("prompts") or {}
    filters = data.get("filters") or {}
    if not isinstance(prompts, dict) or not isinstance(filters, dict):
        raise MetadataError(f"{source}: 'prompts' and 'filters' must be mappings")

    try:
        metadata = TemplateMetadata(
            version=str(data.get("version", "0.0.0")),
            prompts=PromptSchema.from_mapping(prompts),
            filters={str(k): str(v) for k, v in filters.items()},
        )
    except (ValidationError, TypeError) as exc:
        raise MetadataError(f"{source}: {exc}") from exc

    for message in metadata.condition_warnings():
        print_warning(f"{source}: ignoring invalid condition in {message}")
    return metadata


def load_metadata(path: Optional[str | Path] = None) -> TemplateMetadata:
    """Load template metadata from *path* (the bundled Quasar kit by default).

    Raises:
        MetadataError: If the file is missing, is not YAML, or is not valid
            metadata.
    """
    meta_path = Path(path) if path is not None else DEFAULT_METADATA_PATH
    try:
        raw = yaml.safe_load(meta_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise MetadataError(f"cannot read metadata file {meta_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise MetadataError(f"{meta_path} is not valid YAML: {exc}") from exc
    return parse_metadata(raw, source=str(meta_path))
