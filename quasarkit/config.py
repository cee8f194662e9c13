"""quasarkit configuration.

Typed settings for one generation run.  The working directory is an explicit
field rather than an implicit ``os.getcwd()`` so the post-generation pipeline
can be driven from tests or from a host tool that generates elsewhere.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_METADATA_PATH = Path(__file__).parent / "meta" / "quasar.yml"

_TRUE_STRINGS = {"1", "true", "yes", "on"}


class Config(BaseModel):
    """Settings for scaffolding a single project.

    Attributes:
        metadata_path: Template metadata file (prompts, filters, helpers).
        cwd: Directory the destination is resolved against.
        dest_dir_name: Name of the project directory to create.
        in_place: Generate directly into ``cwd`` instead of a subdirectory.
        stream_output: Let installer and linter output go straight to the
            terminal instead of being captured.
    """

    metadata_path: Path = Field(default=DEFAULT_METADATA_PATH)
    cwd: Path = Field(default_factory=Path.cwd)
    dest_dir_name: str = Field(default="")
    in_place: bool = Field(default=False)
    stream_output: bool = Field(default=True)

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------

    @property
    def project_root(self) -> Path:
        """``cwd / dest_dir_name``, or ``cwd`` itself when generating in place."""
        if self.in_place:
            return self.cwd
        return self.cwd / self.dest_dir_name

    @property
    def manifest_path(self) -> Path:
        """The generated project's ``package.json``."""
        return self.project_root / "package.json"

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        return cls.model_validate_json(Path(path).read_text(encoding="utf-8"))

    @classmethod
    def from_env(cls, dest_dir_name: str = "", in_place: Optional[bool] = None) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            QUASARKIT_METADATA, QUASARKIT_CWD, QUASARKIT_IN_PLACE,
            QUASARKIT_STREAM_OUTPUT.
        """
        kwargs: dict[str, object] = {"dest_dir_name": dest_dir_name}
        if os.environ.get("QUASARKIT_METADATA"):
            kwargs["metadata_path"] = Path(os.environ["QUASARKIT_METADATA"])
        if os.environ.get("QUASARKIT_CWD"):
            kwargs["cwd"] = Path(os.environ["QUASARKIT_CWD"])
        if os.environ.get("QUASARKIT_STREAM_OUTPUT"):
            kwargs["stream_output"] = (
                os.environ["QUASARKIT_STREAM_OUTPUT"].strip().lower() in _TRUE_STRINGS
            )
        if in_place is None and os.environ.get("QUASARKIT_IN_PLACE"):
            in_place = os.environ["QUASARKIT_IN_PLACE"].strip().lower() in _TRUE_STRINGS
        if in_place is not None:
            kwargs["in_place"] = in_place
        return cls(**kwargs)
