"""embedify configuration.

Centralised, typed configuration for a run.  All settings use Pydantic v2
models so they can be validated at construction time and serialised to/from
JSON or environment variables without boiler-plate.  File locations are
stored relative to ``root_dir`` and exposed as absolute ``Path`` properties.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class FormatConfig(BaseModel):
    """Optional Prettier formatting of generated components."""

    enabled: bool = Field(default=True)
    command: list[str] = Field(default_factory=lambda: ["npx", "--no-install", "prettier"])
    timeout: int = Field(default=30, ge=1, description="Formatter timeout in seconds")


class GitHubConfig(BaseModel):
    """Remote repository the updated files are pushed to."""

    repo: str = Field(default="", description="owner/name; empty disables pushing")
    branch: str = Field(default="main")
    token: str = Field(default="", repr=False)
    api_url: str = Field(default="https://api.github.com")
    timeout: int = Field(default=30, ge=1, description="Per-request timeout in seconds")

    @property
    def enabled(self) -> bool:
        return bool(self.repo)


class Config(BaseModel):
    """Global embedify configuration.

    Instances are created once by the CLI entry point (or a test) and passed
    to ``Pipeline``.
    """

    root_dir: Path = Field(default=Path("."))
    components_dir: str = Field(default="src/embed-components")
    rollup_config: str = Field(default="rollup.config.js")
    embed_registry: str = Field(default="src/lib/embed-registry.js")
    config_registry: str = Field(default="src/lib/embed-config-registry.js")
    component_props: str = Field(default="src/lib/component-props.js")
    mock_data: str = Field(default="src/lib/embed-config-registry.js")
    embed_loader: str = Field(default="public/embed-loader.js")
    public_embed_glob: str = Field(default="public/embed-*.js")
    playground: str = Field(default="src/embed-components/SveltePlayground.svelte")

    transactional: bool = Field(
        default=True, description="Write nothing unless every step succeeds"
    )
    force: bool = Field(default=False, description="Overwrite a colliding lookup key")
    dry_run: bool = Field(default=False)

    format: FormatConfig = Field(default_factory=FormatConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def components_path(self) -> Path:
        return self.root_dir / self.components_dir

    @property
    def rollup_config_path(self) -> Path:
        return self.root_dir / self.rollup_config

    @property
    def embed_registry_path(self) -> Path:
        return self.root_dir / self.embed_registry

    @property
    def config_registry_path(self) -> Path:
        return self.root_dir / self.config_registry

    @property
    def component_props_path(self) -> Path:
        return self.root_dir / self.component_props

    @property
    def mock_data_path(self) -> Path:
        return self.root_dir / self.mock_data

    @property
    def embed_loader_path(self) -> Path:
        return self.root_dir / self.embed_loader

    @property
    def playground_path(self) -> Path:
        return self.root_dir / self.playground

    def component_path(self, component_name: str) -> Path:
        """Location of ``<component_name>.svelte``."""
        return self.components_path / f"{component_name}.svelte"

    def public_embed_paths(self) -> list[Path]:
        """Existing files matching ``public_embed_glob``, loader excluded."""
        loader = self.embed_loader_path.resolve()
        return [
            path
            for path in sorted(self.root_dir.glob(self.public_embed_glob))
            if path.is_file() and path.resolve() != loader
        ]

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path | None = None) -> Path:
        """Persist the configuration to a JSON file.

        Args:
            path: Destination file. Defaults to ``<root_dir>/embedify.json``.

        Returns:
            The path where the file was written.
        """
        target = path or (self.root_dir / "embedify.json")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(
            self.model_dump_json(indent=2, exclude={"github": {"token"}}), encoding="utf-8"
        )
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls, **overrides: Any) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            EMBEDIFY_ROOT, EMBEDIFY_BEST_EFFORT, EMBEDIFY_FORMAT,
            EMBEDIFY_PRETTIER, GITHUB_TOKEN, EMBEDIFY_GITHUB_REPO,
            EMBEDIFY_GITHUB_BRANCH.

        Keyword *overrides* win over the environment.
        """
        format_kwargs: dict[str, Any] = {}
        if os.environ.get("EMBEDIFY_FORMAT"):
            format_kwargs["enabled"] = _env_flag(os.environ["EMBEDIFY_FORMAT"])
        if os.environ.get("EMBEDIFY_PRETTIER"):
            format_kwargs["command"] = os.environ["EMBEDIFY_PRETTIER"].split()

        github_kwargs: dict[str, Any] = {}
        if os.environ.get("GITHUB_TOKEN"):
            github_kwargs["token"] = os.environ["GITHUB_TOKEN"]
        if os.environ.get("EMBEDIFY_GITHUB_REPO"):
            github_kwargs["repo"] = os.environ["EMBEDIFY_GITHUB_REPO"]
        if os.environ.get("EMBEDIFY_GITHUB_BRANCH"):
            github_kwargs["branch"] = os.environ["EMBEDIFY_GITHUB_BRANCH"]

        kwargs: dict[str, Any] = {
            "root_dir": Path(os.environ.get("EMBEDIFY_ROOT", ".")),
            "transactional": not _env_flag(os.environ.get("EMBEDIFY_BEST_EFFORT", "")),
            "format": FormatConfig(**format_kwargs),
            "github": GitHubConfig(**github_kwargs),
        }
        kwargs.update(overrides)
        return cls(**kwargs)


def _env_flag(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}
