"""embedify pipeline orchestrator.

Generates one embed component and registers it everywhere the project
expects it:

Step 1: GENERATE -- render ``src/embed-components/<Name>.svelte``.
Step 2: CHECK    -- refuse a lookup key already registered to another component.
Step 3: STAGE    -- patch every registry document in memory.
Step 4: VALIDATE -- re-scan every staged document for balanced delimiters.
Step 5: COMMIT   -- write all staged documents, or none of them.
Step 6: PUSH     -- optionally push the written files to GitHub.

A failure in step 1 or 2 is fatal.  A failing patch is recorded for its
file; in transactional mode (the default) it discards the whole batch, in
best-effort mode the remaining files are still written.

Usage::

    python -m embedify Banner
    python -m embedify Banner --root ./site --best-effort
    python -m embedify Banner --push acme/embeds --branch main
"""

from __future__ import annotations

import asyncio
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from pydantic import BaseModel, Field

from .config import Config
from .errors import DecodeError, EmbedifyError, LookupKeyCollisionError, PatchError
from .parser.extractor import extract_instance_script
from .parser.models import ComponentResult, StepResult, StepStatus
from .patcher import (
    PatchOutcome,
    check_balanced,
    ensure_prelude,
    patch_playground,
    read_mapping,
    upsert_entry,
    upsert_switch_case,
)
from .publisher import GitHubPublisher, PushResult
from .scaffolder.formatter import PrettierFormatter
from .scaffolder.generator import ComponentGenerator
from .scaffolder.schema import (
    BRAND_COLOR_FIELDS,
    COMMON_FIELDS,
    FIELD_TYPES,
    mock_value,
    schema_literal,
    synthesize_schema,
)
from .scaffolder.templates import TemplateRenderer, js_string, to_js
from .utils import (
    console,
    is_declaration_name,
    print_error,
    print_step_table,
    print_success,
    print_summary_table,
    print_warning,
    read_text,
    relative_to,
    write_text,
)

EMBED_REGISTRY = "embedRegistry"
CONFIG_REGISTRY = "embedConfigRegistry"
COMPONENT_PROPS = "componentProps"
LOADER_MAPPING = "embedComponents"
BUNDLER_INPUT = "input"
MOCK_FUNCTION = "getMockPropertiesForEmbed"
MOCK_DISCRIMINANT = "embedName"
PRELUDE_MARKER = "COMMON_FIELDS"

# ---------------------------------------------------------------------------
# Exceptions and results
# ---------------------------------------------------------------------------


class PipelineError(EmbedifyError):
    """Raised when a run cannot continue (generation or commit failure)."""


@dataclass
class StagedFile:
    """In-memory content of a target file; ``original`` is ``None`` for new files."""
    path: Path
    original: Optional[str]
    text: str

    @property
    def dirty(self) -> bool:
        return self.text != self.original


class RunReport(BaseModel):
    """Everything a run did, in order."""

    component: Optional[ComponentResult] = None
    steps: list[StepResult] = Field(default_factory=list)
    written: list[Path] = Field(default_factory=list)
    pushed: list[PushResult] = Field(default_factory=list)
    committed: bool = False
    success: bool = False
    error: Optional[str] = None

    @property
    def failed_steps(self) -> list[StepResult]:
        return [step for step in self.steps if step.status is StepStatus.ERROR]


def import_path(target: Path, component: Path) -> str:
    """Relative module specifier from *target*'s directory to *component*."""
    rel = os.path.relpath(component, target.parent).replace(os.sep, "/")
    return rel if rel.startswith(".") else f"./{rel}"


def import_line(component_name: str, target: Path, component: Path) -> str:
    return f"import {component_name} from {js_string(import_path(target, component))};"


# ---------------------------------------------------------------------------
# Pipeline Orchestrator
# ---------------------------------------------------------------------------


class Pipeline:
    """Drives one embedify run.

    Attributes:
        config: Run configuration (paths, modes, remote).
        generator: Component generator (with the optional formatter).
        publisher: GitHub publisher, or ``None`` when pushing is disabled.
    """

    def __init__(
        self,
        config: Config,
        generator: ComponentGenerator | None = None,
        publisher: GitHubPublisher | None = None,
    ) -> None:
        self.config = config
        self.renderer = TemplateRenderer()
        if generator is None:
            formatter = None
            if config.format.enabled:
                formatter = PrettierFormatter(
                    config.format.command, cwd=config.root_dir, timeout=config.format.timeout
                )
            generator = ComponentGenerator(self.renderer, formatter)
        self.generator = generator
        if publisher is None and config.github.enabled:
            publisher = GitHubPublisher(
                config.github.repo,
                token=config.github.token,
                branch=config.github.branch,
                api_url=config.github.api_url,
                timeout=config.github.timeout,
            )
        self.publisher = publisher
        self._staged: dict[Path, StagedFile] = {}
        self._invalid: set[Path] = set()
        self._schema_entry = ""
        self._prelude = ""
        self._mock_case = ""
        self.report = RunReport()

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    async def run(self, component_name: str) -> RunReport:
        """Execute a full run for *component_name* and return its report."""
        self._staged = {}
        self._invalid = set()
        self.report = RunReport()

        try:
            component = await self._generate(component_name)
            await self._check_collision(component)
        except (EmbedifyError, OSError) as exc:
            self.report.error = str(exc)
            self._print_report()
            return self.report

        self._prepare_snippets(component)
        await self._stage_all(component)
        self._validate()

        failed = self.report.failed_steps
        if failed and self.config.transactional:
            names = ", ".join(step.name for step in failed)
            self.report.error = f"Nothing written: {names} failed"
            self._print_report()
            return self.report

        if not self.config.dry_run:
            try:
                self.report.written = await self._commit()
            except PipelineError as exc:
                self.report.error = str(exc)
                self._print_report()
                return self.report
            self.report.committed = True
            if self.publisher is not None and self.report.written:
                await self._push(self.report.written)

        self.report.success = True
        self._print_report()
        return self.report

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def _generate(self, component_name: str) -> ComponentResult:
        if not is_declaration_name(component_name):
            raise PipelineError(
                f"Component name should be PascalCase, e.g. MyComponent (got '{component_name}')"
            )
        path = self.config.component_path(component_name)
        existing = await read_text(path)
        component = await self.generator.generate(component_name, path, existing)
        self.report.component = component

        self._staged[path.resolve()] = StagedFile(path=path, original=existing, text=component.text)
        self._record("component", path, existing is None, existing != component.text)
        return component

    async def _check_collision(self, component: ComponentResult) -> None:
        try:
            text = await read_text(self.config.embed_registry_path)
            if text is None:
                return
            registered = read_mapping(text, EMBED_REGISTRY)
        except (PatchError, DecodeError):
            # An unreadable or malformed registry is reported by its own step.
            return
        existing = registered.get(component.lookup_key)
        if existing is None or existing.strip() == component.component_name:
            return
        if self.config.force:
            print_warning(
                f"Overwriting lookup key '{component.lookup_key}' "
                f"(was {existing.strip()})"
            )
            return
        raise LookupKeyCollisionError(
            component.lookup_key, existing.strip(), component.component_name
        )

    # ------------------------------------------------------------------
    # Staging
    # ------------------------------------------------------------------

    def _prepare_snippets(self, component: ComponentResult) -> None:
        """Render the registry snippets for *component* once per run."""
        self._schema_entry = self.renderer.render(
            "config_entry.js.j2",
            {
                "schema": {
                    name: schema_literal(entry)
                    for name, entry in synthesize_schema(component.fields).items()
                }
            },
        )
        self._prelude = self.renderer.render(
            "config_prelude.js.j2",
            {
                "field_types": FIELD_TYPES,
                "common_fields": {k: schema_literal(v) for k, v in COMMON_FIELDS.items()},
                "brand_color_fields": {k: schema_literal(v) for k, v in BRAND_COLOR_FIELDS.items()},
            },
        )
        self._mock_case = self.renderer.render(
            "mock_case.js.j2",
            {"values": {field.name: mock_value(field) for field in component.fields}},
        )

    async def _stage_all(self, component: ComponentResult) -> None:
        cfg = self.config
        name = component.component_name
        key = component.lookup_key
        component_path = component.path

        def registry_bootstrap(mapping_name: str) -> Callable[[], str]:
            return lambda: self.renderer.render("registry.js.j2", {"mapping_name": mapping_name})

        def loader_bootstrap() -> str:
            return self.renderer.render("embed-loader.js.j2", {"mapping_name": LOADER_MAPPING})

        rollup = cfg.rollup_config_path
        await self._patch_step(
            "bundler input",
            rollup,
            lambda text: upsert_entry(
                text,
                BUNDLER_INPUT,
                name,
                js_string(relative_to(component_path, cfg.root_dir)),
                import_line(name, rollup, component_path),
                create_if_missing=False,
            ),
            bootstrap=lambda: self.renderer.render("rollup.config.js.j2", {}),
        )

        registry = cfg.embed_registry_path
        await self._patch_step(
            "component registry",
            registry,
            lambda text: upsert_entry(
                text, EMBED_REGISTRY, key, name, import_line(name, registry, component_path)
            ),
            bootstrap=registry_bootstrap(EMBED_REGISTRY),
        )

        await self._patch_step(
            "schema registry",
            cfg.config_registry_path,
            self._patch_config_registry(key),
            bootstrap=registry_bootstrap(CONFIG_REGISTRY),
        )

        await self._patch_step(
            "props registry",
            cfg.component_props_path,
            lambda text: upsert_entry(
                text, COMPONENT_PROPS, key, to_js([field.name for field in component.fields])
            ),
            bootstrap=registry_bootstrap(COMPONENT_PROPS),
        )

        await self._patch_step(
            "mock data",
            cfg.mock_data_path,
            lambda text: upsert_switch_case(
                text, MOCK_FUNCTION, MOCK_DISCRIMINANT, key, self._mock_case
            ),
            missing_detail=f"{MOCK_FUNCTION}() not found",
        )

        loader = cfg.embed_loader_path
        await self._patch_step(
            "runtime loader",
            loader,
            self._patch_loader(name, key, loader, component_path),
            bootstrap=loader_bootstrap,
        )

        for public_file in cfg.public_embed_paths():
            await self._patch_step(
                f"public {public_file.name}",
                public_file,
                self._patch_loader(name, key, public_file, component_path),
            )

        playground = cfg.playground_path
        if playground.resolve() != component_path.resolve():
            await self._patch_step(
                "playground",
                playground,
                lambda text: patch_playground(
                    text, import_line(name, playground, component_path), key
                ),
            )

    def _patch_config_registry(self, key: str) -> Callable[[str], PatchOutcome]:
        def patch(text: str) -> PatchOutcome:
            with_prelude = ensure_prelude(text, PRELUDE_MARKER, self._prelude).text
            outcome = upsert_entry(with_prelude, CONFIG_REGISTRY, key, self._schema_entry)
            return PatchOutcome(outcome.text, outcome.text != text)

        return patch

    def _patch_loader(
        self, name: str, key: str, target: Path, component_path: Path
    ) -> Callable[[str], PatchOutcome]:
        def patch(text: str) -> PatchOutcome:
            return upsert_entry(
                text,
                LOADER_MAPPING,
                key,
                name,
                import_line(name, target, component_path),
                declaration="const",
            )

        return patch

    async def _patch_step(
        self,
        name: str,
        path: Path,
        patch: Callable[[str], PatchOutcome | None],
        bootstrap: Callable[[], str] | None = None,
        missing_detail: str = "file not found",
    ) -> None:
        """Apply *patch* to the staged text of *path* and record the outcome.

        Files that do not exist are bootstrapped when *bootstrap* is given and
        skipped otherwise.  A patch returning ``None`` means "nothing to patch
        in this file" and is recorded as skipped.
        """
        staged_key = path.resolve()
        created_here = False
        try:
            staged = self._staged.get(staged_key)
            if staged is None:
                original = await read_text(path)
                if original is None and bootstrap is None:
                    self._add(name, path, StepStatus.SKIPPED, "file not found")
                    return
                text = original if original is not None else bootstrap()
                staged = StagedFile(path=path, original=original, text=text)
                self._staged[staged_key] = staged
                created_here = True

            outcome = patch(staged.text)
            if outcome is None:
                self._add(name, path, StepStatus.SKIPPED, missing_detail)
                if created_here and staged.original is None:
                    del self._staged[staged_key]
                return
            staged.text = outcome.text
        except (EmbedifyError, OSError) as exc:
            if created_here:
                del self._staged[staged_key]
            self._add(name, path, StepStatus.ERROR, str(exc))
            return

        self._record(name, path, staged.original is None, outcome.changed)

    # ------------------------------------------------------------------
    # Validation and commit
    # ------------------------------------------------------------------

    def _validate(self) -> None:
        """Re-scan each changed document; a failure is recorded as an error step."""
        for key, staged in self._staged.items():
            if not staged.dirty:
                continue
            text = staged.text
            if staged.path.suffix == ".svelte":
                text = extract_instance_script(text)
            try:
                check_balanced(text)
            except EmbedifyError as exc:
                self._invalid.add(key)
                self._add("validate", staged.path, StepStatus.ERROR, str(exc))

    async def _commit(self) -> list[Path]:
        """Write every dirty staged file that passed validation.

        In transactional mode a failed write restores the files written so
        far and raises ``PipelineError``; in best-effort mode it is recorded
        and the remaining files are still written.
        """
        written: list[StagedFile] = []
        for key, staged in self._staged.items():
            if not staged.dirty or key in self._invalid:
                continue
            try:
                await write_text(staged.path, staged.text)
            except OSError as exc:
                if self.config.transactional:
                    await self._rollback(written)
                    raise PipelineError(
                        f"Writing {staged.path} failed ({exc}); "
                        f"restored {len(written)} file(s)"
                    ) from exc
                self._add("commit", staged.path, StepStatus.ERROR, str(exc))
                continue
            written.append(staged)
        return [staged.path for staged in written]

    async def _rollback(self, written: list[StagedFile]) -> None:
        for staged in reversed(written):
            if staged.original is None:
                await asyncio.to_thread(staged.path.unlink, missing_ok=True)
            else:
                await write_text(staged.path, staged.original)

    # ------------------------------------------------------------------
    # Remote push
    # ------------------------------------------------------------------

    async def _push(self, paths: list[Path]) -> None:
        assert self.publisher is not None
        for path in paths:
            staged = self._staged[path.resolve()]
            remote_path = relative_to(path, self.config.root_dir)
            result = await self.publisher.push_file(remote_path, staged.text)
            self.report.pushed.append(result)
            if result.success:
                status = StepStatus.NEW if result.created else StepStatus.CHANGED
                self._add("push", path, status, self.publisher.repo)
            else:
                self._add("push", path, StepStatus.ERROR, result.error or "push failed")

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def _record(self, name: str, path: Path, created: bool, changed: bool) -> None:
        if created:
            status = StepStatus.NEW
        elif changed:
            status = StepStatus.CHANGED
        else:
            status = StepStatus.UNCHANGED
        self._add(name, path, status)

    def _add(self, name: str, path: Path, status: StepStatus, detail: str = "") -> None:
        self.report.steps.append(StepResult(name=name, path=path, status=status, detail=detail))

    def _print_report(self) -> None:
        report = self.report
        rows = [
            (
                step.name,
                relative_to(step.path, self.config.root_dir) if step.path else "",
                step.status.value,
                step.detail,
            )
            for step in report.steps
        ]
        if rows:
            print_step_table(rows, title="embedify")

        if report.component is not None:
            component = report.component
            print_summary_table(
                {
                    "Component": f"{component.component_name} ({component.lookup_key})",
                    "Fields": ", ".join(field.name for field in component.fields),
                    "Formatted": "yes" if component.formatted else "no",
                    "Mode": "transactional" if self.config.transactional else "best-effort",
                    "Written": "dry run" if self.config.dry_run else str(len(report.written)),
                },
                title="Summary",
            )

        if report.error:
            print_error(f"Error: {report.error}")
        elif report.failed_steps:
            print_warning(f"Completed with {len(report.failed_steps)} failed step(s).")
        else:
            print_success("All relevant files updated.")


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``embedify`` / ``python -m embedify``."""
    import argparse

    parser = argparse.ArgumentParser(
        prog="embedify",
        description="Generate a Svelte embed component and register it across the project",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  embedify Banner\n"
            "  embedify Banner --root ./site --best-effort\n"
            "  embedify Banner --push acme/embeds --branch main\n"
        ),
    )
    parser.add_argument("component", help="PascalCase component name, e.g. MyComponent")
    parser.add_argument("--root", default=None, help="Project root (default: $EMBEDIFY_ROOT or .)")
    parser.add_argument("--config", default=None, help="JSON configuration file")
    parser.add_argument(
        "--best-effort",
        action="store_true",
        help="Write every file that patched cleanly even if another step failed",
    )
    parser.add_argument("--force", action="store_true", help="Overwrite a colliding lookup key")
    parser.add_argument("--no-format", action="store_true", help="Skip Prettier formatting")
    parser.add_argument("--dry-run", action="store_true", help="Report changes without writing")
    parser.add_argument("--push", default=None, metavar="OWNER/REPO", help="Push written files to GitHub")
    parser.add_argument("--branch", default=None, help="Branch to push to (default: main)")

    args = parser.parse_args(argv)

    try:
        if args.config:
            config = Config.load(Path(args.config))
        else:
            config = Config.from_env()
    except (OSError, ValueError) as exc:
        console.print(f"[bold red]Error:[/bold red] Invalid configuration: {exc}")
        sys.exit(1)

    if args.root:
        config.root_dir = Path(args.root)
    if args.best_effort:
        config.transactional = False
    if args.force:
        config.force = True
    if args.no_format:
        config.format.enabled = False
    if args.dry_run:
        config.dry_run = True
    if args.push:
        config.github.repo = args.push
        if not config.github.token:
            config.github.token = os.environ.get("GITHUB_TOKEN", "")
    if args.branch:
        config.github.branch = args.branch

    component_name = args.component.strip()
    console.print(f"Generating embed component for: [bold]{component_name}[/bold]")

    try:
        pipeline = Pipeline(config)
    except ValueError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)

    report = asyncio.run(pipeline.run(component_name))
    if not report.success:
        sys.exit(1)


if __name__ == "__main__":
    main()
