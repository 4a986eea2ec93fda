"""Integration tests for a complete embedify run.

These tests drive the real generator, patchers and CLI against the sample
project tree from ``conftest.py`` and verify the files on disk.

No external services (Prettier, GitHub) are required.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

from embedify.config import Config, FormatConfig
from embedify.parser.extractor import extract_fields, extract_instance_script
from embedify.patcher import check_balanced, read_mapping
from embedify.pipeline import Pipeline
from embedify.utils import run_command

PACKAGE_ROOT = Path(__file__).resolve().parents[2]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _snapshot(root: Path) -> dict[str, str]:
    return {
        path.relative_to(root).as_posix(): path.read_text(encoding="utf-8")
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


async def _run_cli(*args: str) -> tuple[int, str, str]:
    env = {"PYTHONPATH": str(PACKAGE_ROOT), "EMBEDIFY_FORMAT": "0", "GITHUB_TOKEN": ""}
    return await run_command(
        [sys.executable, "-m", "embedify", *args], timeout=120, env=env
    )


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

@pytest.mark.integration
class TestEmbedifyEndToEnd:
    """Run the CLI as a user would and inspect the project afterwards."""

    @pytest.mark.asyncio
    async def test_cli_generates_and_registers(self, project_root: Path):
        returncode, stdout, stderr = await _run_cli("Banner", "--root", str(project_root))
        assert returncode == 0, stderr

        component = (project_root / "src/embed-components/Banner.svelte").read_text(encoding="utf-8")
        names = [f.name for f in extract_fields(extract_instance_script(component))]
        assert names == [
            "tagName",
            "brand_colors_primary",
            "brand_colors_text_on_primary",
            "component_width",
        ]

        for relative in (
            "rollup.config.js",
            "src/lib/embed-registry.js",
            "src/lib/embed-config-registry.js",
            "src/lib/component-props.js",
            "public/embed-loader.js",
            "public/embed-widget.js",
        ):
            check_balanced((project_root / relative).read_text(encoding="utf-8"))

        registry = (project_root / "src/lib/embed-registry.js").read_text(encoding="utf-8")
        assert read_mapping(registry, "embedRegistry") == {"tab-component": "Tab", "banner": "Banner"}

    @pytest.mark.asyncio
    async def test_cli_second_run_is_byte_identical(self, project_root: Path):
        returncode, _, stderr = await _run_cli("Banner", "--root", str(project_root))
        assert returncode == 0, stderr
        first = _snapshot(project_root)

        returncode, _, stderr = await _run_cli("Banner", "--root", str(project_root))
        assert returncode == 0, stderr
        assert _snapshot(project_root) == first

    @pytest.mark.asyncio
    async def test_cli_rejects_bad_name(self, project_root: Path):
        before = _snapshot(project_root)
        returncode, _, _ = await _run_cli("my-banner", "--root", str(project_root))
        assert returncode == 1
        assert _snapshot(project_root) == before

    @pytest.mark.asyncio
    async def test_regeneration_picks_up_new_fields(self, config: Config, project_root: Path):
        await Pipeline(config).run("Banner")

        component_path = project_root / "src/embed-components/Banner.svelte"
        edited = component_path.read_text(encoding="utf-8").replace(
            '  export let component_width = "auto";\n',
            '  export let component_width = "auto";\n  export let title = "Hello";\n',
        )
        component_path.write_text(edited, encoding="utf-8")

        report = await Pipeline(config).run("Banner")
        assert report.success is True

        props = read_mapping(
            (project_root / "src/lib/component-props.js").read_text(encoding="utf-8"),
            "componentProps",
        )
        assert props["banner"] == (
            "['brand_colors_primary', 'brand_colors_text_on_primary', 'component_width', 'title']"
        )

        config_registry = (project_root / "src/lib/embed-config-registry.js").read_text(encoding="utf-8")
        entry = read_mapping(config_registry, "embedConfigRegistry")["banner"]
        assert "title: {" in entry
        assert "type: FIELD_TYPES.TEXT" in entry
        assert "default: 'Hello'" in entry
        assert "title: 'Hello'" in config_registry
        assert config_registry.count("case 'banner':") == 1

        assert 'export let title = "Hello";' in component_path.read_text(encoding="utf-8")

    @pytest.mark.asyncio
    async def test_missing_formatter_falls_back(self, project_root: Path):
        config = Config(
            root_dir=project_root,
            format=FormatConfig(enabled=True, command=["embedify-no-such-prettier"]),
        )
        report = await Pipeline(config).run("Banner")
        assert report.success is True
        assert report.component is not None
        assert report.component.formatted is False

    @pytest.mark.asyncio
    async def test_env_root_is_honoured(self, project_root: Path):
        env = {
            "PYTHONPATH": str(PACKAGE_ROOT),
            "EMBEDIFY_ROOT": str(project_root),
            "EMBEDIFY_FORMAT": "false",
        }
        returncode, _, stderr = await run_command(
            [sys.executable, "-m", "embedify", "Banner", "--dry-run"], timeout=120, env=env
        )
        assert returncode == 0, stderr
        assert not (project_root / "src/embed-components/Banner.svelte").exists()
        assert os.path.isdir(project_root / "src/embed-components")
