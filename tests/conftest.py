"""Shared pytest fixtures for the embedify test suite.

Provides reusable fixtures for:
- Sample registry documents shaped like a real embed project
- A temporary project tree holding all of them
- A ``Config`` pointing at that tree with formatting disabled
"""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from embedify.config import Config, FormatConfig


# ---------------------------------------------------------------------------
# Sample documents
# ---------------------------------------------------------------------------

ROLLUP_CONFIG = textwrap.dedent("""\
    import svelte from 'rollup-plugin-svelte';
    import Tab from './src/embed-components/Tab.svelte';

    export default {
      input: {
        Tab: 'src/embed-components/Tab.svelte'
      },
      output: {
        dir: 'public',
        format: 'esm'
      },
      plugins: [svelte()]
    };
""")

EMBED_REGISTRY = textwrap.dedent("""\
    import Tab from '../embed-components/Tab.svelte';

    export const embedRegistry = {
      'tab-component': Tab,
    };
""")

CONFIG_REGISTRY = textwrap.dedent("""\
    const FIELD_TYPES = {
      TEXT: 'text',
      ARRAY: 'array',
      COLOR: 'color',
      SELECT: 'select',
    };

    const COMMON_FIELDS = {};

    const BRAND_COLOR_FIELDS = {};

    export const embedConfigRegistry = {
      'tab-component': {
        fields: {
          ...COMMON_FIELDS,
          ...BRAND_COLOR_FIELDS,
          tabs: {
            type: FIELD_TYPES.ARRAY,
            label: 'Tabs',
            default: [],
          },
        },
      },
    };

    export function getMockPropertiesForEmbed(embedName) {
      switch (embedName) {
        case 'tab-component':
          return { tabs: ['One', 'Two'] };
        default:
          return {};
      }
    }
""")

COMPONENT_PROPS = textwrap.dedent("""\
    // Interactive
    export const componentProps = {
      'tab-component': ['tabs'],
    };
""")

EMBED_LOADER = textwrap.dedent("""\
    import Tab from '../src/embed-components/Tab.svelte';
    export const EmbedModule = {
      async render({ componentType, props, container }) {
        const module = await import(`/embed-components/${componentType}.js`);
        container.appendChild(document.createElement(props.tagName || componentType));
      }
    };
    const embedComponents = {
      'tab-component': Tab
    };
""")

PUBLIC_EMBED = textwrap.dedent("""\
    const embedComponents = {};
""")

PLAYGROUND = textwrap.dedent("""\
    <script>
      import Tab from './Tab.svelte';
    </script>

    <main>
      <tab-component />
    </main>
""")

PROJECT_FILES: dict[str, str] = {
    "rollup.config.js": ROLLUP_CONFIG,
    "src/lib/embed-registry.js": EMBED_REGISTRY,
    "src/lib/embed-config-registry.js": CONFIG_REGISTRY,
    "src/lib/component-props.js": COMPONENT_PROPS,
    "public/embed-loader.js": EMBED_LOADER,
    "public/embed-widget.js": PUBLIC_EMBED,
    "src/embed-components/SveltePlayground.svelte": PLAYGROUND,
}


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------

@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Temporary embed project with every registry document in place."""
    root = tmp_path / "site"
    for relative, content in PROJECT_FILES.items():
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    yield root


@pytest.fixture
def empty_root(tmp_path: Path) -> Path:
    """Project root with no files at all."""
    root = tmp_path / "empty-site"
    root.mkdir()
    yield root


@pytest.fixture
def config(project_root: Path) -> Config:
    """Config rooted at ``project_root`` with Prettier disabled."""
    return Config(root_dir=project_root, format=FormatConfig(enabled=False))


@pytest.fixture
def read_file(project_root: Path):
    """Read a project file by its root-relative path."""

    def _read(relative: str) -> str:
        return (project_root / relative).read_text(encoding="utf-8")

    return _read
