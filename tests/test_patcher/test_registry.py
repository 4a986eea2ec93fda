"""Tests for embedify.patcher.registry.

Covers idempotence, byte-for-byte preservation outside the mapping and
import block, replace-vs-append, nested-brace safety, separators, duplicate
cleanup, header placement, mapping creation and malformed input.
"""

from __future__ import annotations

import textwrap

import pytest

from embedify.errors import MalformedDocumentError, PatchError
from embedify.patcher.registry import (
    ensure_header_line,
    ensure_prelude,
    has_line,
    header_insertion_point,
    read_mapping,
    upsert_entry,
)

pytestmark = pytest.mark.unit

BANNER_IMPORT = "import Banner from '../embed-components/Banner.svelte';"


@pytest.fixture
def registry() -> str:
    return textwrap.dedent("""\
        import Tab from '../embed-components/Tab.svelte';
        import Steps from '../embed-components/Steps.svelte';

        // Keep sorted by hand
        export const embedRegistry = {
          'tab-component': Tab,
          steps: Steps
        };

        export function lookup(key) {
          return embedRegistry[key];
        }
    """)


# ---------------------------------------------------------------------------
# upsert_entry
# ---------------------------------------------------------------------------


class TestUpsertAppend:
    def test_appends_with_separator(self, registry: str):
        outcome = upsert_entry(registry, "embedRegistry", "banner", "Banner", BANNER_IMPORT)
        assert outcome.changed is True
        assert "  steps: Steps,\n  banner: Banner\n};" in outcome.text

    def test_header_after_last_import(self, registry: str):
        text = upsert_entry(registry, "embedRegistry", "banner", "Banner", BANNER_IMPORT).text
        lines = text.splitlines()
        assert lines[0].startswith("import Tab")
        assert lines[1].startswith("import Steps")
        assert lines[2] == BANNER_IMPORT
        assert lines[3] == ""

    def test_preserves_everything_outside_the_mapping(self, registry: str):
        text = upsert_entry(registry, "embedRegistry", "banner", "Banner", BANNER_IMPORT).text
        expected = registry.replace(
            "import Steps from '../embed-components/Steps.svelte';\n",
            "import Steps from '../embed-components/Steps.svelte';\n" + BANNER_IMPORT + "\n",
        ).replace("  steps: Steps\n};", "  steps: Steps,\n  banner: Banner\n};")
        assert text == expected

    def test_idempotent(self, registry: str):
        once = upsert_entry(registry, "embedRegistry", "banner", "Banner", BANNER_IMPORT)
        twice = upsert_entry(once.text, "embedRegistry", "banner", "Banner", BANNER_IMPORT)
        assert twice.changed is False
        assert twice.text == once.text

    def test_trailing_comma_kept(self):
        doc = "export const m = {\n  a: 1,\n};\n"
        text = upsert_entry(doc, "m", "b", "2").text
        assert text == "export const m = {\n  a: 1,\n  b: 2,\n};\n"

    def test_empty_mapping(self):
        doc = "export const m = {};\n"
        text = upsert_entry(doc, "m", "linked-card", "LinkedCard").text
        assert text == "export const m = {\n  'linked-card': LinkedCard\n};\n"

    def test_key_quoting_follows_identifier_rules(self):
        doc = "export const m = {\n  a: 1\n};\n"
        text = upsert_entry(doc, "m", "linked-card", "LinkedCard").text
        assert "'linked-card': LinkedCard" in text
        assert read_mapping(text, "m") == {"a": "1", "linked-card": "LinkedCard"}

    def test_multiline_value_is_indented(self):
        doc = "export const m = {\n    a: 1,\n};\n"
        text = upsert_entry(doc, "m", "b", "{\n  fields: {},\n}").text
        assert "    a: 1,\n    b: {\n      fields: {},\n    },\n};" in text

    def test_property_form_mapping(self):
        doc = "export default {\n  input: {\n    Tab: 'Tab.svelte'\n  },\n  output: {}\n};\n"
        text = upsert_entry(doc, "input", "Banner", "'Banner.svelte'").text
        assert "    Tab: 'Tab.svelte',\n    Banner: 'Banner.svelte'\n  }," in text
        assert "output: {}" in text


class TestUpsertReplace:
    def test_replaces_existing_entry(self, registry: str):
        outcome = upsert_entry(registry, "embedRegistry", "steps", "StepsV2")
        assert outcome.changed is True
        assert "steps: StepsV2\n};" in outcome.text
        assert "steps: Steps\n" not in outcome.text

    def test_quoted_key_matches_bare_lookup(self, registry: str):
        text = upsert_entry(registry, "embedRegistry", "tab-component", "TabV2").text
        assert "'tab-component': TabV2," in text
        assert text.count("tab-component") == 1

    def test_unchanged_entry_reports_no_change(self, registry: str):
        outcome = upsert_entry(registry, "embedRegistry", "steps", "Steps")
        assert outcome.changed is False
        assert outcome.text == registry

    def test_nested_value_replaced_wholesale(self):
        doc = textwrap.dedent("""\
            export const reg = {
              'banner': {
                fields: {
                  title: { default: '}' },
                },
              },
              other: { fields: {} },
            };
        """)
        text = upsert_entry(doc, "reg", "banner", "{ fields: {} }").text
        assert text == textwrap.dedent("""\
            export const reg = {
              banner: { fields: {} },
              other: { fields: {} },
            };
        """)

    def test_nested_braces_in_other_entries_untouched(self):
        doc = textwrap.dedent("""\
            export const reg = {
              tricky: { s: "}", t: `${ {a: 1}.a }`, r: /[{]/ },
            };
        """)
        text = upsert_entry(doc, "reg", "plain", "1").text
        assert '  tricky: { s: "}", t: `${ {a: 1}.a }`, r: /[{]/ },\n  plain: 1,\n};' in text

    def test_later_duplicates_removed(self):
        doc = "export const m = {\n  a: 1,\n  b: 2,\n  a: 3,\n  c: 4\n};\n"
        text = upsert_entry(doc, "m", "a", "9").text
        assert text == "export const m = {\n  a: 9,\n  b: 2,\n  c: 4\n};\n"
        assert read_mapping(text, "m") == {"a": "9", "b": "2", "c": "4"}

    def test_spread_entries_preserved(self):
        doc = "const m = {\n  ...BASE,\n  a: 1,\n};\n"
        text = upsert_entry(doc, "m", "a", "2").text
        assert text == "const m = {\n  ...BASE,\n  a: 2,\n};\n"

    def test_legacy_leading_comma_layout(self):
        doc = "export const embedRegistry = {\n  'github': Github\n,\n  steps: Steps\n};\n"
        once = upsert_entry(doc, "embedRegistry", "banner", "Banner")
        twice = upsert_entry(once.text, "embedRegistry", "banner", "Banner")
        assert read_mapping(once.text, "embedRegistry") == {
            "github": "Github",
            "steps": "Steps",
            "banner": "Banner",
        }
        assert twice.changed is False


class TestMissingMapping:
    def test_appends_declaration(self):
        doc = "import Tab from './Tab.svelte';\n"
        text = upsert_entry(doc, "embedComponents", "banner", "Banner", declaration="const").text
        assert text == (
            "import Tab from './Tab.svelte';\n\n"
            "const embedComponents = {\n  banner: Banner\n};\n"
        )

    def test_empty_document(self):
        text = upsert_entry("", "componentProps", "banner", "['title']").text
        assert text == "export const componentProps = {\n  banner: ['title']\n};\n"

    def test_create_disabled_raises(self):
        with pytest.raises(PatchError, match="input"):
            upsert_entry("export default {};\n", "input", "Banner", "'x'", create_if_missing=False)

    @pytest.mark.parametrize(
        "doc",
        [
            "export const embedRegistry = Object.freeze({\n  tab: Tab,\n});\n",
            "let embedRegistry = buildRegistry();\n",
        ],
    )
    def test_non_literal_declaration_rejected(self, doc: str):
        with pytest.raises(PatchError, match="not an object literal"):
            upsert_entry(doc, "embedRegistry", "banner", "Banner")

    def test_member_access_is_not_a_mapping(self):
        doc = "config.input = {};\n"
        text = upsert_entry(doc, "input", "a", "1").text
        assert text.startswith("config.input = {};\n\nexport const input")


class TestMalformed:
    @pytest.mark.parametrize(
        "doc",
        [
            "export const m = {\n  a: 1,\n",
            "export const m = {\n  a: 'unterminated,\n};\n",
            "export const m = {\n  a: [1, 2},\n};\n",
        ],
    )
    def test_rejected_without_edit(self, doc: str):
        with pytest.raises(MalformedDocumentError):
            upsert_entry(doc, "m", "b", "2", "import B from './B.js';")

    def test_empty_entry_rejected(self):
        with pytest.raises(PatchError, match="Empty entry"):
            upsert_entry("const m = {\n  a: 1,,\n  b: 2\n};\n", "m", "c", "3")


# ---------------------------------------------------------------------------
# read_mapping
# ---------------------------------------------------------------------------


class TestReadMapping:
    def test_reads_keys_and_values(self, registry: str):
        assert read_mapping(registry, "embedRegistry") == {"tab-component": "Tab", "steps": "Steps"}

    def test_duplicate_key_raises(self):
        with pytest.raises(PatchError, match="Duplicate key"):
            read_mapping("const m = { a: 1, 'a': 2 };", "m")

    def test_missing_mapping_raises(self):
        with pytest.raises(PatchError, match="not found"):
            read_mapping("const other = {};", "m")


# ---------------------------------------------------------------------------
# Header lines and preludes
# ---------------------------------------------------------------------------


class TestHeaderLine:
    def test_present_line_is_not_duplicated(self, registry: str):
        line = "import Tab from '../embed-components/Tab.svelte';"
        assert ensure_header_line(registry, line) == registry

    def test_presence_ignores_surrounding_whitespace(self):
        assert has_line("  import A from './A.js';\n", "import A from './A.js';")

    def test_prepended_without_imports(self):
        doc = "// Interactive\nexport const m = {};\n"
        assert ensure_header_line(doc, "import A from './A.js';") == (
            "import A from './A.js';\n// Interactive\nexport const m = {};\n"
        )

    def test_dynamic_import_is_not_an_import_statement(self):
        doc = "const mod = import('./x.js');\nexport const m = {};\n"
        assert header_insertion_point(doc) is None

    def test_import_inside_function_ignored(self):
        doc = "import A from './A.js';\nfunction f() { return import('./B.js'); }\n"
        offset, indent = header_insertion_point(doc)
        assert offset == len("import A from './A.js';\n")
        assert indent == ""

    def test_indented_script_body(self):
        body = "\n  import { onMount } from 'svelte';\n  let a = 1;\n"
        text = ensure_header_line(body, "import A from './A.svelte';")
        assert text == "\n  import { onMount } from 'svelte';\n  import A from './A.svelte';\n  let a = 1;\n"


class TestEnsurePrelude:
    PRELUDE = "const FIELD_TYPES = {};\n\nconst COMMON_FIELDS = {};\n"

    def test_inserted_after_imports(self):
        doc = "import Tab from './Tab.svelte';\nexport const r = {};\n"
        outcome = ensure_prelude(doc, "COMMON_FIELDS", self.PRELUDE)
        assert outcome.changed is True
        assert outcome.text == (
            "import Tab from './Tab.svelte';\n\n"
            "const FIELD_TYPES = {};\n\nconst COMMON_FIELDS = {};\n"
            "export const r = {};\n"
        )

    def test_prepended_without_imports(self):
        outcome = ensure_prelude("export const r = {};\n", "COMMON_FIELDS", self.PRELUDE)
        assert outcome.text == self.PRELUDE + "\nexport const r = {};\n"

    def test_skipped_when_declared(self):
        doc = "const COMMON_FIELDS = { a: 1 };\nexport const r = {};\n"
        outcome = ensure_prelude(doc, "COMMON_FIELDS", self.PRELUDE)
        assert outcome.changed is False
        assert outcome.text == doc

    def test_reference_alone_does_not_count(self):
        doc = "export const r = { x: { ...COMMON_FIELDS } };\n"
        assert ensure_prelude(doc, "COMMON_FIELDS", self.PRELUDE).changed is True
