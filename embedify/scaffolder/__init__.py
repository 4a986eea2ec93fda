"""embedify scaffolder -- component generation and schema synthesis.

Quick usage::

    from embedify.scaffolder import ComponentGenerator

    generator = ComponentGenerator()
    result = await generator.generate("Banner", Path("src/embed-components/Banner.svelte"))
    print(result.text)
"""

from embedify.scaffolder.formatter import PrettierFormatter
from embedify.scaffolder.generator import ComponentGenerator
from embedify.scaffolder.schema import synthesize_schema
from embedify.scaffolder.templates import TemplateRenderer

__all__ = [
    "ComponentGenerator",
    "PrettierFormatter",
    "TemplateRenderer",
    "synthesize_schema",
]
