"""embedify -- scaffold a Svelte embed component and register it project-wide."""

__version__ = "0.1.0"
