"""Output formatters for dark-audit."""

from .markdown import generate_markdown
