import html


class WikimarkError(Exception):
    """Base class for all wikimark errors."""


class RenderError(WikimarkError):
    """The core markdown renderer failed on its input."""


class ConfigError(WikimarkError):
    """Configuration could not be read or is malformed."""


def error_fragment(message: str, tag: str = "p") -> str:
    """Inline HTML shown in place of content that failed to render."""
    return f'<{tag} class="render-error">Error rendering markdown: {html.escape(message)}</{tag}>'
