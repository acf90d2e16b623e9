"""Utility functions for sanitization."""

import bleach

RICH_TEXT_TAGS = ["b", "i", "u", "em", "strong", "p", "br", "code", "pre", "ul", "ol", "li"]


def sanitize_rich_text(text: str) -> str:
    """Sanitize question prompts, options and explanations to prevent XSS.

    Allows basic formatting tags but removes script/dangerous content.
    """
    sanitized = bleach.clean(text, tags=RICH_TEXT_TAGS, attributes={}, strip=True)
    return sanitized.strip()


def sanitize_plain_text(text: str) -> str:
    """Strip all HTML from titles and catalog descriptions."""
    sanitized = bleach.clean(text, tags=[], strip=True)
    return sanitized.strip()
