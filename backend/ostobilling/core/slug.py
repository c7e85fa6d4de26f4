"""Slug derivation for plans and organizations."""

import re
import unicodedata

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

DEFAULT_SLUG = "untitled"


def slugify(name: str) -> str:
    """Derive a URL-safe slug from a display name.

    The name is lowercased and accent marks are stripped, so "Café Pro" becomes
    "cafe-pro". Runs of any other character collapse into a single hyphen and
    leading and trailing hyphens are trimmed. A name with no usable characters
    yields "untitled".

    Args:
    ----
        name (str): The display name.

    Returns:
    -------
        str: The slug, matching ``^[a-z0-9]+(-[a-z0-9]+)*$``.

    """
    decomposed = unicodedata.normalize("NFD", name.lower())
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    slug = _NON_ALNUM.sub("-", stripped).strip("-")
    return slug or DEFAULT_SLUG
