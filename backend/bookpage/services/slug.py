"""URL-safe slug generation with accent stripping."""

import re
import unicodedata


def slugify(text: str) -> str:
    """Generate URL-safe slug from French/English text."""
    s = unicodedata.normalize("NFD", text.lower())
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    s = re.sub(r"[^a-z0-9]+", "-", s).strip("-")
    return s or "booking"
