"""Enquiry text assembly."""

from typing import Sequence

ATTACHMENTS_HEADER = "Attached files:"


def merge(original_text: str, links: Sequence[str]) -> str:
    """Append attachment links to an enquiry.

    >>> merge("Hello", ["http://a", "http://b"])
    'Hello\\nAttached files:\\n- http://a\\n- http://b'
    """
    if not links:
        return original_text

    bullets = "\n".join(f"- {link}" for link in links)
    return f"{original_text}\n{ATTACHMENTS_HEADER}\n{bullets}"
