import html
import re
from typing import Optional

from ..shared.errors import ValidationError

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def escape_html(value: Optional[str]) -> Optional[str]:
    """
    Escape HTML special characters so user text can be dropped into an HTML body.
    Returns None if input is None.
    """
    if value is None:
        return None
    return html.escape(str(value), quote=True)


def clean_text(value: Optional[str], max_length: int = 500) -> Optional[str]:
    """
    Trim user input and strip control characters (newlines and tabs are kept).

    Raises:
        ValidationError: If the cleaned text exceeds max_length
    """
    if value is None:
        return None

    value = _CONTROL_CHARS.sub("", str(value).strip())

    if len(value) > max_length:
        raise ValidationError(f"Input exceeds maximum length of {max_length} characters")

    return value


def text_to_html(text: str) -> str:
    """Plain text message body -> minimal HTML with paragraphs and line breaks"""
    paragraphs = [p for p in re.split(r"\n\s*\n", text.strip()) if p]
    return "".join(
        f"<p>{escape_html(p).replace(chr(10), '<br>')}</p>" for p in paragraphs
    )
