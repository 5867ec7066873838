"""Plain-text views of rich-text note content."""
from bs4 import BeautifulSoup

MAX_PREVIEW_LENGTH = 120


# PUBLIC_INTERFACE
def plain_text(html: str) -> str:
    """Returns the text of an HTML fragment with the markup removed."""
    if not html:
        return ""
    return BeautifulSoup(html, "html.parser").get_text()


# PUBLIC_INTERFACE
def is_blank(html: str) -> bool:
    return not plain_text(html).strip()


# PUBLIC_INTERFACE
def preview(html: str, max_length: int = MAX_PREVIEW_LENGTH) -> str:
    """Plain-text preview of a note, cut at ``max_length`` characters with an ellipsis."""
    text = " ".join(plain_text(html).split())
    if len(text) <= max_length:
        return text
    return text[:max_length].rstrip() + "..."
