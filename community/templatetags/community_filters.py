from django import template

from ..usernames import display_name as _display_name

register = template.Library()


@register.filter
def preview_text(value, max_length=90):
    """
    Single-line preview of a body for list views.

    Collapses whitespace and truncates with an ellipsis; empty input
    renders as an em dash.
    """
    text = " ".join(str(value or "").split())
    if not text:
        return "—"
    try:
        max_length = int(max_length)
    except (TypeError, ValueError):
        max_length = 90
    if len(text) > max_length:
        return text[: max_length - 1] + "…"
    return text


@register.filter
def avatar_letter(name):
    """First letter of a display name for avatar placeholders."""
    name = str(name or "").strip()
    return (name[0] if name else "U").upper()


@register.filter
def get_item(dictionary, key):
    """
    Safely get item from dictionary keyed by str(id).
    Returns the display fallback if the key is missing.
    """
    if isinstance(dictionary, dict) and str(key) in dictionary:
        return dictionary[str(key)]
    return _display_name(key)
