import re

TAG_RE = re.compile(r"<[^>]*>")


def sanitize_string(v):
    """Strip HTML tags and surrounding whitespace; non-strings pass through."""
    if not isinstance(v, str):
        return v
    return TAG_RE.sub("", v).strip()
