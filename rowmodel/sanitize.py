import re

_TAG = re.compile(r'<\s*(/?)\s*([a-zA-Z][a-zA-Z0-9]*)\b[^>]*>')
_COMMENT = re.compile(r'<!--.*?(-->|\Z)', re.DOTALL)
# a tag opened but never closed runs to the end of the text
_UNCLOSED = re.compile(r'<[/!]?[a-zA-Z][^>]*\Z')


def strip_tags(text, keep=()):
    """Remove HTML tags from text except those named in keep.

    Repeats until nothing changes, so fragments like <<b>script> cannot
    reassemble into a tag once the inner one is gone.
    """
    keep = {t.lower() for t in keep}

    def replace(match):
        return match.group(0) if match.group(2).lower() in keep else ""

    while True:
        stripped = _UNCLOSED.sub("", _TAG.sub(replace, _COMMENT.sub("", text)))
        if stripped == text:
            return text
        text = stripped


def clean(value, keep=()):
    """Strip tags and surrounding whitespace from strings, recursing into lists and dicts."""
    if isinstance(value, str):
        return strip_tags(value, keep).strip()
    if isinstance(value, list):
        return [clean(v, keep) for v in value]
    if isinstance(value, dict):
        return {k: clean(v, keep) for k, v in value.items()}
    return value
