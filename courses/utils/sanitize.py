from __future__ import annotations

import bleach


_ALLOWED_TAGS = [
    "a",
    "b",
    "blockquote",
    "br",
    "code",
    "em",
    "i",
    "li",
    "ol",
    "p",
    "pre",
    "strong",
    "ul",
]

_ALLOWED_ATTRS = {
    "a": ["href", "title", "rel", "target"],
}

_ALLOWED_PROTOCOLS = ["http", "https", "mailto"]


def sanitize_answer_text(value: str | None) -> str:
    if not value:
        return ""
    return bleach.clean(
        value,
        tags=_ALLOWED_TAGS,
        attributes=_ALLOWED_ATTRS,
        protocols=_ALLOWED_PROTOCOLS,
        strip=True,
    )
