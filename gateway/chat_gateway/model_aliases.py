"""Best-effort mapping of approximate daemon model names to known tags.

Pure functions only; callers decide whether to use the suggestion and always
report the identifier the user asked for.
"""

from __future__ import annotations

from collections.abc import Iterable

DEFAULT_TAG = "latest"


def split_tag(identifier: str) -> tuple[str, str | None]:
    """Split ``family:tag`` into its parts; the tag is None when absent."""
    base, sep, tag = identifier.partition(":")
    return base, (tag if sep else None)


def resolve_model_alias(requested: str, known: Iterable[str]) -> str | None:
    """Return the known tag that best matches ``requested``, or None.

    Matching rules, first hit wins:
      1. exact match, then case-insensitive exact match
      2. bare family name (no tag) -> a tag of that family, ``:latest`` preferred
      3. bare family name that is the leading dash-separated segment of a known
         family (``deepseek`` -> ``deepseek-coder:1.5b``)

    A requested identifier that already carries a tag is never rewritten to a
    different tag: sizes and quantizations are not interchangeable.
    """
    names = sorted({n for n in known if n})
    if not requested or not names:
        return None
    if requested in names:
        return requested

    lowered = requested.strip().lower()
    for name in names:
        if name.lower() == lowered:
            return name

    req_base, req_tag = split_tag(lowered)
    if req_tag is not None or not req_base:
        return None

    same_family = [n for n in names if split_tag(n.lower())[0] == req_base]
    if same_family:
        return _prefer_default_tag(same_family)

    prefixed = [n for n in names if split_tag(n.lower())[0].startswith(req_base + "-")]
    if prefixed:
        return _prefer_default_tag(prefixed)
    return None


def _prefer_default_tag(candidates: list[str]) -> str:
    for name in candidates:
        if split_tag(name)[1] == DEFAULT_TAG:
            return name
    return candidates[0]
