"""URL path canonicalisation."""

from __future__ import annotations


def clean_path(p: str) -> str:
    """Return the canonical form of the URL path ``p``.

    Doubled slashes are collapsed, ``.`` elements removed, ``..`` elements
    remove the preceding element, a leading slash is ensured and a trailing
    slash is kept.
    """
    if not p:
        return "/"

    parts = p.split("/")
    trailing = len(p) > 1 and p.endswith("/")
    if parts[-1] == ".":
        trailing = True

    stack: list[str] = []
    for part in parts:
        if part in ("", "."):
            continue
        if part == "..":
            if stack:
                stack.pop()
            continue
        stack.append(part)

    result = "/" + "/".join(stack)
    if trailing and stack:
        result += "/"
    return result