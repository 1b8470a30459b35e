"""Listing identity keys."""

from __future__ import annotations

KEY_SEPARATOR = "|||"


def identity_key(source_url: str | None, name: str) -> str:
    """Key matching a scraped item to a catalog listing.

    Both parts are used literally. A missing source URL becomes the empty
    string, so URL-less listings with the same name share a key.
    """
    return f"{source_url or ''}{KEY_SEPARATOR}{name}"
