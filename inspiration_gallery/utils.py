"""Utility functions for common operations across the application."""


def normalize_tags(raw: str | list[str] | tuple[str, ...] | None) -> list[str]:
    """Turn user tag input into an ordered list of trimmed, non-empty tags.

    A string is split on commas; list elements are taken as given. Order and
    duplicates are preserved, so normalizing an already-normalized list is a no-op.
    """
    if not raw:
        return []
    if isinstance(raw, str):
        parts = raw.split(",")
    else:
        parts = [part for part in raw if isinstance(part, str)]
    return [tag.strip() for tag in parts if tag.strip()]


def escape_like(term: str) -> str:
    """Escape LIKE wildcards (%, _, \\) so user input matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
