"""Finalizer bookkeeping for SecurityGroup records."""

from __future__ import annotations


def has_finalizer(finalizers: list[str] | None, token: str) -> bool:
    """Check whether the token is present in the finalizer list."""
    return token in (finalizers or [])


def add_finalizer(finalizers: list[str] | None, token: str) -> list[str]:
    """Return a copy of the finalizer list with the token appended once."""
    result = list(finalizers or [])
    if token not in result:
        result.append(token)
    return result


def remove_finalizer(finalizers: list[str] | None, token: str) -> list[str]:
    """Return a copy of the finalizer list without the token."""
    return [f for f in (finalizers or []) if f != token]
