"""Identifier helpers."""

from uuid import uuid4


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex}"


def new_run_id() -> str:
    """Event id for a freshly triggered run; doubles as its run identity."""
    return new_id("run")
