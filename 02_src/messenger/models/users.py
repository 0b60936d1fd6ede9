"""User-related data models."""

from dataclasses import dataclass


@dataclass
class User:
    """Public profile of a user (no secret fields)."""

    id: str
    email: str
    name: str
    profile_picture: str | None = None
