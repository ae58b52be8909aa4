"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class RegistrationInput:
    """Raw inputs supplied when registering an account."""

    email: str | None
    password: str | None
    display_name: str | None = None


@dataclass(slots=True)
class Credentials:
    """Email/password pair presented at login."""

    email: str | None
    password: str | None
