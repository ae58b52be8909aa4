from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class Account:
    """Stored account including its salted password hash."""

    account_id: str
    email: str
    display_name: str | None
    password_salt: str
    password_hash: str
    created_at: datetime

    def summary(self) -> AccountSummary:
        return AccountSummary(
            account_id=self.account_id,
            email=self.email,
            display_name=self.display_name,
        )


@dataclass(slots=True)
class AccountSummary:
    """Public view of an account returned after a successful login."""

    account_id: str
    email: str
    display_name: str | None = None
