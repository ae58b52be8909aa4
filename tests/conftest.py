from __future__ import annotations

import threading
import uuid
from datetime import datetime

import pytest

from contentdesk.domain.account import Account
from contentdesk.domain.errors import StoreUnavailableError
from contentdesk.domain.service import AccountService
from contentdesk.repository import AccountRecord, DuplicateAccountError


class FakeRepository:
    """In-memory repository enforcing the same email uniqueness as the Postgres constraint."""

    def __init__(self) -> None:
        self.accounts: dict[str, Account] = {}
        self.available = True
        self.inserts = 0
        self._lock = threading.Lock()

    def _check_available(self) -> None:
        if not self.available:
            raise StoreUnavailableError("connection refused")

    def find_by_email(self, email: str) -> Account | None:
        self._check_available()
        return self.accounts.get(email)

    def insert(
        self,
        *,
        email: str,
        display_name: str | None,
        password_salt: str,
        password_hash: str,
        created_at: datetime,
    ) -> str:
        self._check_available()
        with self._lock:
            if email in self.accounts:
                raise DuplicateAccountError(email)
            account_id = str(uuid.uuid4())
            self.accounts[email] = Account(
                account_id=account_id,
                email=email,
                display_name=display_name,
                password_salt=password_salt,
                password_hash=password_hash,
                created_at=created_at,
            )
            self.inserts += 1
        return account_id

    def list_all(self) -> list[AccountRecord]:
        self._check_available()
        return [
            AccountRecord(
                account_id=account.account_id,
                email=account.email,
                display_name=account.display_name,
                created_at=account.created_at,
            )
            for account in sorted(self.accounts.values(), key=lambda a: a.created_at)
        ]


class StaleReadRepository(FakeRepository):
    """Repository whose lookups never see concurrent writers, as in a read/insert race."""

    def __init__(self, parties: int) -> None:
        super().__init__()
        self._barrier = threading.Barrier(parties)

    def find_by_email(self, email: str) -> Account | None:
        self._check_available()
        return None

    def insert(self, **kwargs) -> str:
        self._barrier.wait(timeout=10)
        return super().insert(**kwargs)


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def service(repository: FakeRepository) -> AccountService:
    return AccountService(repository)


@pytest.fixture
def stale_read_repository():
    return StaleReadRepository
