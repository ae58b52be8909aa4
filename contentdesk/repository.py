"""Database repository for account credentials."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator

import psycopg
from psycopg import errors as pg_errors
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool, PoolTimeout

from .domain.account import Account
from .domain.errors import StoreUnavailableError

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS accounts (
    account_id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    email TEXT NOT NULL,
    display_name TEXT,
    password_salt CHAR(32) NOT NULL,
    password_hash CHAR(128) NOT NULL,
    created_at TIMESTAMPTZ NOT NULL,
    CONSTRAINT accounts_email_key UNIQUE (email)
)
"""


class DuplicateAccountError(Exception):
    """Raised when the unique constraint on ``accounts.email`` rejects an insert."""

    def __init__(self, email: str) -> None:
        super().__init__(f"account already exists for {email}")
        self.email = email


@dataclass(slots=True)
class AccountRecord:
    """Listing projection that leaves out password material."""

    account_id: str
    email: str
    display_name: str | None
    created_at: datetime


class AccountRepository:
    """Postgres-backed account persistence."""

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    @contextmanager
    def _connection(self) -> Iterator[psycopg.Connection]:
        """Borrow a pooled connection, reporting outages as ``StoreUnavailableError``."""
        try:
            with self._pool.connection() as conn:
                yield conn
        except (psycopg.OperationalError, PoolTimeout) as exc:
            raise StoreUnavailableError(str(exc)) from exc

    def ensure_schema(self) -> None:
        """Create the accounts table and its email constraint when missing."""
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute(SCHEMA_SQL)
                conn.commit()

    def find_by_email(self, email: str) -> Account | None:
        """Return the account stored under ``email`` (exact match) or ``None``."""
        with self._connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(
                    """
                    SELECT account_id::text, email, display_name, password_salt, password_hash, created_at
                    FROM accounts
                    WHERE email = %s
                    """,
                    (email,),
                )
                row = cur.fetchone()
                if not row:
                    return None
        return self._map_account(row)

    def insert(
        self,
        *,
        email: str,
        display_name: str | None,
        password_salt: str,
        password_hash: str,
        created_at: datetime,
    ) -> str:
        """Persist a new account and return the identifier assigned by the database."""
        with self._connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                try:
                    cur.execute(
                        """
                        INSERT INTO accounts (email, display_name, password_salt, password_hash, created_at)
                        VALUES (%s, %s, %s, %s, %s)
                        RETURNING account_id::text
                        """,
                        (email, display_name, password_salt, password_hash, created_at),
                    )
                except pg_errors.UniqueViolation as exc:
                    conn.rollback()
                    raise DuplicateAccountError(email) from exc
                row = cur.fetchone()
                conn.commit()
        return row[0]

    def list_all(self) -> list[AccountRecord]:
        """Return every account without salt or hash, oldest first."""
        records: list[AccountRecord] = []
        with self._connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(
                    """
                    SELECT account_id::text, email, display_name, created_at
                    FROM accounts
                    ORDER BY created_at ASC, account_id ASC
                    """
                )
                for row in cur.fetchall():
                    records.append(
                        AccountRecord(
                            account_id=row[0],
                            email=row[1],
                            display_name=row[2],
                            created_at=row[3],
                        )
                    )
        return records

    def _map_account(self, row: tuple) -> Account:
        """Convert a raw database tuple into the domain ``Account`` dataclass."""
        return Account(
            account_id=row[0],
            email=row[1],
            display_name=row[2],
            password_salt=row[3].strip(),
            password_hash=row[4].strip(),
            created_at=row[5],
        )
