from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest
from prometheus_client import REGISTRY

from contentdesk.domain.contracts import Credentials, RegistrationInput
from contentdesk.domain.errors import (
    AuthenticationError,
    ConflictError,
    StoreUnavailableError,
    ValidationError,
)
from contentdesk.domain.service import AccountService


def _attempts(operation: str, outcome: str) -> float:
    value = REGISTRY.get_sample_value(
        "contentdesk_credential_attempts_total",
        {"operation": operation, "outcome": outcome},
    )
    return value or 0.0


def test_register_then_login_returns_same_account(service, repository):
    account_id = service.register(RegistrationInput(email="a@b.com", password="Abcdefg1", display_name="alice"))

    summary = service.login(Credentials(email="a@b.com", password="Abcdefg1"))

    assert summary.account_id == account_id
    assert summary.email == "a@b.com"
    assert summary.display_name == "alice"
    assert not hasattr(summary, "password_hash")
    assert not hasattr(summary, "password_salt")


def test_register_stores_only_salted_hash(service, repository):
    service.register(RegistrationInput(email="a@b.com", password="Abcdefg1"))
    service.register(RegistrationInput(email="c@d.com", password="Abcdefg1"))

    first = repository.accounts["a@b.com"]
    second = repository.accounts["c@d.com"]
    assert len(first.password_salt) == 32
    assert len(first.password_hash) == 128
    assert "Abcdefg1" not in (first.password_hash, first.password_salt)
    assert first.password_salt != second.password_salt
    assert first.password_hash != second.password_hash
    assert first.created_at.tzinfo is not None


def test_register_duplicate_email_is_conflict(service, repository):
    service.register(RegistrationInput(email="a@b.com", password="Abcdefg1"))

    with pytest.raises(ConflictError) as excinfo:
        service.register(RegistrationInput(email="a@b.com", password="Zyxwvut2"))

    assert excinfo.value.message == "email already registered"
    assert repository.inserts == 1


def test_email_is_case_sensitive(service, repository):
    service.register(RegistrationInput(email="a@b.com", password="Abcdefg1"))
    service.register(RegistrationInput(email="A@b.com", password="Abcdefg1"))

    assert repository.inserts == 2


@pytest.mark.parametrize(
    "email,password,message",
    [
        (None, "Abcdefg1", "email and password are required"),
        ("a@b.com", "", "email and password are required"),
        ("bad-email", "Abcdefg1", "invalid email address"),
        ("a b@c.com", "Abcdefg1", "invalid email address"),
        ("a@b", "Abcdefg1", "invalid email address"),
        ("a@b.com", "short1A", "password must be at least 8 characters"),
        ("a@b.com", "abcdefg1", "password must contain an uppercase letter and a digit"),
        ("a@b.com", "Abcdefgh", "password must contain an uppercase letter and a digit"),
    ],
)
def test_register_validation(service, repository, email, password, message):
    with pytest.raises(ValidationError) as excinfo:
        service.register(RegistrationInput(email=email, password=password))

    assert excinfo.value.message == message
    assert repository.inserts == 0


def test_login_failures_are_indistinguishable(service):
    service.register(RegistrationInput(email="a@b.com", password="Abcdefg1"))

    with pytest.raises(AuthenticationError) as wrong_password:
        service.login(Credentials(email="a@b.com", password="WrongPass1"))
    with pytest.raises(AuthenticationError) as unknown_email:
        service.login(Credentials(email="nobody@x.com", password="whatever1A"))

    assert type(wrong_password.value) is type(unknown_email.value)
    assert wrong_password.value.message == unknown_email.value.message == "email or password incorrect"


def test_login_does_not_apply_password_complexity(service):
    with pytest.raises(AuthenticationError):
        service.login(Credentials(email="nobody@x.com", password="x"))


@pytest.mark.parametrize(
    "email,password,message",
    [
        ("", "Abcdefg1", "email and password are required"),
        ("a@b.com", None, "email and password are required"),
        ("not-an-email", "Abcdefg1", "invalid email address"),
    ],
)
def test_login_validation(service, email, password, message):
    with pytest.raises(ValidationError) as excinfo:
        service.login(Credentials(email=email, password=password))
    assert excinfo.value.message == message


def test_login_with_corrupt_stored_hash_is_rejected(service, repository):
    service.register(RegistrationInput(email="a@b.com", password="Abcdefg1"))
    repository.accounts["a@b.com"].password_hash = "zz" * 64

    with pytest.raises(AuthenticationError):
        service.login(Credentials(email="a@b.com", password="Abcdefg1"))


def test_concurrent_registration_for_same_email_has_one_winner(stale_read_repository):
    repository = stale_read_repository(parties=2)
    service = AccountService(repository)

    def attempt(password: str):
        try:
            return service.register(RegistrationInput(email="race@b.com", password=password))
        except ConflictError as exc:
            return exc

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(attempt, ["Abcdefg1", "Zyxwvut2"]))

    winners = [r for r in results if isinstance(r, str)]
    losers = [r for r in results if isinstance(r, ConflictError)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert repository.inserts == 1


def test_store_outage_propagates_without_writes(service, repository):
    repository.available = False

    with pytest.raises(StoreUnavailableError):
        service.register(RegistrationInput(email="a@b.com", password="Abcdefg1"))
    with pytest.raises(StoreUnavailableError):
        service.login(Credentials(email="a@b.com", password="Abcdefg1"))
    assert repository.inserts == 0


def test_list_accounts_excludes_password_material(service):
    service.register(RegistrationInput(email="a@b.com", password="Abcdefg1", display_name="alice"))
    service.register(RegistrationInput(email="c@d.com", password="Abcdefg1"))

    records = service.list_accounts()

    assert [record.email for record in records] == ["a@b.com", "c@d.com"]
    for record in records:
        assert not hasattr(record, "password_hash")
        assert not hasattr(record, "password_salt")


def test_attempts_are_counted(service):
    before_success = _attempts("register", "success")
    before_rejected = _attempts("login", "rejected")

    service.register(RegistrationInput(email="m@b.com", password="Abcdefg1"))
    with pytest.raises(AuthenticationError):
        service.login(Credentials(email="m@b.com", password="WrongPass1"))

    assert _attempts("register", "success") == before_success + 1
    assert _attempts("login", "rejected") == before_rejected + 1


@pytest.mark.parametrize(
    "email,password,display_name,message",
    [
        ("a\x00@b.com", "Abcdefg1", None, "invalid email address"),
        ("a@b.com", "Abcdefg1\x00", None, "password must not contain NUL characters"),
        ("a@b.com", "Abcdefg1", "ali\x00ce", "username must not contain NUL characters"),
    ],
)
def test_register_rejects_nul_characters(service, repository, email, password, display_name, message):
    with pytest.raises(ValidationError) as excinfo:
        service.register(RegistrationInput(email=email, password=password, display_name=display_name))

    assert excinfo.value.message == message
    assert repository.inserts == 0


def test_login_rejects_nul_in_email_before_store_lookup(repository):
    calls = []
    original = repository.find_by_email
    repository.find_by_email = lambda email: calls.append(email) or original(email)
    service = AccountService(repository)

    with pytest.raises(ValidationError) as excinfo:
        service.login(Credentials(email="a\x00@b.com", password="Abcdefg1"))

    assert excinfo.value.message == "invalid email address"
    assert calls == []
