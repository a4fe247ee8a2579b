"""Password hashing, token round trips and the authenticated-user cache."""
import threading
from datetime import timedelta

import pytest

from conduit.entities import User
from conduit.security import (
    AuthenticatedUserCache,
    JWTError,
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


def _user(email: str = "jake@mail.com") -> User:
    return User(id=1, username="jakejake", email=email)


def test_hash_and_verify_password():
    hashed = hash_password("password123")
    assert hashed != "password123"
    assert verify_password("password123", hashed)
    assert not verify_password("wrong", hashed)


def test_verify_password_against_non_bcrypt_value():
    assert not verify_password("password123", "plain-text")


def test_token_carries_identity_claims():
    claims = decode_access_token(create_access_token(_user()))
    assert claims["email"] == "jake@mail.com"
    assert claims["username"] == "jakejake"
    assert claims["exp"] > claims["iat"]


def test_expired_token_is_rejected():
    token = create_access_token(_user(), expires_delta=timedelta(seconds=-1))
    with pytest.raises(JWTError):
        decode_access_token(token)


def test_tampered_token_is_rejected():
    token = create_access_token(_user())
    with pytest.raises(JWTError):
        decode_access_token(token[:-2] + ("aa" if not token.endswith("aa") else "bb"))


def test_user_cache_store_get_delete():
    users = AuthenticatedUserCache()
    user = _user()
    assert users.get(user.email) is None
    users.store(user)
    assert users.get(user.email) is user
    users.delete(user.email)
    assert users.get(user.email) is None
    # Deleting a missing entry is a no-op.
    users.delete(user.email)


def test_user_cache_concurrent_access():
    users = AuthenticatedUserCache()

    def worker(n: int) -> None:
        for i in range(200):
            user = _user(f"user{n}-{i}@mail.com")
            users.store(user)
            assert users.get(user.email) is user
            if i % 2:
                users.delete(user.email)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert users.get("user0-0@mail.com") is not None
    assert users.get("user0-1@mail.com") is None
    users.clear()
    assert users.get("user0-0@mail.com") is None


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_user_cache_entries_expire():
    clock = FakeClock()
    users = AuthenticatedUserCache(ttl=60, clock=clock)
    user = _user()
    users.store(user)

    clock.now += 59
    assert users.get(user.email) is user
    clock.now += 1
    assert users.get(user.email) is None

    # Storing again starts a fresh lifetime.
    users.store(user)
    clock.now += 30
    assert users.get(user.email) is user


def test_user_cache_evicts_oldest_beyond_max_entries():
    users = AuthenticatedUserCache(max_entries=2)
    first, second, third = (_user(f"user{i}@mail.com") for i in range(3))
    users.store(first)
    users.store(second)
    # Re-storing moves an entry to the back of the eviction queue.
    users.store(first)
    users.store(third)

    assert users.get(second.email) is None
    assert users.get(first.email) is first
    assert users.get(third.email) is third
