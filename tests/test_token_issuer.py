"""TokenIssuer against the in-memory store."""

from datetime import timedelta

import pytest

from pairing_server.services.token_issuer import TokenIssuer
from pairing_server.services.token_store import MemoryTokenStore
from pairing_server.utils.security import hash_token


@pytest.fixture
def store():
    return MemoryTokenStore()


@pytest.fixture
def issuer(store, clock):
    return TokenIssuer(
        store,
        token_ttl=timedelta(hours=24),
        refresh_overlap=timedelta(seconds=60),
        refresh_grace=timedelta(minutes=5),
        clock=clock,
    )


def _issue(issuer, user_id="usr_1", device_id="dev_1", fingerprint=None):
    return issuer.issue(
        device_id=device_id,
        user_id=user_id,
        user_email=f"{user_id}@example.com",
        device_name="Browser Extension",
        fingerprint=fingerprint,
    )


def test_fresh_token_validates_to_its_user_and_device(issuer):
    issued = _issue(issuer, user_id="usr_a", device_id="dev_a")

    principal = issuer.validate_and_touch(issued.token)

    assert principal is not None
    assert (principal.user_id, principal.device_id) == ("usr_a", "dev_a")
    assert principal.user_email == "usr_a@example.com"


def test_only_the_hash_is_stored(issuer, store):
    issued = _issue(issuer)
    record = store.get_by_hash(hash_token(issued.token))
    assert record is not None
    assert issued.token not in (record.token_hash, record.id)


def test_store_token_rejects_short_values(issuer, clock):
    with pytest.raises(ValueError):
        issuer.store_token(
            "too-short",
            device_id="dev_1",
            user_id="usr_1",
            user_email="u@example.com",
            device_name="x",
            expires_at=clock() + timedelta(hours=1),
        )


def test_stored_token_validates_until_expiry(issuer, clock):
    token = issuer.generate_token()
    issuer.store_token(
        token,
        device_id="dev_1",
        user_id="usr_1",
        user_email="u@example.com",
        device_name="x",
        expires_at=clock() + timedelta(hours=1),
    )

    for _ in range(3):
        assert issuer.validate_and_touch(token) is not None
        clock.advance(minutes=19)

    clock.advance(minutes=3)  # exactly one hour after issue
    assert issuer.validate_and_touch(token) is None


def test_validate_touches_last_used(issuer, store, clock):
    issued = _issue(issuer)
    clock.advance(minutes=10)
    issuer.validate_and_touch(issued.token)
    assert store.get_by_hash(hash_token(issued.token)).last_used_at == clock()


def test_tampered_token_is_rejected(issuer):
    issued = _issue(issuer)
    flipped = ("A" if issued.token[5] != "A" else "B")
    tampered = issued.token[:5] + flipped + issued.token[6:]
    assert issuer.validate_and_touch(tampered) is None


@pytest.mark.parametrize("value", [None, "", "short"])
def test_missing_or_short_tokens_are_rejected(issuer, value):
    assert issuer.validate_and_touch(value) is None


def test_revoked_token_never_validates_again(issuer, clock):
    issued = _issue(issuer)
    assert issuer.revoke("usr_1", "dev_1") is True

    assert issuer.validate_and_touch(issued.token) is None
    clock.advance(seconds=1)
    assert issuer.validate_and_touch(issued.token) is None


def test_revoke_is_owner_scoped_and_idempotent(issuer):
    issued = _issue(issuer, user_id="usr_owner")

    assert issuer.revoke("usr_other", "dev_1") is False
    assert issuer.validate_and_touch(issued.token) is not None

    assert issuer.revoke("usr_owner", "dev_1") is True
    assert issuer.revoke("usr_owner", "dev_1") is True


def test_refresh_extends_expiry_and_keeps_old_token_briefly(issuer, clock):
    old = _issue(issuer)
    clock.advance(hours=23)

    new = issuer.refresh(old.token)

    assert new is not None
    assert new.token != old.token
    assert new.expires_at > old.expires_at
    assert new.device_id == old.device_id
    assert issuer.validate_and_touch(old.token) is not None
    assert issuer.validate_and_touch(new.token) is not None

    clock.advance(seconds=61)
    assert issuer.validate_and_touch(old.token) is None
    assert issuer.validate_and_touch(new.token) is not None


def test_refresh_within_grace_after_expiry(issuer, clock):
    old = _issue(issuer)
    clock.advance(hours=24, minutes=2)
    assert issuer.validate_and_touch(old.token) is None
    assert issuer.refresh(old.token) is not None


def test_refresh_past_grace_or_revoked_fails(issuer, clock):
    stale = _issue(issuer, device_id="dev_stale")
    revoked = _issue(issuer, device_id="dev_revoked")
    issuer.revoke("usr_1", "dev_revoked")

    assert issuer.refresh(revoked.token) is None

    clock.advance(hours=24, minutes=6)
    assert issuer.refresh(stale.token) is None


def test_replaced_token_cannot_refresh_again(issuer, store, clock):
    old = _issue(issuer)
    assert issuer.refresh(old.token) is not None
    assert store.get_by_hash(hash_token(old.token)).superseded_at == clock()

    # Still accepted for in-flight requests, but never traded a second time
    assert issuer.validate_and_touch(old.token) is not None
    assert issuer.refresh(old.token) is None

    clock.advance(seconds=200)
    assert issuer.validate_and_touch(old.token) is None
    assert issuer.refresh(old.token) is None


def test_same_fingerprint_supersedes_older_tokens(issuer):
    fp = "a" * 64
    first = _issue(issuer, device_id="dev_first", fingerprint=fp)
    other_user = _issue(issuer, user_id="usr_2", device_id="dev_x", fingerprint=fp)

    second = _issue(issuer, device_id="dev_second", fingerprint=fp)

    assert issuer.validate_and_touch(first.token) is None
    assert issuer.validate_and_touch(second.token) is not None
    assert issuer.validate_and_touch(other_user.token) is not None


def test_list_devices_reports_one_entry_per_device(issuer, clock):
    first = _issue(issuer, device_id="dev_1")
    clock.advance(minutes=1)
    _issue(issuer, device_id="dev_2")
    clock.advance(minutes=1)
    issuer.refresh(first.token)
    _issue(issuer, user_id="usr_2", device_id="dev_9")

    devices = issuer.list_devices("usr_1")

    assert [d.device_id for d in devices] == ["dev_1", "dev_2"]
    assert all(d.is_active for d in devices)


def test_list_devices_hides_revoked_and_flags_expired(issuer, clock):
    _issue(issuer, device_id="dev_1")
    _issue(issuer, device_id="dev_2")
    issuer.revoke("usr_1", "dev_2")
    clock.advance(hours=25)

    devices = issuer.list_devices("usr_1")

    assert [d.device_id for d in devices] == ["dev_1"]
    assert devices[0].is_active is False


def test_rename_device(issuer):
    _issue(issuer, device_id="dev_1")

    renamed = issuer.rename_device("usr_1", "dev_1", "Work laptop")

    assert renamed is not None
    assert renamed.device_name == "Work laptop"
    assert issuer.rename_device("usr_2", "dev_1", "Mine now") is None


def test_sweep_removes_only_expired_records(issuer, store, clock):
    old = _issue(issuer, device_id="dev_old")
    clock.advance(hours=12)
    fresh = _issue(issuer, device_id="dev_fresh")
    clock.advance(hours=13)

    assert issuer.sweep_expired() == 1
    assert store.get_by_hash(hash_token(old.token)) is None
    assert store.get_by_hash(hash_token(fresh.token)) is not None
