"""Token, code and session helpers."""

from datetime import datetime, timezone

import jwt
import pytest

from pairing_server.utils.security import (
    CODE_ALPHABET,
    as_utc,
    create_session_token,
    decode_session_token,
    generate_device_id,
    generate_pairing_code,
    generate_token,
    hash_code,
    hash_token,
    to_iso,
)


def test_generated_tokens_are_long_and_unique():
    tokens = {generate_token() for _ in range(50)}
    assert len(tokens) == 50
    assert all(len(t) >= 43 for t in tokens)


def test_hash_token_is_sha256_hex():
    digest = hash_token("abc")
    assert digest == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    assert hash_token("abc") != hash_token("abd")


def test_pairing_code_uses_unambiguous_alphabet():
    code = generate_pairing_code()
    assert len(code) == 6
    assert set(code) <= set(CODE_ALPHABET)
    assert not set("01OI") & set(CODE_ALPHABET)
    assert len(generate_pairing_code(8)) == 8


def test_hash_code_ignores_case_and_whitespace():
    assert hash_code(" abc234 ") == hash_code("ABC234")


def test_device_id_format():
    device_id = generate_device_id()
    assert device_id.startswith("dev_")
    assert len(device_id) == 4 + 32


def test_naive_datetimes_are_read_as_utc():
    naive = datetime(2024, 5, 1, 12, 0, 0)
    assert as_utc(naive) == datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
    assert to_iso(naive) == "2024-05-01T12:00:00Z"


def test_session_token_round_trip():
    payload = decode_session_token(create_session_token("web_user_1", "ada@example.com"))
    assert payload["sub"] == "web_user_1"
    assert payload["email"] == "ada@example.com"
    assert payload["type"] == "session"


def test_expired_session_token_is_rejected():
    token = create_session_token("web_user_1", "ada@example.com", expires_in=-10)
    with pytest.raises(jwt.ExpiredSignatureError):
        decode_session_token(token)


def test_session_token_signed_with_other_key_is_rejected():
    forged = jwt.encode({"sub": "web_user_1", "type": "session"}, "not-the-secret", algorithm="HS256")
    with pytest.raises(jwt.InvalidSignatureError):
        decode_session_token(forged)


def test_session_key_is_generated_once_and_reused(tmp_path):
    from pairing_server.config import Settings

    first = Settings(data_dir=tmp_path, db_path=tmp_path / "db" / "x.db", session_secret="")
    first.prepare()
    assert (tmp_path / "db").is_dir()
    assert first.session_key_file.read_text() == first.session_secret
    assert first.session_key_file.stat().st_mode & 0o777 == 0o600

    second = Settings(data_dir=tmp_path, db_path=tmp_path / "x.db", session_secret="")
    second.prepare()
    assert second.session_secret == first.session_secret


def test_explicit_session_secret_is_not_persisted(tmp_path):
    from pairing_server.config import Settings

    explicit = Settings(data_dir=tmp_path, db_path=tmp_path / "x.db", session_secret="from-env")
    explicit.prepare()
    assert explicit.session_secret == "from-env"
    assert not explicit.session_key_file.exists()
