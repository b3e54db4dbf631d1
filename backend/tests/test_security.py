import base64

from moments_admin.core.security import create_session_token, pwd_context, verify_password, verify_session_token


def test_round_trip():
    token = create_session_token("user-1", secret="s3cret", max_age=60)
    assert verify_session_token(token, secret="s3cret") == "user-1"


def test_wrong_secret():
    token = create_session_token("user-1", secret="s3cret", max_age=60)
    assert verify_session_token(token, secret="other") is None


def test_tampered_payload():
    token = create_session_token("user-1", secret="s3cret", max_age=60)
    _, signature = token.split(".", 1)
    forged = base64.b64encode(b"user-2:99999999999999").decode()

    assert verify_session_token(f"{forged}.{signature}", secret="s3cret") is None


def test_expired():
    token = create_session_token("user-1", secret="s3cret", max_age=-1)
    assert verify_session_token(token, secret="s3cret") is None


def test_malformed():
    assert verify_session_token("", secret="s3cret") is None
    assert verify_session_token("no-dot", secret="s3cret") is None


def test_password_hash_round_trip():
    password_hash = pwd_context.hash("hunter22")

    assert verify_password("hunter22", password_hash)
    assert not verify_password("hunter23", password_hash)
