from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException

from atlas.webserver import auth
from atlas.webserver.config import ServerConfig


@pytest.fixture
def config():
    return ServerConfig(admin_password="pw", session_secret="s3cret", cookie_max_age=60)


def test_token_round_trip(config):
    token = auth.issue_token(config, now=1000)
    assert auth.verify_token(config, token, now=1000)
    assert auth.verify_token(config, token, now=1060)


def test_expired_token(config):
    token = auth.issue_token(config, now=1000)
    assert not auth.verify_token(config, token, now=1061)


def test_token_from_the_future(config):
    token = auth.issue_token(config, now=2000)
    assert not auth.verify_token(config, token, now=1000)


@pytest.mark.parametrize("token", [None, "", "garbage", "abc.def", "1000."])
def test_malformed_tokens(config, token):
    assert not auth.verify_token(config, token, now=1000)


def test_token_bound_to_secret(config):
    token = auth.issue_token(config, now=1000)
    other = ServerConfig(admin_password="pw", session_secret="different")
    assert not auth.verify_token(other, token, now=1000)


def test_tampered_timestamp(config):
    token = auth.issue_token(config, now=1000)
    signature = token.split(".", 1)[1]
    assert not auth.verify_token(config, f"1050.{signature}", now=1050)


def test_check_password(config):
    assert auth.check_password(config, "pw")
    assert not auth.check_password(config, "PW")
    assert not auth.check_password(config, "")
    assert not auth.check_password(ServerConfig(admin_password=None), "pw")


def test_require_admin(config):
    request = MagicMock()
    request.cookies = {}
    with pytest.raises(HTTPException) as exc:
        auth.require_admin(config, request)
    assert exc.value.status_code == 401

    request.cookies = {config.cookie_name: auth.issue_token(config)}
    auth.require_admin(config, request)


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("ATLAS_PORT", "9001")
    monkeypatch.setenv("ATLAS_DATA_DIR", "/srv/atlas")
    monkeypatch.setenv("ADMIN_PASSWORD", "pw")
    monkeypatch.setenv("ATLAS_SECURE_COOKIES", "yes")
    monkeypatch.setenv("ATLAS_SESSION_SECRET", "fixed")

    config = ServerConfig.from_env()

    assert config.port == 9001
    assert config.data_dir == "/srv/atlas"
    assert config.admin_password == "pw"
    assert config.secure_cookies is True
    assert config.session_secret == "fixed"


def test_config_defaults(monkeypatch):
    for name in ("ADMIN_PASSWORD", "ATLAS_SESSION_SECRET", "ATLAS_SECURE_COOKIES"):
        monkeypatch.delenv(name, raising=False)
    config = ServerConfig.from_env()
    assert config.admin_password is None
    assert config.secure_cookies is False
    assert len(config.session_secret) == 64
