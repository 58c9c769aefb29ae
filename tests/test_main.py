"""
Tests for the command line entry point.
"""

import json
from unittest.mock import AsyncMock, patch

import pytest

from streamauth.auth.models import Credential, Provider, TokenRole
from streamauth.errors.internal import AuthDenied
from streamauth.main import build_parser, main
from streamauth.service import AuthService
from streamauth.store.file_store import FileCredentialStore


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    config_path = tmp_path / "streamauth.json"
    config_path.write_text(
        json.dumps(
            {
                "providers": {
                    "trakt": {"client_id": "tid", "client_secret": "tsecret"},
                    "premiumize": {"client_id": "pid", "client_secret": "psecret"},
                }
            }
        )
    )
    store_path = tmp_path / "tokens.json"
    for name in ("TRAKT_CLIENT_ID", "TRAKT_CLIENT_SECRET", "PREMIUMIZE_FOLDER_ID"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("STREAMAUTH_TOKEN_STORE", str(store_path))
    return str(config_path), store_path


def test_parser_commands():
    parser = build_parser()

    args = parser.parse_args(["login", "trakt", "--force"])
    assert args.command == "login"
    assert args.provider == "trakt"
    assert args.force

    args = parser.parse_args(["resolve", "Show", "--season", "1", "--episode", "2"])
    assert (args.title, args.season, args.episode) == ("Show", 1, 2)

    with pytest.raises(SystemExit):
        parser.parse_args(["login", "netflix"])


@pytest.mark.asyncio
async def test_status_reports_each_provider(cli_env, capsys):
    config_path, store_path = cli_env
    store = FileCredentialStore(store_path)
    await store.set(Provider.TRAKT, TokenRole.ACCESS, "a1")
    await store.set(Provider.TRAKT, TokenRole.USERNAME, "alice")

    assert await main(["--config", config_path, "status"]) == 0

    out = capsys.readouterr().out.splitlines()
    assert "trakt: logged in as alice" in out
    assert "premiumize: logged out" in out


@pytest.mark.asyncio
async def test_logout_clears_store(cli_env, capsys):
    config_path, store_path = cli_env
    store = FileCredentialStore(store_path)
    await store.set(Provider.PREMIUMIZE, TokenRole.ACCESS, "pm")

    assert await main(["--config", config_path, "logout", "premiumize"]) == 0

    assert await store.get(Provider.PREMIUMIZE, TokenRole.ACCESS) is None
    assert "Logged out of premiumize" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_resolve_without_folder_fails(cli_env):
    config_path, _ = cli_env

    assert await main(["--config", config_path, "resolve", "Movie"]) == 1


@pytest.mark.asyncio
async def test_login_prints_username(cli_env, capsys):
    config_path, _ = cli_env
    credential = Credential(provider=Provider.TRAKT, access_token="a1", username="alice")

    with patch.object(AuthService, "authorize", AsyncMock(return_value=credential)) as authorize:
        assert await main(["--config", config_path, "login", "trakt", "--force"]) == 0

    authorize.assert_awaited_once()
    assert authorize.await_args.kwargs == {"force": True}
    assert "Logged in to trakt as alice" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_login_denied_exits_with_error(cli_env, capsys):
    config_path, _ = cli_env
    denied = AuthDenied("Authorization was denied by the user", provider="trakt")

    with patch.object(AuthService, "authorize", AsyncMock(side_effect=denied)):
        assert await main(["--config", config_path, "login", "trakt"]) == 1

    assert "streamauth login trakt" in capsys.readouterr().out
