import json
from datetime import datetime

import pytest
from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials

from lunchtube.services import auth_service
from lunchtube.services.auth_service import SCOPES, AuthService
from lunchtube.utils.errors import NotAuthenticatedError

TOKEN_URI = "https://oauth2.googleapis.com/token"


def write_token(path, expiry, token="cached-token"):
    path.write_text(json.dumps({
        "token": token,
        "refresh_token": "refresh-me",
        "client_id": "client-id",
        "client_secret": "client-secret",
        "token_uri": TOKEN_URI,
        "scopes": SCOPES,
        "expiry": expiry,
    }))


class FakeFlow:
    """Stands in for the browser consent flow."""

    configs = []

    def __init__(self, client_config):
        self.client_config = client_config
        self.credentials = None

    @classmethod
    def from_client_config(cls, client_config, scopes):
        cls.configs.append((client_config, scopes))
        return cls(client_config)

    def run_local_server(self, port, prompt):
        installed = self.client_config["installed"]
        self.credentials = Credentials(
            token="consented-token",
            refresh_token="new-refresh",
            token_uri=TOKEN_URI,
            client_id=installed["client_id"],
            client_secret=installed["client_secret"],
        )


@pytest.fixture
def token_path(tmp_path):
    return tmp_path / "data" / "token.json"


@pytest.fixture
def fake_flow(monkeypatch):
    FakeFlow.configs = []
    monkeypatch.setattr(auth_service, "InstalledAppFlow", FakeFlow)
    return FakeFlow


def test_missing_token_requires_sign_in(token_path, fake_flow):
    service = AuthService("client-id", "client-secret", str(token_path))
    with pytest.raises(NotAuthenticatedError):
        service.get_credential()
    assert fake_flow.configs == []


def test_valid_cached_token_is_returned(token_path, monkeypatch):
    token_path.parent.mkdir(parents=True)
    write_token(token_path, "2999-01-01T00:00:00Z")

    def no_refresh(self, request):
        raise AssertionError("a valid token should not be refreshed")

    monkeypatch.setattr(Credentials, "refresh", no_refresh)

    creds = AuthService(None, None, str(token_path)).get_credential()
    assert creds.token == "cached-token"


def test_expired_token_is_refreshed_and_saved(token_path, monkeypatch):
    token_path.parent.mkdir(parents=True)
    write_token(token_path, "2001-01-01T00:00:00Z")

    def refresh(self, request):
        self.token = "fresh-token"
        self.expiry = datetime(2999, 1, 1)

    monkeypatch.setattr(Credentials, "refresh", refresh)

    creds = AuthService(None, None, str(token_path)).get_credential()
    assert creds.token == "fresh-token"
    assert json.loads(token_path.read_text())["token"] == "fresh-token"


def test_failed_refresh_is_not_authenticated(token_path, monkeypatch, fake_flow):
    token_path.parent.mkdir(parents=True)
    write_token(token_path, "2001-01-01T00:00:00Z")

    def refresh(self, request):
        raise RefreshError("invalid_grant: Token has been expired or revoked.")

    monkeypatch.setattr(Credentials, "refresh", refresh)

    with pytest.raises(NotAuthenticatedError):
        AuthService("client-id", "client-secret", str(token_path)).get_credential()
    assert fake_flow.configs == []


def test_failed_refresh_falls_back_to_consent_when_interactive(token_path, monkeypatch, fake_flow):
    token_path.parent.mkdir(parents=True)
    write_token(token_path, "2001-01-01T00:00:00Z")

    def refresh(self, request):
        raise RefreshError("invalid_grant")

    monkeypatch.setattr(Credentials, "refresh", refresh)

    creds = AuthService("client-id", "client-secret", str(token_path)).get_credential(interactive=True)
    assert creds.token == "consented-token"
    assert len(fake_flow.configs) == 1


def test_consent_flow_saves_token(token_path, fake_flow):
    service = AuthService("client-id", "client-secret", str(token_path))

    creds = service.get_credential(interactive=True)
    assert creds.token == "consented-token"

    client_config, scopes = fake_flow.configs[0]
    assert client_config["installed"]["client_id"] == "client-id"
    assert scopes == SCOPES

    saved = json.loads(token_path.read_text())
    assert saved["refresh_token"] == "new-refresh"
    # Next call reuses the saved token without prompting
    assert service.get_credential().token == "consented-token"
    assert len(fake_flow.configs) == 1


def test_consent_flow_needs_client_credentials(token_path, fake_flow):
    service = AuthService(None, None, str(token_path))
    with pytest.raises(NotAuthenticatedError):
        service.get_credential(interactive=True)
    assert fake_flow.configs == []
    assert not token_path.exists()


def test_unreadable_token_file_is_ignored(token_path):
    token_path.parent.mkdir(parents=True)
    token_path.write_text("{not json")
    with pytest.raises(NotAuthenticatedError):
        AuthService("client-id", "client-secret", str(token_path)).get_credential()
