"""Google OAuth credential provider for the YouTube Data API."""

import logging
import os
from pathlib import Path
from typing import Optional

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from lunchtube.utils.errors import NotAuthenticatedError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/youtube.readonly"]


class AuthService:
    """Hands out YouTube credentials, prompting the user only when asked to."""

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        token_path: str = "token.json",
    ):
        """Initialize the credential provider.

        Args:
            client_id: Google OAuth client ID
            client_secret: Google OAuth client secret
            token_path: Where the authorized user token is cached
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_path = token_path

    def get_credential(self, interactive: bool = False) -> Credentials:
        """Return valid credentials.

        Args:
            interactive: Allow running the browser consent flow when no
                usable token is cached

        Raises:
            NotAuthenticatedError: No credential could be obtained
        """
        creds = self._load_token()

        if creds and creds.valid:
            return creds

        if creds and creds.expired and creds.refresh_token:
            try:
                creds.refresh(Request())
                self._save_token(creds)
                return creds
            except RefreshError as e:
                logger.warning(f"Stored YouTube token could not be refreshed: {e}")
                if not interactive:
                    raise NotAuthenticatedError(f"Token refresh failed: {e}")

        if not interactive:
            raise NotAuthenticatedError("No YouTube credential available")

        creds = self._run_consent_flow()
        self._save_token(creds)
        logger.info("YouTube account connected")
        return creds

    def _load_token(self) -> Optional[Credentials]:
        if not os.path.exists(self.token_path):
            return None
        try:
            return Credentials.from_authorized_user_file(self.token_path, SCOPES)
        except (ValueError, OSError) as e:
            logger.warning(f"Ignoring unreadable token file {self.token_path}: {e}")
            return None

    def _run_consent_flow(self) -> Credentials:
        if not self.client_id or not self.client_secret:
            raise NotAuthenticatedError(
                "GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET are required to connect an account"
            )

        client_config = {
            "installed": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": "https://oauth2.googleapis.com/token",
                "auth_provider_x509_cert_url": "https://www.googleapis.com/oauth2/v1/certs",
                "redirect_uris": ["http://localhost:8080/"],
            }
        }

        flow = InstalledAppFlow.from_client_config(client_config, SCOPES)
        # Ensure we get a refresh token
        flow.run_local_server(port=8080, prompt="consent")
        return flow.credentials

    def _save_token(self, creds: Credentials) -> None:
        Path(self.token_path).parent.mkdir(parents=True, exist_ok=True)
        with open(self.token_path, "w") as token:
            token.write(creds.to_json())
