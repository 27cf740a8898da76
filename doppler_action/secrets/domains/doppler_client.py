"""Doppler API client wrapper."""
import logging
from typing import Dict, Optional

import requests

from .models import Secret

logger = logging.getLogger(__name__)

VERSION = "0.1.0"
USER_AGENT = f"doppler-secrets-action/{VERSION}"


class DopplerAPIError(Exception):
    """The Doppler API returned an error or an unusable response."""
    pass


class DopplerClient:
    """Wrapper around the Doppler REST API."""

    def __init__(self, api_domain: str, session: Optional[requests.Session] = None, timeout: int = 30):
        self.api_domain = api_domain
        self.timeout = timeout
        self._session = session

    @property
    def session(self) -> requests.Session:
        """Lazy-initialize session."""
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update({
                "User-Agent": USER_AGENT,
                "Accept": "application/json",
            })
        return self._session

    def _url(self, path: str) -> str:
        return f"https://{self.api_domain}{path}"

    def _payload(self, response: requests.Response) -> dict:
        """Decode a response, mapping failures to DopplerAPIError."""
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.status_code == 200 and isinstance(payload, dict):
            return payload

        messages = payload.get("messages") if isinstance(payload, dict) else None
        if messages:
            raise DopplerAPIError(f"Doppler API Error: {' '.join(str(m) for m in messages)}")
        raise DopplerAPIError(
            f"Doppler API Error: {response.status_code} {response.reason} on {response.url}"
        )

    def fetch_secrets(self, token: str, project: Optional[str] = None,
                      config: Optional[str] = None) -> Dict[str, Secret]:
        """
        Download all secrets for a config.

        Args:
            token: Doppler token
            project: Project name (only sent together with config)
            config: Config name

        Returns:
            Mapping of secret name to Secret, in the order the API returned them

        Raises:
            DopplerAPIError: On any non-200 response or malformed payload
        """
        params = {}
        if project and config:
            params = {"project": project, "config": config}

        response = self.session.get(
            self._url("/v3/configs/config/secrets"),
            params=params,
            auth=(token, ""),
            timeout=self.timeout,
        )
        payload = self._payload(response)

        secrets = payload.get("secrets")
        if not isinstance(secrets, dict):
            raise DopplerAPIError("Doppler API Error: response did not include secrets")

        logger.debug(f"Fetched {len(secrets)} secrets from {self.api_domain}")
        return {key: Secret.from_api(key, value) for key, value in secrets.items()}

    def oidc_auth(self, identity_id: str, oidc_token: str) -> str:
        """
        Exchange a workflow OIDC token for a Doppler service account token.

        Args:
            identity_id: Doppler service account identity ID
            oidc_token: ID token issued to the workflow run

        Returns:
            Short-lived Doppler token

        Raises:
            DopplerAPIError: If the exchange fails
        """
        response = self.session.post(
            self._url("/v3/auth/oidc"),
            json={"identity": identity_id, "token": oidc_token},
            timeout=self.timeout,
        )
        payload = self._payload(response)

        token = payload.get("token")
        if not token:
            raise DopplerAPIError("Doppler API Error: OIDC response did not include a token")
        return token
