"""
Docker Hub pull-token authentication.

Provides RegistryAuth for all registry calls of one install run with:
- One token exchange per run (no refresh, no retry)
- Session management
- Proper cleanup via invalidate()
"""

import requests
from typing import Optional

from sbin import config
from sbin.modules.errors import AuthError
from sbin.modules.formatters import ImageReference


def pull_scope(repository: str) -> str:
    return f"repository:{repository}:pull"


def get_auth_token(
    repository: str,
    scope: Optional[str] = None,
    session: Optional[requests.Session] = None,
) -> str:
    """
    Exchange an anonymous request for a pull token.

    Args:
        repository: Repository path (e.g., "lvillis/bat")
        scope: Token scope, defaults to pull access on the repository
        session: Optional session to send the request with

    Returns:
        The bearer token string

    Raises:
        AuthError: On transport failure, error status or a body without a token
    """
    http = session or requests
    try:
        resp = http.get(
            config.AUTH_URL,
            params={
                "service": config.AUTH_SERVICE,
                "scope": scope or pull_scope(repository),
            },
            timeout=config.HTTP_TIMEOUT,
        )
    except requests.RequestException as e:
        raise AuthError(f"Failed to request auth token for {repository}: {e}", repository) from e

    if not resp.ok:
        raise AuthError(
            f"Auth endpoint returned HTTP {resp.status_code} for {repository}", repository
        )

    try:
        body = resp.json()
    except ValueError as e:
        raise AuthError(f"Auth endpoint returned invalid JSON for {repository}", repository) from e

    token = None
    if isinstance(body, dict):
        token = body.get("access_token") or body.get("token")
    if not token:
        raise AuthError(f"Auth endpoint returned no token for {repository}", repository)
    return token


class RegistryAuth:
    """
    Pull credentials for one repository, for the duration of one run.

    Usage:
        auth = RegistryAuth(reference)
        resp = auth.get_session().get(url, headers=auth.headers(accept))
        # ... do work ...
        auth.invalidate()  # cleanup when done
    """

    def __init__(self, reference: ImageReference, session: Optional[requests.Session] = None):
        """
        Initialize auth for a specific image.

        Args:
            reference: Image whose repository the token is scoped to
            session: Optional pre-built session (tests inject a fake one)
        """
        self.reference = reference
        self._token: Optional[str] = None
        self._session: Optional[requests.Session] = session

    @property
    def token(self) -> str:
        """Get token, fetching on first use."""
        if not self._token:
            self._token = get_auth_token(self.reference.repository, session=self.get_session())
        return self._token

    def authenticate(self) -> str:
        """Fetch the token now instead of on the first registry call."""
        return self.token

    def get_session(self) -> requests.Session:
        """Create the session on first call, reuse it thereafter."""
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def headers(self, accept: Optional[str] = None) -> dict:
        """Authorization header, plus Accept when given."""
        headers = {"Authorization": f"Bearer {self.token}"}
        if accept:
            headers["Accept"] = accept
        return headers

    def invalidate(self):
        """
        Close the session and forget the token.

        Call this when the run ends so a token scoped to one repository
        is never reused for another.
        """
        if self._session is not None:
            self._session.close()
        self._session = None
        self._token = None
