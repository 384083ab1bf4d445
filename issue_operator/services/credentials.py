"""GitHub credentials"""
import logging
from typing import Optional, Protocol

import requests

from issue_operator.config import settings
from issue_operator.services.errors import CredentialError

logger = logging.getLogger(__name__)


class CredentialProvider(Protocol):
    def authenticated_session(self) -> requests.Session:
        """Return a session that authenticates every request it sends."""


class SecretCredentialProvider:
    """Reads the API token from a stored secret"""

    def __init__(
        self,
        store,
        namespace: Optional[str] = None,
        name: Optional[str] = None,
        key: Optional[str] = None,
    ):
        self.store = store
        self.namespace = namespace or settings.token_secret_namespace
        self.name = name or settings.token_secret_name
        self.key = key or settings.token_secret_key

    def token(self) -> str:
        try:
            secret = self.store.get_secret(self.namespace, self.name)
        except Exception as e:
            raise CredentialError(f"unable to read GitHub token secret: {e}") from e
        if secret is None:
            raise CredentialError(
                f"unable to read GitHub token secret: {self.namespace}/{self.name} not found"
            )
        token = (secret.data or {}).get(self.key)
        if not token:
            raise CredentialError(f"GitHub token not found in secret {self.namespace}/{self.name}")
        return str(token)

    def authenticated_session(self) -> requests.Session:
        token = self.token()
        session = requests.Session()
        session.headers["Authorization"] = f"Bearer {token}"
        return session
