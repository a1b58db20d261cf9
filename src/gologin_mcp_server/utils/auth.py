"""Authorization header handling for upstream GoLogin API calls."""

from enum import Enum
from typing import Dict, Optional


class AuthMethod(str, Enum):
    """How the API token is placed in the ``Authorization`` header."""

    HTTP_BEARER = "http_bearer"
    RAW_AUTHORIZATION = "raw_authorization"


class AuthConfig:
    """Credential carried by an invocation context."""

    def __init__(
        self,
        token: Optional[str] = None,
        auth_method: AuthMethod = AuthMethod.HTTP_BEARER,
    ):
        self.token = token
        self.auth_method = AuthMethod(auth_method)

    def is_configured(self) -> bool:
        return bool(self.token)

    def get_headers(self) -> Dict[str, str]:
        if not self.token:
            return {}
        if self.auth_method == AuthMethod.RAW_AUTHORIZATION:
            return {"Authorization": self.token}
        return {"Authorization": f"Bearer {self.token}"}
