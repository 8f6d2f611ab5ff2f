"""Platform backend token introspection.

The platform backend owns sessions and signing keys; the gateway only asks
it who a bearer token belongs to (``GET /auth/v1/user``).
"""

import httpx
from loguru import logger

DEFAULT_TIMEOUT = 10.0


class PlatformAuthError(Exception):
    """Raised when a token cannot be resolved to a user for any reason.

    Expired, malformed and revoked tokens, provider outages, and responses
    without a user id all surface as this one error.
    """


class PlatformAuthClient:
    """Resolves bearer tokens to stable user identifiers."""

    def __init__(self, base_url: str, anon_key: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._user_url = f"{base_url.rstrip('/')}/auth/v1/user"
        self._anon_key = anon_key
        self._timeout = timeout

    async def get_user_id(self, token: str) -> str:
        """Introspect a bearer token.

        Args:
            token: The raw bearer token (without the ``Bearer`` prefix).

        Returns:
            The caller's stable user identifier.

        Raises:
            PlatformAuthError: If the token is not accepted by the platform.
        """
        headers = {
            "Authorization": f"Bearer {token}",
            "apikey": self._anon_key,
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(self._user_url, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"Token introspection failed: {type(e).__name__}")
            raise PlatformAuthError("Token introspection unavailable") from e

        if response.status_code != 200:
            logger.info(f"Token rejected by platform with HTTP {response.status_code}")
            raise PlatformAuthError(f"Token rejected with HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise PlatformAuthError("Malformed introspection response") from e

        user_id = data.get("id") if isinstance(data, dict) else None
        if not isinstance(user_id, str) or not user_id:
            raise PlatformAuthError("Introspection response did not include a user id")
        return user_id
