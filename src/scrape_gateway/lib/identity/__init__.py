"""Identity verification against the platform backend."""

from scrape_gateway.lib.identity.platform import PlatformAuthClient, PlatformAuthError

__all__ = ["PlatformAuthClient", "PlatformAuthError"]
