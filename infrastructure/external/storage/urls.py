"""Storage API and CDN URL construction, and remote-key recovery."""
from __future__ import annotations

from typing import Optional
from urllib.parse import urlsplit

from domain.offload.credentials import StorageCredentials


class UrlCodec:
    """Pure mapping between remote keys and URLs for one set of credentials.

    For keys made of unreserved characters
    ``parse_remote_key(build_cdn_url(key)) == key``.
    """

    def __init__(self, credentials: StorageCredentials):
        self.credentials = credentials

    def build_storage_api_url(self, remote_key: str) -> str:
        base = self.credentials.storage_api_base.rstrip("/")
        return f"{base}/{self.credentials.storage_zone}/{remote_key}"

    def cdn_base_url(self) -> str:
        host = self.credentials.custom_hostname or self.credentials.cdn_hostname_pattern.format(
            zone=self.credentials.storage_zone
        )
        if not host.startswith(("http://", "https://")):
            host = f"https://{host}"
        return host.rstrip("/")

    def build_cdn_url(self, remote_key: str) -> str:
        return f"{self.cdn_base_url()}/{remote_key}"

    @staticmethod
    def parse_remote_key(cdn_url: Optional[str]) -> Optional[str]:
        """Recover the remote key from a CDN URL, or ``None`` when impossible."""
        if not cdn_url:
            return None
        try:
            path = urlsplit(cdn_url).path
        except ValueError:
            return None
        key = path.lstrip("/")
        return key or None
