"""Remote storage credentials and storage-zone sanitation."""
from __future__ import annotations

from dataclasses import dataclass

DEFAULT_STORAGE_API_BASE = "https://storage.bunnycdn.com"
DEFAULT_CDN_HOSTNAME_PATTERN = "{zone}.b-cdn.net"

# Fragments people paste into the zone field by mistake; order matters
# ("storage.bunnycdn.com/" must go before the bare hostname).
_ZONE_NOISE = (
    "https://",
    "http://",
    "storage.bunnycdn.com/",
    "storage.bunnycdn.com",
    ".b-cdn.net",
    "www.",
)


def sanitize_storage_zone(storage_zone: str) -> str:
    """Reduce a pasted URL or hostname to the bare zone name.

    >>> sanitize_storage_zone("https://storage.bunnycdn.com/myzone/")
    'myzone'
    """
    if not storage_zone:
        return ""
    for fragment in _ZONE_NOISE:
        storage_zone = storage_zone.replace(fragment, "")
    return storage_zone.strip("/ ")


def is_valid_storage_zone(storage_zone: str) -> bool:
    if not storage_zone:
        return False
    return not ("." in storage_zone or "/" in storage_zone or "http" in storage_zone)


@dataclass(frozen=True)
class StorageCredentials:
    """Access key and zone addressing for the storage API and CDN."""

    access_key: str
    storage_zone: str
    region: str = ""
    custom_hostname: str = ""
    storage_api_base: str = DEFAULT_STORAGE_API_BASE
    cdn_hostname_pattern: str = DEFAULT_CDN_HOSTNAME_PATTERN

    def __post_init__(self) -> None:
        object.__setattr__(self, "storage_zone", sanitize_storage_zone(self.storage_zone))

    def problems(self) -> list[str]:
        """Reasons these credentials cannot be used; empty when well-formed."""
        found: list[str] = []
        if not self.access_key:
            found.append("access key is empty")
        if not self.storage_zone:
            found.append("storage zone is empty")
        elif not is_valid_storage_zone(self.storage_zone):
            found.append(f"invalid storage zone format: {self.storage_zone}")
        return found

    def is_well_formed(self) -> bool:
        return not self.problems()

    def masked_access_key(self) -> str:
        if not self.access_key:
            return ""
        if len(self.access_key) <= 8:
            return "*" * len(self.access_key)
        return f"{self.access_key[:4]}{'*' * (len(self.access_key) - 8)}{self.access_key[-4:]}"
