"""Runtime view of the offload settings.

Settings are loaded once per process and may later be replaced by an
administrator; collaborators read through this holder so replacements are
visible to them on their next call.
"""
from __future__ import annotations

from typing import Any, Iterable

from application.utils.storage import is_within_root
from core.config import OffloadSettings
from domain.common.exceptions import DomainValidationException
from domain.offload.credentials import StorageCredentials


class OffloadConfiguration:
    def __init__(self, settings: OffloadSettings):
        self._settings = settings

    @property
    def settings(self) -> OffloadSettings:
        return self._settings

    def credentials(self) -> StorageCredentials:
        s = self._settings
        return StorageCredentials(
            access_key=s.access_key,
            storage_zone=s.storage_zone,
            region=s.region,
            custom_hostname=s.custom_hostname,
            storage_api_base=s.storage_api_base,
            cdn_hostname_pattern=s.cdn_hostname_pattern,
        )

    def is_enabled(self) -> bool:
        """Enabled flag set and credentials well-formed."""
        return self._settings.enabled and self.credentials().is_well_formed()

    def update(self, **changes: Any) -> OffloadSettings:
        """Replace settings, re-running validation (and zone sanitation)."""
        data = self._settings.model_dump()
        data.update(changes)
        self._settings = OffloadSettings.model_validate(data)
        return self._settings

    def ensure_local_paths(self, paths: Iterable[str], *, field: str) -> None:
        """Reject any path that does not resolve inside ``media_root``.

        An empty ``media_root`` accepts nothing.
        """
        root = self._settings.media_root
        if not root:
            raise DomainValidationException("offload.media_root is not configured", field=field)
        outside = [p for p in paths if not is_within_root(p, root)]
        if outside:
            raise DomainValidationException(
                "Path is outside the media root",
                field=field,
                details={"paths": outside},
            )
