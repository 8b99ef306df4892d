"""Application-owned remote storage port (hexagonal architecture).

Defines the minimal methods the offload use cases need so that the
application layer does not depend on the HTTP client. Transfer methods
never raise: every failure comes back as a classified ``TransferOutcome``.
"""
from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from domain.offload.credentials import StorageCredentials
from domain.offload.outcome import TransferOutcome


@runtime_checkable
class RemoteStoragePort(Protocol):
    def credentials(self) -> StorageCredentials: ...

    def cdn_url(self, remote_key: str) -> str: ...

    def remote_key_from_url(self, cdn_url: Optional[str]) -> Optional[str]: ...

    async def put_object(
        self,
        remote_key: str,
        body: bytes,
        *,
        content_type: str,
        timeout: float,
    ) -> TransferOutcome: ...

    async def delete_object(self, remote_key: str, *, timeout: float) -> TransferOutcome: ...
