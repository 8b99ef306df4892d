"""BunnyCDN Storage HTTP client.

Thin ``httpx.AsyncClient`` wrapper implementing ``RemoteStoragePort``:
PUT and DELETE against ``{storage_api_base}/{zone}/{key}`` with the
``AccessKey`` header. Redirects are never followed and nothing is retried;
failures are classified into ``TransferOutcome`` instead of raised.
"""
from __future__ import annotations

import time
from typing import Callable, Optional

import httpx

from core.logging_config import get_logger
from domain.offload.credentials import StorageCredentials
from domain.offload.outcome import (
    TransferErrorKind,
    TransferOutcome,
    classify_delete_status,
    classify_http_status,
    classify_transport_error,
)
from .exceptions import ConfigurationError
from .urls import UrlCodec

logger = get_logger(__name__)

_DETAIL_LIMIT = 200


class BunnyStorageClient:
    """Remote storage client bound to a credentials provider.

    The provider is called on every request so credential changes made at
    runtime take effect without rebuilding the client.
    """

    def __init__(
        self,
        credentials_provider: Callable[[], StorageCredentials],
        *,
        user_agent: str = "MediaOffload/1.0",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self._credentials_provider = credentials_provider
        self._clock = clock
        self._client = httpx.AsyncClient(
            follow_redirects=False,
            headers={"User-Agent": user_agent},
            transport=transport,
        )

    def credentials(self) -> StorageCredentials:
        return self._credentials_provider()

    def codec(self) -> UrlCodec:
        return UrlCodec(self.credentials())

    def cdn_url(self, remote_key: str) -> str:
        return self.codec().build_cdn_url(remote_key)

    def remote_key_from_url(self, cdn_url: Optional[str]) -> Optional[str]:
        return UrlCodec.parse_remote_key(cdn_url)

    def _prepare(self, remote_key: str) -> tuple[str, dict[str, str]]:
        credentials = self.credentials()
        problems = credentials.problems()
        if problems:
            raise ConfigurationError("; ".join(problems))
        url = UrlCodec(credentials).build_storage_api_url(remote_key)
        return url, {"AccessKey": credentials.access_key}

    async def put_object(
        self,
        remote_key: str,
        body: bytes,
        *,
        content_type: str,
        timeout: float,
    ) -> TransferOutcome:
        try:
            url, headers = self._prepare(remote_key)
        except ConfigurationError as exc:
            return TransferOutcome.failure(TransferErrorKind.NOT_CONFIGURED, detail=str(exc))
        headers["Content-Type"] = content_type
        headers["Content-Length"] = str(len(body))

        started = self._clock()
        try:
            response = await self._client.put(url, content=body, headers=headers, timeout=timeout)
        except httpx.TimeoutException as exc:
            elapsed = self._clock() - started
            return TransferOutcome(
                TransferErrorKind.TIMEOUT, detail=_describe(exc), elapsed=elapsed
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            return classify_transport_error(
                str(exc), elapsed=self._clock() - started, detail=_describe(exc)
            )

        elapsed = self._clock() - started
        detail = None if response.is_success else response.text[:_DETAIL_LIMIT]
        outcome = classify_http_status(response.status_code, detail=detail, elapsed=elapsed)
        logger.debug(
            "storage_put_response",
            remote_key=remote_key,
            status_code=response.status_code,
            elapsed_s=round(elapsed, 3),
        )
        return outcome

    async def delete_object(self, remote_key: str, *, timeout: float) -> TransferOutcome:
        try:
            url, headers = self._prepare(remote_key)
        except ConfigurationError as exc:
            return TransferOutcome.failure(TransferErrorKind.NOT_CONFIGURED, detail=str(exc))

        started = self._clock()
        try:
            response = await self._client.delete(url, headers=headers, timeout=timeout)
        except httpx.TimeoutException as exc:
            return TransferOutcome(
                TransferErrorKind.TIMEOUT, detail=_describe(exc), elapsed=self._clock() - started
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            return classify_transport_error(
                str(exc), elapsed=self._clock() - started, detail=_describe(exc)
            )

        detail = None if response.is_success else response.text[:_DETAIL_LIMIT]
        logger.debug("storage_delete_response", remote_key=remote_key, status_code=response.status_code)
        return classify_delete_status(response.status_code, detail=detail)

    async def aclose(self) -> None:
        await self._client.aclose()


def _describe(exc: Exception) -> str:
    message = str(exc)
    return f"{type(exc).__name__}: {message}" if message else type(exc).__name__
