"""Adapter de busca baseado em ``httpx.AsyncClient``."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from vigia_core.domain.errors import ErrorKind, FetchError
from vigia_core.infrastructure.encoding.charset_decoder import (
    EncodingNormalizer,
    charset_from_content_type,
)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

HTML_HEADERS: Mapping[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "ru-RU,ru;q=0.9,en-US;q=0.8,en;q=0.7",
    "Accept-Encoding": "identity",
}

JSON_HEADERS: Mapping[str, str] = {
    "Accept": "application/json",
    "Accept-Language": "ru-RU,ru;q=0.9,en-US;q=0.8,en;q=0.7",
}

_TRANSIENT_EXCEPTIONS: tuple[type[Exception], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)


@dataclass(slots=True)
class FetchedPage:
    """Resposta bruta de uma requisição HTTP."""

    url: str
    content: bytes
    status_code: int
    charset: str | None = None
    headers: Mapping[str, str] = field(default_factory=dict)


class HttpxPageFetcher:
    """Busca páginas e JSON classificando as falhas por ``ErrorKind``."""

    def __init__(
        self,
        client: Any,
        *,
        decoder: EncodingNormalizer | None = None,
        timeout: float | None = 15.0,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._client = client
        self._decoder = decoder or EncodingNormalizer()
        self._timeout = timeout
        self._user_agent = user_agent

    async def fetch(
        self,
        url: str,
        *,
        params: Mapping[str, object] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> FetchedPage:
        request_headers = {"User-Agent": self._user_agent, **dict(headers or HTML_HEADERS)}
        try:
            response = await self._client.get(
                url,
                params=dict(params) if params else None,
                headers=request_headers,
                timeout=timeout if timeout is not None else self._timeout,
            )
        except _TRANSIENT_EXCEPTIONS as exc:
            raise FetchError(
                f"Falha de rede ao buscar {url}",
                kind=ErrorKind.TRANSIENT_NETWORK,
                cause=exc,
            ) from exc
        except Exception as exc:  # noqa: BLE001
            raise FetchError(f"Falha ao buscar {url}", cause=exc) from exc

        status = int(getattr(response, "status_code", 200))
        if status >= 400:
            raise FetchError(
                f"Resposta HTTP {status} ao buscar {url}",
                kind=self._classify_status(status),
                status_code=status,
            )

        response_headers = dict(getattr(response, "headers", {}) or {})
        content_type = _header(response_headers, "content-type")
        return FetchedPage(
            url=str(getattr(response, "url", url)),
            content=bytes(getattr(response, "content", b"")),
            status_code=status,
            charset=charset_from_content_type(content_type),
            headers=response_headers,
        )

    async def fetch_text(
        self,
        url: str,
        *,
        params: Mapping[str, object] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> str:
        page = await self.fetch(url, params=params, headers=headers, timeout=timeout)
        return self._decoder.decode(page.content, page.charset)

    async def fetch_json(
        self,
        url: str,
        *,
        params: Mapping[str, object] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> object:
        page = await self.fetch(
            url, params=params, headers=headers or JSON_HEADERS, timeout=timeout
        )
        try:
            return json.loads(page.content)
        except ValueError as exc:
            raise FetchError("Resposta inválida ao decodificar JSON", cause=exc) from exc

    @staticmethod
    def _classify_status(status: int) -> ErrorKind:
        if status == 429:
            return ErrorKind.RATE_LIMITED
        return ErrorKind.OTHER


def _header(headers: Mapping[str, str], name: str) -> str | None:
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


__all__ = ["FetchedPage", "HttpxPageFetcher", "DEFAULT_USER_AGENT"]
