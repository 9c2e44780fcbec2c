"""Definições de exceções para o domínio do Vigia."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Classificação estruturada anexada no ponto em que a falha é detectada."""

    TRANSIENT_NETWORK = "transient_network"
    RATE_LIMITED = "rate_limited"
    VALIDATION = "validation"
    NOT_MODIFIED = "not_modified"
    OTHER = "other"


class VigiaError(Exception):
    """Exceção base para erros conhecidos da aplicação."""

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class FetchError(VigiaError):
    """Erro ocorrido durante a busca de dados em uma fonte externa."""

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind = ErrorKind.OTHER,
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.kind = kind
        self.status_code = status_code

    @property
    def is_transient(self) -> bool:
        return self.kind is ErrorKind.TRANSIENT_NETWORK


class ExtractionMismatch(VigiaError):
    """Estrutura esperada (HTML ou JSON) ausente na resposta."""


class DeliveryError(VigiaError):
    """Falha reportada pelo transporte de mensagens."""

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind = ErrorKind.OTHER,
        status_code: int | None = None,
        retry_after: float | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.kind = kind
        self.status_code = status_code
        self.retry_after = retry_after


class PersistenceError(VigiaError):
    """Erro de leitura ou escrita no armazenamento local."""
