"""Decodificação tolerante de páginas em codificações legadas.

As fontes monitoradas historicamente servem Windows-1251, às vezes com um
``charset`` declarado incorretamente. O decodificador escolhe entre dois
candidatos e troca de candidato quando o resultado tem caracteres de
substituição demais. É uma heurística de melhor esforço, não uma detecção
garantida.
"""

from __future__ import annotations

import re
from logging import Logger

LEGACY_ENCODING = "windows-1251"
UTF8 = "utf-8"
REPLACEMENT_CHAR = "\ufffd"

_RE_CHARSET = re.compile(r"charset=\"?([^;\"\s]+)", re.IGNORECASE)


def charset_from_content_type(content_type: str | None) -> str | None:
    """Extrai o ``charset`` de um cabeçalho ``Content-Type``."""

    if not content_type:
        return None
    match = _RE_CHARSET.search(content_type)
    if not match:
        return None
    return match.group(1).strip().lower() or None


class EncodingNormalizer:
    """Converte bytes em texto escolhendo entre Windows-1251 e UTF-8."""

    def __init__(
        self,
        *,
        default_encoding: str = LEGACY_ENCODING,
        replacement_threshold: float = 0.1,
        logger: Logger | None = None,
    ) -> None:
        self._default = default_encoding
        self._threshold = replacement_threshold
        self._logger = logger

    def normalize_charset(self, declared: str | None) -> str:
        if not declared:
            return self._default
        lowered = declared.strip().lower()
        if "utf" in lowered and "8" in lowered:
            return UTF8
        return LEGACY_ENCODING

    def decode(self, raw: bytes, declared_charset: str | None = None) -> str:
        encoding = self.normalize_charset(declared_charset)
        try:
            text = raw.decode(encoding, errors="replace")
            if self._too_many_replacements(text):
                alternative = UTF8 if encoding == LEGACY_ENCODING else LEGACY_ENCODING
                self._log(
                    "encoding.fallback",
                    {"from": encoding, "to": alternative, "length": len(text)},
                )
                text = raw.decode(alternative, errors="replace")
            return text
        except Exception:  # noqa: BLE001 - nunca propaga falha de decodificação
            self._log("encoding.forced_utf8", {"declared": declared_charset})
            return raw.decode(UTF8, errors="replace")

    def _too_many_replacements(self, text: str) -> bool:
        if not text:
            return False
        return text.count(REPLACEMENT_CHAR) > len(text) * self._threshold

    def _log(self, message: str, extra: dict[str, object]) -> None:
        if self._logger is not None:
            self._logger.warning(message, extra={"extra": extra})


__all__ = ["EncodingNormalizer", "charset_from_content_type"]
