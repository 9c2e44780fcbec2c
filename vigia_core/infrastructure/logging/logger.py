"""Configuração de logging canônico para o Vigia."""

from __future__ import annotations

import json
import logging
from logging import Logger, LogRecord

_ROOT_NAME = "vigia"


class StructuredFormatter(logging.Formatter):
    """Formatter que serializa o atributo ``extra`` caso exista."""

    def format(self, record: LogRecord) -> str:  # noqa: D401
        extra_value = getattr(record, "extra", {})
        if not isinstance(extra_value, (dict, str)):
            extra_value = {"value": extra_value}
        if isinstance(extra_value, dict):
            record.__dict__["extra"] = json.dumps(
                extra_value, ensure_ascii=False, default=str
            )
        return super().format(record)


def configure_logger(name: str = _ROOT_NAME, *, level: int = logging.INFO) -> Logger:
    """Cria um logger com formatação estruturada simples.

    Loggers filhos (``vigia.delivery``) herdam o handler do logger raiz do
    Vigia; apenas o raiz recebe um ``StreamHandler`` próprio.
    """

    root = logging.getLogger(_ROOT_NAME)
    if not root.handlers:
        root.setLevel(level)
        handler = logging.StreamHandler()
        handler.setFormatter(
            StructuredFormatter(
                fmt="%(asctime)s %(name)s %(levelname)s %(message)s | extra=%(extra)s",
                datefmt="%Y-%m-%dT%H:%M:%S",
            )
        )
        handler.addFilter(_ensure_extra)
        root.addHandler(handler)
        root.propagate = False

    if name == _ROOT_NAME:
        return root
    if not name.startswith(f"{_ROOT_NAME}."):
        name = f"{_ROOT_NAME}.{name}"
    return logging.getLogger(name)


def _ensure_extra(record: LogRecord) -> bool:
    if not hasattr(record, "extra"):
        record.__dict__["extra"] = {}
    return True
