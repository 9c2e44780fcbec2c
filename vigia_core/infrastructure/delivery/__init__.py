"""Entrega resiliente de mensagens ao transporte."""

from .delivery_engine import MESSAGE_LIMIT, DeliveryEngine, backoff_for, fit_message

__all__ = ["DeliveryEngine", "MESSAGE_LIMIT", "backoff_for", "fit_message"]
