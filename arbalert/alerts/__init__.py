"""Alert delivery for the arbitrage alert bot."""

from .telegram import DeliveryError, TelegramNotifier

__all__ = [
    'DeliveryError',
    'TelegramNotifier'
]
