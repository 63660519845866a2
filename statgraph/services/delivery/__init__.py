"""Result delivery: HTTP callbacks and chat notifications."""

from statgraph.services.delivery.callback import CallbackSender
from statgraph.services.delivery.notifications import (
    ChatNotificationConsumer,
    NotificationDispatcher,
    TelegramMessenger,
)

__all__ = [
    "CallbackSender",
    "ChatNotificationConsumer",
    "NotificationDispatcher",
    "TelegramMessenger",
]
