"""Real-time delivery of trade and friendship events."""

from .notifier import Notifier  # noqa: F401
from .sockets import TradeNamespace  # noqa: F401
