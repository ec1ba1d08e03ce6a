"""Bundled subscribers. Each implements emit(event)."""

from herald.subscribers.log import LogSubscriber
from herald.subscribers.sink import SinkSubscriber

__all__ = ["LogSubscriber", "SinkSubscriber"]
