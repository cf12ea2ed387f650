"""Cross-chain transport: an explicit queue between simulated chains.

Messages are delivered in the order they were accepted, which keeps each
(source, destination, sender) lane in send order. A message is handed out
at most once: it is removed from the queue before it is executed, and a
message id that has been seen before is never queued again.

Seen ids are kept for the lifetime of the transport and never pruned.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Iterable, Optional

from .types import OutboundMessage

logger = logging.getLogger(__name__)

Lane = tuple[int, int, bytes]


def lane_of(message: OutboundMessage) -> Lane:
    return (message.source_chain_selector, message.destination_chain_selector, message.sender)


class Transport:
    def __init__(self) -> None:
        self._queue: deque[OutboundMessage] = deque()
        self._seen: set[bytes] = set()

    def __len__(self) -> int:
        return len(self._queue)

    def enqueue(self, messages: Iterable[OutboundMessage]) -> int:
        accepted = 0
        for message in messages:
            if message.message_id in self._seen:
                logger.warning("dropping duplicate message %s", message.message_id.hex())
                continue
            self._seen.add(message.message_id)
            self._queue.append(message)
            accepted += 1
        return accepted

    def pop_next(self) -> Optional[OutboundMessage]:
        if not self._queue:
            return None
        return self._queue.popleft()

    def pending(self, lane: Optional[Lane] = None) -> list[OutboundMessage]:
        if lane is None:
            return list(self._queue)
        return [m for m in self._queue if lane_of(m) == lane]
