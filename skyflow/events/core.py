from __future__ import annotations

from collections import Counter, deque
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Deque, Dict, List, Optional


@dataclass
class Event:
	type: str
	payload: Dict[str, Any]
	time: datetime


class EventBus:
	"""Fan-out of scheduler events plus a rolling window of recent ones.

	``log`` keeps at most ``max_events`` entries; ``count`` and ``total`` see
	everything published since the last ``clear``.
	"""

	def __init__(self, max_events: Optional[int] = None) -> None:
		self.subscribers: Dict[str, List[Callable[[Event], None]]] = {}
		self.log: Deque[Event] = deque(maxlen=max_events)
		self._counts: Counter = Counter()

	def subscribe(self, event_type: str, handler: Callable[[Event], None]) -> None:
		self.subscribers.setdefault(event_type, []).append(handler)

	def publish(self, evt: Event) -> None:
		self.log.append(evt)
		self._counts[evt.type] += 1
		for handler in self.subscribers.get(evt.type, []):
			handler(evt)

	def count(self, event_type: str) -> int:
		return self._counts[event_type]

	@property
	def total(self) -> int:
		return sum(self._counts.values())

	def clear(self) -> None:
		self.log.clear()
		self._counts.clear()
