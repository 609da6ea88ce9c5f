from __future__ import annotations

import copy
import heapq
import itertools
import threading
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

import pandas as pd

from skyflow.config import Config
from skyflow.events.core import Event, EventBus
from skyflow.models.flight import EmergencyLevel, Flight
from skyflow.models.runway import Runway
from skyflow.models.separation import SeparationMatrix
from skyflow.models.weather import WeatherModel
from skyflow.utils.logging import get_logger


logger = get_logger(__name__)

ASSIGNMENT_COLUMNS = [
	"flight_id",
	"flight_number",
	"runway_id",
	"category",
	"flight_type",
	"emergency",
	"scheduled_time",
	"actual_time",
	"delay_seconds",
	"priority",
]


class FlightState(Enum):
	PENDING = "Pending"
	SCHEDULED = "Scheduled"


def _checked_changes(changes: Dict) -> Dict:
	"""Validate a flight update up front so it is applied whole or not at all."""
	allowed = {"emergency_level", "fuel_level", "scheduled_time"}
	unknown = set(changes) - allowed
	if unknown:
		raise ValueError(f"cannot update flight fields: {sorted(unknown)}")
	checked = dict(changes)
	if "emergency_level" in checked and not isinstance(checked["emergency_level"], EmergencyLevel):
		raise ValueError(f"emergency_level must be an EmergencyLevel, got {checked['emergency_level']!r}")
	if "scheduled_time" in checked and not isinstance(checked["scheduled_time"], datetime):
		raise ValueError(f"scheduled_time must be a datetime, got {checked['scheduled_time']!r}")
	if "fuel_level" in checked:
		try:
			checked["fuel_level"] = int(checked["fuel_level"])
		except (TypeError, ValueError):
			raise ValueError(f"fuel_level must be a number, got {checked['fuel_level']!r}") from None
	return checked


class SchedulingEngine:
	"""Assigns pending flights to runways without breaking wake separation.

	Every public method that mutates state, and every snapshot, runs under a
	single re-entrant lock so a scheduling pass is never observed half done.
	Snapshots hand out copies; the engine keeps the only live references to
	its flights and runways.
	"""

	def __init__(
		self,
		config: Optional[Config] = None,
		matrix: Optional[SeparationMatrix] = None,
		weather: Optional[WeatherModel] = None,
		clock: Optional[Callable[[], datetime]] = None,
		bus: Optional[EventBus] = None,
	) -> None:
		self.config = config or Config()
		self.matrix = matrix or SeparationMatrix()
		self.clock = clock or datetime.now
		self.bus = bus
		self._weather = weather or WeatherModel()
		self._lock = threading.RLock()
		self._pending: Dict[str, Flight] = {}
		self._scheduled: Dict[str, Flight] = {}
		self._runways: Dict[str, Runway] = {}
		self._arrival_seq = itertools.count()
		self._arrival: Dict[str, int] = {}

	# -- mutations ---------------------------------------------------------

	def enqueue(self, flight: Flight) -> None:
		with self._lock:
			self._scheduled.pop(flight.id, None)
			flight.unassign()
			self._pending[flight.id] = flight
			self._arrival.setdefault(flight.id, next(self._arrival_seq))
			logger.debug("Queued %s (priority %d)", flight.flight_number, flight.priority)

	def register_runway(self, runway: Runway) -> None:
		with self._lock:
			if runway.next_available is None:
				runway.next_available = self.clock()
			self._runways[runway.id] = runway
			logger.debug("Registered runway %s", runway.id)

	def set_weather(self, weather: WeatherModel) -> None:
		with self._lock:
			self._weather = weather

	def update_weather(self, **fields) -> WeatherModel:
		with self._lock:
			self._weather.update(**fields)
			return self._weather.copy()

	def update_flight(self, flight_id: str, **changes) -> Flight:
		"""Change emergency level, fuel or scheduled time of a known flight.

		A Scheduled flight goes back to Pending so the next pass re-evaluates it
		against its new priority.
		"""
		changes = _checked_changes(changes)
		with self._lock:
			flight = self._find(flight_id)
			for key, value in changes.items():
				setattr(flight, key, value)
			if flight.id in self._scheduled:
				self._release(flight)
			return copy.copy(flight)

	def remove_flight(self, flight_id: str) -> Optional[Flight]:
		with self._lock:
			flight = self._pending.pop(flight_id, None) or self._scheduled.pop(flight_id, None)
			self._arrival.pop(flight_id, None)
			if flight is not None:
				flight.unassign()
			return flight

	def set_runway_active(self, runway_id: str, active: bool) -> Runway:
		with self._lock:
			runway = self._runways[runway_id]
			runway.set_active(active)
			if not active:
				now = self.clock()
				for flight in self._on_runway(runway_id):
					if flight.actual_time >= now:
						self._release(flight)
			return copy.copy(runway)

	def remove_runway(self, runway_id: str) -> Optional[Runway]:
		with self._lock:
			runway = self._runways.pop(runway_id, None)
			if runway is not None:
				for flight in self._on_runway(runway_id):
					self._release(flight)
			return runway

	def reset(self) -> None:
		with self._lock:
			now = self.clock()
			for flight in itertools.chain(self._pending.values(), self._scheduled.values()):
				flight.unassign()
			self._pending.clear()
			self._scheduled.clear()
			self._arrival.clear()
			for runway in self._runways.values():
				runway.reset(now)
			self._publish("engine.reset", {}, now)
			logger.info("Scheduler reset; %d runways available from %s", len(self._runways), now)

	def restore_scheduled(self, flight: Flight) -> bool:
		"""Re-admit a previously persisted assignment without re-planning it."""
		with self._lock:
			if flight.assigned_runway_id not in self._runways or flight.actual_time is None:
				self.enqueue(flight)
				return False
			self._pending.pop(flight.id, None)
			self._scheduled[flight.id] = flight
			self._arrival.setdefault(flight.id, next(self._arrival_seq))
			return True

	# -- scheduling pass ---------------------------------------------------

	def run_scheduling_pass(self) -> List[Flight]:
		with self._lock:
			now = self.clock()
			# Weather may have worsened since these slots were handed out
			self._release_conflicts(now)
			if not self._pending:
				return [copy.copy(f) for f in self._scheduled.values()]

			heap = []
			for flight in self._pending.values():
				flight.update_priority(now)
				heap.append((
					-flight.emergency_level.weight,
					-flight.priority,
					flight.scheduled_time,
					self._arrival.get(flight.id, 0),
					flight.id,
					flight,
				))
			heapq.heapify(heap)
			self._pending.clear()

			placed: List[Flight] = []
			while heap:
				flight = heapq.heappop(heap)[-1]
				if flight.is_emergency:
					self._schedule_emergency(flight, now, placed)
				else:
					self._schedule_normal(flight, now, placed)

			logger.info(
				"Scheduling pass placed %d flights | scheduled=%d | pending=%d | weather factor=%.2f",
				len(placed), len(self._scheduled), len(self._pending), self._weather.weather_factor(),
			)
			return [copy.copy(f) for f in placed]

	def _schedule_normal(self, flight: Flight, now: datetime, placed: List[Flight]) -> None:
		runway = self._select_runway(flight, now, prefer_held=True)
		if runway is None:
			self._defer(flight, now, "no active runway")
			return

		# An overdue flight cannot be slotted into the past
		start = max(flight.scheduled_time, now)
		if runway.next_available is not None and runway.next_available > start:
			start = runway.next_available
		slot = self._earliest_conflict_free(flight, runway.id, start)
		if slot is None:
			self._defer(flight, now, f"no conflict-free slot on {runway.id}")
			return
		self._place(flight, runway, slot, now, placed)

	def _schedule_emergency(self, flight: Flight, now: datetime, placed: List[Flight]) -> None:
		runway = self._select_runway(flight, now)
		forced = False
		if runway is None and self._runways:
			# Emergencies must land: fall back to the best inactive runway
			runway = self._select_runway(flight, now, candidates=self._runways.values(), force=True)
			forced = True
		if runway is None:
			self._defer(flight, now, "no runway at all")
			return

		base = max(flight.scheduled_time, now)
		slot = self._earliest_conflict_free(flight, runway.id, base, emergencies_only=True, now=now)
		if slot is None:
			self._defer(flight, now, f"emergency traffic saturates {runway.id}")
			return

		conflicts = [
			other for other in self._on_runway(runway.id)
			if not other.is_emergency and other.actual_time >= now and self._violates(flight, slot, other)
		]
		for other in conflicts:
			self._bump(other, runway, now, placed)

		if forced:
			with runway.force_active():
				self._place(flight, runway, slot, now, placed)
			self._publish("runway.forced", {"runway_id": runway.id, "flight_id": flight.id}, now)
			logger.warning("Runway %s force-activated for emergency %s", runway.id, flight.flight_number)
		else:
			self._place(flight, runway, slot, now, placed)

	def _bump(self, flight: Flight, taken: Runway, now: datetime, placed: List[Flight]) -> None:
		self._scheduled.pop(flight.id, None)
		flight.unassign()
		if flight in placed:
			placed.remove(flight)

		alternative = self._select_runway(flight, now, exclude=taken.id)
		if alternative is not None:
			start = max(flight.scheduled_time, now)
			buffered =(alternative.next_available or now) + timedelta(seconds=self.config.bump_buffer_seconds)
			if buffered > start:
				start = buffered
			slot = self._earliest_conflict_free(flight, alternative.id, start)
			if slot is not None:
				self._place(flight, alternative, slot, now, placed)
				self._publish("flight.bumped", {"flight_id": flight.id, "from": taken.id, "to": alternative.id}, now)
				logger.info("Moved %s from %s to %s at %s", flight.flight_number, taken.id, alternative.id, slot)
				return

		self._publish("flight.bumped", {"flight_id": flight.id, "from": taken.id, "to": None}, now)
		self._defer(flight, now, f"displaced from {taken.id} by emergency traffic")

	# -- helpers -----------------------------------------------------------

	def _select_runway(
		self,
		flight: Flight,
		now: datetime,
		prefer_held: bool = False,
		exclude: Optional[str] = None,
		candidates: Optional[Iterable[Runway]] = None,
		force: bool = False,
	) -> Optional[Runway]:
		if prefer_held:
			held = self._runways.get(flight.preferred_runway_id or "")
			if held is not None and held.active and held.id != exclude:
				return held

		if candidates is None:
			candidates = [r for r in self._runways.values() if r.active]
		pool = sorted((r for r in candidates if r.id != exclude), key=lambda r: r.id)
		if not pool:
			return None

		best, best_score = None, float("-inf")
		for runway in pool:
			if force:
				with runway.force_active():
					score = runway.score(self._weather, flight, now)
			else:
				score = runway.score(self._weather, flight, now)
			if score > best_score:
				best, best_score = runway, score
		return best

	def _separation(self, leading: Flight, following: Flight) -> timedelta:
		seconds = self.matrix.adjusted(leading.category, following.category, self._weather.weather_factor())
		return timedelta(seconds=seconds)

	def _violates(self, flight: Flight, proposed: datetime, other: Flight) -> bool:
		# On an exact tie the flight already on the runway is treated as leading
		if other.actual_time <= proposed:
			return proposed - other.actual_time < self._separation(other, flight)
		return other.actual_time - proposed < self._separation(flight, other)

	def _earliest_conflict_free(
		self,
		flight: Flight,
		runway_id: str,
		start: datetime,
		emergencies_only: bool = False,
		now: Optional[datetime] = None,
	) -> Optional[datetime]:
		"""Earliest time from ``start`` that keeps separation on ``runway_id``.

		With ``emergencies_only`` the search ignores normal traffic that can still
		be moved, but not flights that already operated before ``now``.
		"""
		others = [
			o for o in self._on_runway(runway_id)
			if o.id != flight.id and (
				not emergencies_only or o.is_emergency or (now is not None and o.actual_time < now)
			)
		]
		proposed = start
		# Each push clears at least one neighbour for good, so this is bounded
		for _ in range(len(others) + 1):
			violators = [o for o in others if self._violates(flight, proposed, o)]
			if not violators:
				return proposed
			proposed = max(o.actual_time + self._separation(o, flight) for o in violators)
		return None

	def _release_conflicts(self, now: datetime) -> int:
		"""Send back to Pending whatever no longer keeps separation.

		Walks each runway in time order. Of a clashing pair the later flight
		goes, unless it is an emergency and every flight it clashes with is
		movable normal traffic. Flights that already operated stay put.
		"""
		released = 0
		for runway_id in sorted({f.assigned_runway_id for f in self._scheduled.values()}):
			ordered = sorted(self._on_runway(runway_id), key=lambda f: (f.actual_time, self._arrival.get(f.id, 0)))
			kept: List[Flight] = []
			for flight in ordered:
				clashes = [k for k in kept if self._violates(flight, flight.actual_time, k)]
				if not clashes or flight.actual_time < now:
					kept.append(flight)
					continue
				movable = [k for k in clashes if not k.is_emergency and k.actual_time >= now]
				if flight.is_emergency and len(movable) == len(clashes):
					for k in movable:
						kept.remove(k)
					kept.append(flight)
				else:
					movable = [flight]
				for k in movable:
					self._release(k)
					self._publish("flight.released", {"flight_id": k.id, "runway_id": runway_id}, now)
					logger.warning("Released %s from %s: separation no longer holds", k.flight_number, runway_id)
				released += len(movable)
		return released

	def _on_runway(self, runway_id: str) -> List[Flight]:
		return [f for f in self._scheduled.values() if f.assigned_runway_id == runway_id]

	def _place(self, flight: Flight, runway: Runway, slot: datetime, now: datetime, placed: List[Flight]) -> None:
		flight.assign(runway.id, slot)
		runway.advance_availability(slot, flight.category, self.matrix, self._weather)
		self._pending.pop(flight.id, None)
		self._scheduled[flight.id] = flight
		if flight not in placed:
			placed.append(flight)
		self._publish("flight.scheduled", {"flight_id": flight.id, "runway_id": runway.id, "actual_time": slot.isoformat()}, now)
		logger.debug("Placed %s on %s at %s", flight.flight_number, runway.id, slot)

	def _defer(self, flight: Flight, now: datetime, reason: str) -> None:
		self._scheduled.pop(flight.id, None)
		flight.unassign()
		flight.escalate(now)
		self._pending[flight.id] = flight
		self._publish("flight.deferred", {"flight_id": flight.id, "reason": reason, "priority": flight.priority}, now)
		logger.warning("Deferred %s: %s (priority now %d)", flight.flight_number, reason, flight.priority)

	def _release(self, flight: Flight) -> None:
		self._scheduled.pop(flight.id, None)
		flight.unassign()
		self._pending[flight.id] = flight

	def _find(self, flight_id: str) -> Flight:
		flight = self._pending.get(flight_id) or self._scheduled.get(flight_id)
		if flight is None:
			raise KeyError(f"unknown flight: {flight_id}")
		return flight

	def _publish(self, event_type: str, payload: Dict, now: datetime) -> None:
		if self.bus is not None:
			self.bus.publish(Event(event_type, payload, now))

	# -- snapshots ---------------------------------------------------------

	def scheduled_flights(self) -> List[Flight]:
		with self._lock:
			return sorted((copy.copy(f) for f in self._scheduled.values()), key=lambda f: (f.actual_time, f.id))

	def pending_flights(self) -> List[Flight]:
		with self._lock:
			return sorted((copy.copy(f) for f in self._pending.values()), key=lambda f: (-f.priority, f.scheduled_time))

	def all_flights(self) -> List[Flight]:
		with self._lock:
			return self.scheduled_flights() + self.pending_flights()

	def get_flight(self, flight_id: str) -> Optional[Flight]:
		with self._lock:
			flight = self._pending.get(flight_id) or self._scheduled.get(flight_id)
			return copy.copy(flight) if flight is not None else None

	def state_of(self, flight_id: str) -> Optional[FlightState]:
		with self._lock:
			if flight_id in self._scheduled:
				return FlightState.SCHEDULED
			if flight_id in self._pending:
				return FlightState.PENDING
			return None

	def runways(self) -> List[Runway]:
		with self._lock:
			return [copy.copy(r) for r in sorted(self._runways.values(), key=lambda r: r.id)]

	def get_runway(self, runway_id: str) -> Optional[Runway]:
		with self._lock:
			runway = self._runways.get(runway_id)
			return copy.copy(runway) if runway is not None else None

	def weather(self) -> WeatherModel:
		with self._lock:
			return self._weather.copy()

	def unscheduled_count(self) -> int:
		with self._lock:
			return len(self._pending)

	def assignments_frame(self) -> pd.DataFrame:
		with self._lock:
			rows = [
				{
					"flight_id": f.id,
					"flight_number": f.flight_number,
					"runway_id": f.assigned_runway_id,
					"category": f.category.name,
					"flight_type": f.flight_type.value,
					"emergency": f.emergency_level.name,
					"scheduled_time": f.scheduled_time,
					"actual_time": f.actual_time,
					"delay_seconds": f.delay_seconds(),
					"priority": f.priority,
				}
				for f in self._scheduled.values()
			]
		if not rows:
			return pd.DataFrame(columns=ASSIGNMENT_COLUMNS)
		return pd.DataFrame(rows, columns=ASSIGNMENT_COLUMNS).sort_values(["runway_id", "actual_time"]).reset_index(drop=True)
