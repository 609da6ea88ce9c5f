from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from skyflow.config import Config
from skyflow.events.core import EventBus
from skyflow.utils.logging import get_logger
from skyflow.models.flight import EmergencyLevel, Flight, FlightType, WakeCategory
from skyflow.models.runway import Runway
from skyflow.models.weather import WeatherCondition, WeatherModel
from skyflow.optimization.schedulers import SchedulingEngine
from skyflow.storage.repository import Repository
from skyflow.alerting.alerts import AlertAgent, Alert


logger = get_logger(__name__)

# What a broken record store or feed can throw at us
COLLABORATOR_ERRORS = (SQLAlchemyError, OSError, ValueError, KeyError)


@dataclass
class PassOutput:
	scheduled: List[Flight]
	pending_count: int
	latency_seconds: float
	alerts: list[Alert]


class ATCController:
	"""Entry point for the dashboard, the CLI and feed imports.

	Engine calls come first; persistence follows outside the engine lock and
	its failures are logged and dropped.
	"""

	def __init__(
		self,
		config: Optional[Config] = None,
		repository: Optional[Repository] = None,
		clock: Optional[Callable[[], datetime]] = None,
		auto_schedule: bool = False,
	) -> None:
		self.config = config or Config()
		self.repository = repository
		self.bus = EventBus(self.config.event_log_size)
		self.engine = SchedulingEngine(self.config, clock=clock, bus=self.bus)
		self.alerter = AlertAgent(self.config)
		self.auto_schedule = auto_schedule

	def _persist(self, action: str, *args) -> None:
		if self.repository is None:
			return
		try:
			getattr(self.repository, action)(*args)
		except COLLABORATOR_ERRORS as exc:
			logger.warning("Persistence failed during %s: %s", action, exc)

	def _after_change(self) -> None:
		if self.auto_schedule:
			self.run_pass()

	# -- flights -----------------------------------------------------------

	def create_flight(
		self,
		flight_number: str,
		airline: str,
		aircraft: str,
		category: WakeCategory,
		flight_type: FlightType,
		scheduled_time: datetime,
		emergency_level: EmergencyLevel = EmergencyLevel.NONE,
		fuel_level: int = 100,
	) -> Flight:
		flight = Flight(
			flight_number=flight_number,
			airline=airline,
			aircraft=aircraft,
			category=category,
			flight_type=flight_type,
			scheduled_time=scheduled_time,
			emergency_level=emergency_level,
			fuel_level=fuel_level,
			config=self.config,
		)
		self.add_flight(flight)
		return self.engine.get_flight(flight.id) or flight

	def add_flight(self, flight: Flight) -> None:
		self.engine.enqueue(flight)
		self._persist("save_flight", flight)
		self._after_change()

	def import_flights(self, source: Callable[[], Iterable[Flight]]) -> int:
		"""Enqueue whatever a feed produces; a failing feed imports nothing."""
		try:
			flights = list(source())
		except COLLABORATOR_ERRORS as exc:
			logger.warning("Flight import failed: %s", exc)
			return 0
		for flight in flights:
			self.engine.enqueue(flight)
			self._persist("save_flight", flight)
		logger.info("Imported %d flights", len(flights))
		self._after_change()
		return len(flights)

	def update_flight(self, flight_id: str, **changes) -> Flight:
		flight = self.engine.update_flight(flight_id, **changes)
		self._persist("update_flight", flight)
		self._after_change()
		return flight

	def set_emergency_level(self, flight_id: str, level: EmergencyLevel) -> Flight:
		return self.update_flight(flight_id, emergency_level=level)

	def update_fuel_level(self, flight_id: str, fuel_level: int) -> Flight:
		return self.update_flight(flight_id, fuel_level=fuel_level)

	def delete_flight(self, flight_id: str) -> Optional[Flight]:
		flight = self.engine.remove_flight(flight_id)
		self._persist("delete_flight", flight_id)
		return flight

	# -- runways -----------------------------------------------------------

	def create_runway(self, runway_id: str, heading: float, length: int, active: bool = True) -> Runway:
		runway = Runway(runway_id, heading, length, active=active, config=self.config)
		self.engine.register_runway(runway)
		self._persist("save_runway", self.engine.get_runway(runway_id))
		self._after_change()
		return self.engine.get_runway(runway_id) or runway

	def set_runway_active(self, runway_id: str, active: bool) -> Runway:
		runway = self.engine.set_runway_active(runway_id, active)
		self._persist("update_runway", runway)
		self._after_change()
		return runway

	def delete_runway(self, runway_id: str) -> Optional[Runway]:
		runway = self.engine.remove_runway(runway_id)
		self._persist("delete_runway", runway_id)
		self._after_change()
		return runway

	# -- weather -----------------------------------------------------------

	def set_weather(self, wind_speed: float, wind_direction: float, visibility: float, condition: WeatherCondition) -> WeatherModel:
		weather = WeatherModel(wind_speed, wind_direction, visibility, condition)
		self.engine.set_weather(weather)
		self._persist("save_weather", weather.copy())
		self._after_change()
		return weather.copy()

	def update_weather(self, **fields) -> WeatherModel:
		weather = self.engine.update_weather(**fields)
		self._persist("save_weather", weather)
		self._after_change()
		return weather

	# -- scheduling --------------------------------------------------------

	def run_pass(self) -> PassOutput:
		start = time.time()
		scheduled = self.engine.run_scheduling_pass()
		alerts = self.alerter.generate(self.engine)
		latency = time.time() - start
		# Deferred and displaced flights lost their runway, so save those too
		for flight in scheduled + self.engine.pending_flights():
			self._persist("update_flight", flight)
		for runway in self.engine.runways():
			self._persist("update_runway", runway)
		pending = self.engine.unscheduled_count()
		if pending:
			logger.warning("%d flights could not be scheduled this pass", pending)
		return PassOutput(scheduled=scheduled, pending_count=pending, latency_seconds=latency, alerts=alerts)

	def reset(self) -> None:
		# A fresh session starts with an empty event history
		self.bus.clear()
		self.engine.reset()
		for runway in self.engine.runways():
			self._persist("update_runway", runway)

	def load_state(self) -> int:
		"""Rebuild the engine from the repository; returns flights restored."""
		if self.repository is None:
			return 0
		try:
			runways = self.repository.load_all_runways()
			flights = self.repository.load_all_flights()
			weather = self.repository.load_weather()
		except COLLABORATOR_ERRORS as exc:
			logger.warning("Could not load saved state: %s", exc)
			return 0

		for runway in runways:
			runway.config = self.config
			self.engine.register_runway(runway)
		if weather is not None:
			self.engine.set_weather(weather)
		restored = 0
		for flight in flights:
			flight.config = self.config
			if self.engine.restore_scheduled(flight):
				restored += 1
		logger.info("Loaded %d runways, %d flights (%d with assignments)", len(runways), len(flights), restored)
		return len(flights)
