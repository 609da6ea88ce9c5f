from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Any, Optional

import pandas as pd

from skyflow.config import Config
from skyflow.ingestion.data_sources import DataIngestion, weather_at
from skyflow.orchestrator.controller import ATCController


@dataclass
class SimulationMetrics:
	passes: int
	num_events: int
	scheduled: int
	pending: int
	bumped: int
	deferred: int
	released: int
	mean_delay_minutes: float
	assignments: pd.DataFrame
	logs: List[Dict[str, Any]]


class SimClock:
	"""Manually advanced clock handed to the scheduler in place of datetime.now."""

	def __init__(self, start: datetime) -> None:
		self.now = start

	def __call__(self) -> datetime:
		return self.now

	def advance(self, minutes: int) -> datetime:
		self.now = self.now + timedelta(minutes=minutes)
		return self.now


class Simulation:
	def __init__(self, config: Config) -> None:
		self.config = config

	def run(self, horizon_minutes: int = 180, step_minutes: int = 5, lookahead_minutes: int = 30, start: Optional[datetime] = None) -> SimulationMetrics:
		start = start or datetime.now().replace(second=0, microsecond=0)
		data = DataIngestion(self.config).simulate(start)
		clock = SimClock(start)
		controller = ATCController(self.config, clock=clock)
		for runway in data.runways:
			controller.engine.register_runway(runway)

		# Flights are announced to the scheduler a fixed time before they are due
		upcoming = sorted(data.flights, key=lambda f: f.scheduled_time)
		passes = 0
		for t in range(0, horizon_minutes, step_minutes):
			clock.now = start + timedelta(minutes=t)
			controller.engine.set_weather(weather_at(data.weather, t))
			horizon = clock.now + timedelta(minutes=lookahead_minutes)
			while upcoming and upcoming[0].scheduled_time <= horizon:
				controller.engine.enqueue(upcoming.pop(0))
			controller.run_pass()
			passes += 1

		assignments = controller.engine.assignments_frame()
		delays = assignments["delay_seconds"].astype(float) / 60.0 if not assignments.empty else pd.Series(dtype=float)
		bus = controller.bus
		return SimulationMetrics(
			passes=passes,
			num_events=bus.total,
			scheduled=len(assignments),
			pending=controller.engine.unscheduled_count(),
			bumped=bus.count("flight.bumped"),
			deferred=bus.count("flight.deferred"),
			released=bus.count("flight.released"),
			mean_delay_minutes=float(delays.mean()) if len(delays) else 0.0,
			assignments=assignments,
			logs=[{"time": e.time, "type": e.type, **e.payload} for e in bus.log],
		)
