from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterator, Optional

from skyflow.config import Config
from skyflow.models.flight import Flight, WakeCategory
from skyflow.models.separation import SeparationMatrix
from skyflow.models.weather import WeatherModel


@dataclass(eq=False)
class Runway:
	id: str
	heading: float   # magnetic, degrees
	length: int      # metres
	active: bool = True
	next_available: Optional[datetime] = None
	config: Config = field(default_factory=Config, repr=False)

	def __post_init__(self) -> None:
		if not self.id:
			raise ValueError("runway id is required")
		if not 0 <= self.heading < 360:
			raise ValueError(f"heading must be within [0, 360), got {self.heading}")
		if self.length <= 0:
			raise ValueError(f"length must be positive, got {self.length}")

	def score(self, weather: WeatherModel, flight: Flight, now: datetime) -> float:
		"""Suitability of this runway for ``flight``; higher is better."""
		cfg = self.config
		if not self.active:
			return cfg.inactive_runway_score

		score = cfg.base_runway_score
		score += weather.headwind(self.heading) * cfg.headwind_weight
		score -= abs(weather.crosswind(self.heading)) * cfg.crosswind_weight

		# Heavier aircraft need the longer runways
		if flight.category in (WakeCategory.HEAVY, WakeCategory.SUPER) and self.length < cfg.short_runway_length_m:
			score -= cfg.short_runway_penalty

		if self.next_available is not None and self.next_available > now:
			minutes_until_available = int((self.next_available - now).total_seconds() // 60)
			score -= minutes_until_available * cfg.wait_penalty_per_minute
		return score

	def advance_availability(self, operation_time: datetime, category: WakeCategory, matrix: SeparationMatrix, weather: WeatherModel) -> datetime:
		separation = matrix.adjusted(category, category, weather.weather_factor())
		candidate = operation_time + timedelta(seconds=separation)
		# Never moves backwards, even when an emergency is slotted in early
		if self.next_available is None or candidate > self.next_available:
			self.next_available = candidate
		return self.next_available

	def set_active(self, active: bool) -> None:
		self.active = bool(active)

	@contextmanager
	def force_active(self) -> Iterator["Runway"]:
		was_active = self.active
		self.active = True
		try:
			yield self
		finally:
			self.active = was_active

	def reset(self, now: datetime) -> None:
		self.next_available = now

	def to_dict(self) -> Dict[str, Any]:
		return {
			"id": self.id,
			"heading": self.heading,
			"length": self.length,
			"active": self.active,
			"next_available": self.next_available.isoformat() if self.next_available else None,
		}

	@classmethod
	def from_dict(cls, data: Dict[str, Any], config: Optional[Config] = None) -> "Runway":
		nxt = data.get("next_available")
		return cls(
			id=data["id"],
			heading=float(data["heading"]),
			length=int(data["length"]),
			active=bool(data.get("active", True)),
			next_available=datetime.fromisoformat(nxt) if nxt else None,
			config=config or Config(),
		)
