from __future__ import annotations

import math
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict


class WeatherCondition(Enum):
	SUNNY = 1.0
	CLOUDY = 1.05
	RAINY = 1.2
	FOGGY = 1.4
	SNOWY = 1.6
	THUNDERSTORM = 2.0

	@property
	def multiplier(self) -> float:
		return self.value


# (upper bound in km, factor) checked in order, worst first
VISIBILITY_TIERS = ((1.0, 2.0), (3.0, 1.5), (5.0, 1.2))
# (lower bound in km/h, factor) checked in order, worst first
WIND_TIERS = ((40.0, 1.5), (25.0, 1.3), (15.0, 1.1))


@dataclass
class WeatherModel:
	"""Current airport weather.

	Wind is reported in the "from" convention: a wind from 270 blowing onto a
	runway with heading 270 is a pure headwind for that runway.
	"""

	wind_speed: float = 5.0       # km/h
	wind_direction: float = 0.0   # degrees
	visibility: float = 10.0      # km
	condition: WeatherCondition = WeatherCondition.SUNNY

	def __post_init__(self) -> None:
		self._validate()

	def _validate(self) -> None:
		if self.wind_speed < 0:
			raise ValueError(f"wind_speed must be non-negative, got {self.wind_speed}")
		if self.visibility < 0:
			raise ValueError(f"visibility must be non-negative, got {self.visibility}")
		if not isinstance(self.condition, WeatherCondition):
			raise ValueError(f"condition must be a WeatherCondition, got {self.condition!r}")
		self.wind_direction = float(self.wind_direction) % 360.0

	def _angle_to(self, runway_heading: float) -> float:
		angle = abs(self.wind_direction - float(runway_heading) % 360.0)
		if angle > 180.0:
			angle = 360.0 - angle
		return math.radians(angle)

	def headwind(self, runway_heading: float) -> float:
		"""Wind component along the runway; negative values are tailwind."""
		return self.wind_speed * math.cos(self._angle_to(runway_heading))

	def crosswind(self, runway_heading: float) -> float:
		return self.wind_speed * math.sin(self._angle_to(runway_heading))

	def visibility_factor(self) -> float:
		for bound, factor in VISIBILITY_TIERS:
			if self.visibility < bound:
				return factor
		return 1.0

	def wind_factor(self) -> float:
		for bound, factor in WIND_TIERS:
			if self.wind_speed > bound:
				return factor
		return 1.0

	def weather_factor(self) -> float:
		"""Multiplier (>= 1.0) applied to every base separation time."""
		return self.visibility_factor() * self.wind_factor() * self.condition.multiplier

	def update(self, **fields: Any) -> None:
		"""Mutate selected fields; on invalid input nothing is changed."""
		candidate = self.copy()
		for key, value in fields.items():
			if key not in ("wind_speed", "wind_direction", "visibility", "condition"):
				raise ValueError(f"unknown weather field: {key}")
			setattr(candidate, key, value)
		candidate._validate()
		self.wind_speed = candidate.wind_speed
		self.wind_direction = candidate.wind_direction
		self.visibility = candidate.visibility
		self.condition = candidate.condition

	def copy(self) -> "WeatherModel":
		return WeatherModel(self.wind_speed, self.wind_direction, self.visibility, self.condition)

	def to_dict(self) -> Dict[str, Any]:
		data = asdict(self)
		data["condition"] = self.condition.name
		return data

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "WeatherModel":
		return cls(
			wind_speed=float(data["wind_speed"]),
			wind_direction=float(data["wind_direction"]),
			visibility=float(data["visibility"]),
			condition=WeatherCondition[data["condition"]],
		)
