from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Dict, Optional

from skyflow.config import Config


class WakeCategory(IntEnum):
	"""Wake turbulence class, ordered by generated wake strength."""

	LIGHT = 1
	MEDIUM = 2
	HEAVY = 3
	SUPER = 4


class FlightType(Enum):
	ARRIVAL = "ARRIVAL"
	DEPARTURE = "DEPARTURE"


class EmergencyLevel(Enum):
	NONE = ("NONE", 0)
	VIP = ("VIP", 2)
	MINOR_MECHANICAL = ("MINOR_MECHANICAL", 3)
	GOVERNMENTAL = ("GOVERNMENTAL", 3)
	LOW_FUEL = ("LOW_FUEL", 4)
	MEDICAL = ("MEDICAL", 5)
	MAJOR_MECHANICAL = ("MAJOR_MECHANICAL", 6)
	CRITICAL = ("CRITICAL", 7)

	def __init__(self, label: str, weight: int) -> None:
		self.label = label
		self.weight = weight

	@property
	def is_emergency(self) -> bool:
		return self is not EmergencyLevel.NONE


def _clamp_fuel(value: int) -> int:
	return max(0, min(100, int(value)))


@dataclass(eq=False)
class Flight:
	flight_number: str
	airline: str
	aircraft: str
	category: WakeCategory
	flight_type: FlightType
	scheduled_time: datetime
	emergency_level: EmergencyLevel = EmergencyLevel.NONE
	fuel_level: int = 100
	id: str = field(default_factory=lambda: uuid.uuid4().hex)
	actual_time: Optional[datetime] = None
	assigned_runway_id: Optional[str] = None
	preferred_runway_id: Optional[str] = None
	escalation: int = 0
	config: Config = field(default_factory=Config, repr=False)
	priority: int = field(default=0, init=False)

	def __post_init__(self) -> None:
		if not isinstance(self.category, WakeCategory):
			raise ValueError(f"category must be a WakeCategory, got {self.category!r}")
		if not isinstance(self.flight_type, FlightType):
			raise ValueError(f"flight_type must be a FlightType, got {self.flight_type!r}")
		if not isinstance(self.emergency_level, EmergencyLevel):
			raise ValueError(f"emergency_level must be an EmergencyLevel, got {self.emergency_level!r}")
		if not isinstance(self.scheduled_time, datetime):
			raise ValueError("scheduled_time is required")
		if not self.flight_number:
			raise ValueError("flight_number is required")
		if self.escalation < 0:
			raise ValueError("escalation must be non-negative")
		self.fuel_level = _clamp_fuel(self.fuel_level)
		self._initialised = True
		self.update_priority()

	def __setattr__(self, name: str, value: Any) -> None:
		if name == "fuel_level":
			value = _clamp_fuel(value)
		elif name == "scheduled_time" and not isinstance(value, datetime):
			raise ValueError(f"scheduled_time must be a datetime, got {value!r}")
		super().__setattr__(name, value)
		# Priority inputs changed after construction: recompute right away
		if name in ("emergency_level", "fuel_level", "scheduled_time") and self.__dict__.get("_initialised"):
			self.update_priority()

	@property
	def is_emergency(self) -> bool:
		return self.emergency_level.is_emergency

	@property
	def is_scheduled(self) -> bool:
		return self.assigned_runway_id is not None and self.actual_time is not None

	def fuel_bonus(self) -> int:
		if self.is_emergency or self.flight_type is not FlightType.ARRIVAL:
			return 0
		if self.fuel_level < 10:
			return self.config.fuel_bonus_critical
		if self.fuel_level < 20:
			return self.config.fuel_bonus_low
		if self.fuel_level < 30:
			return self.config.fuel_bonus_reduced
		return 0

	def urgency_bonus(self, now: datetime) -> int:
		minutes_to_go = (self.scheduled_time - now).total_seconds() / 60.0
		if minutes_to_go < 0:
			return int(min(-minutes_to_go * self.config.late_points_per_minute, self.config.late_points_cap))
		if minutes_to_go <= self.config.urgency_window_minutes:
			return int((self.config.urgency_window_minutes - minutes_to_go) * self.config.urgency_points_per_minute)
		return 0

	def update_priority(self, now: Optional[datetime] = None) -> int:
		now = datetime.now() if now is None else now
		self.priority = (
			self.emergency_level.weight * self.config.emergency_weight
			+ self.fuel_bonus()
			+ self.urgency_bonus(now)
			+ self.escalation * self.config.escalation_step
		)
		return self.priority

	def escalate(self, now: Optional[datetime] = None) -> int:
		"""Bump the requeue counter so a deferred flight cannot starve."""
		self.escalation += 1
		return self.update_priority(now)

	def assign(self, runway_id: str, actual_time: datetime) -> None:
		self.assigned_runway_id = runway_id
		self.actual_time = actual_time
		self.preferred_runway_id = runway_id

	def unassign(self) -> None:
		if self.assigned_runway_id is not None:
			self.preferred_runway_id = self.assigned_runway_id
		self.assigned_runway_id = None
		self.actual_time = None

	def delay_seconds(self) -> Optional[float]:
		if self.actual_time is None:
			return None
		return (self.actual_time - self.scheduled_time).total_seconds()

	def to_dict(self) -> Dict[str, Any]:
		return {
			"id": self.id,
			"flight_number": self.flight_number,
			"airline": self.airline,
			"aircraft": self.aircraft,
			"category": self.category.name,
			"flight_type": self.flight_type.value,
			"scheduled_time": self.scheduled_time.isoformat(),
			"actual_time": self.actual_time.isoformat() if self.actual_time else None,
			"emergency_level": self.emergency_level.name,
			"fuel_level": self.fuel_level,
			"assigned_runway_id": self.assigned_runway_id,
			"escalation": self.escalation,
			"priority": self.priority,
		}

	@classmethod
	def from_dict(cls, data: Dict[str, Any], config: Optional[Config] = None) -> "Flight":
		actual = data.get("actual_time")
		return cls(
			id=data["id"],
			flight_number=data["flight_number"],
			airline=data.get("airline") or "",
			aircraft=data.get("aircraft") or "",
			category=WakeCategory[data["category"]],
			flight_type=FlightType(data["flight_type"]),
			scheduled_time=datetime.fromisoformat(data["scheduled_time"]),
			actual_time=datetime.fromisoformat(actual) if actual else None,
			emergency_level=EmergencyLevel[data.get("emergency_level") or "NONE"],
			fuel_level=int(data.get("fuel_level", 100)),
			assigned_runway_id=data.get("assigned_runway_id"),
			escalation=int(data.get("escalation", 0)),
			config=config or Config(),
		)
