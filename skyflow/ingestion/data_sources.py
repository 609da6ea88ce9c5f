from __future__ import annotations

import numpy as np
import pandas as pd
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from skyflow.config import Config
from skyflow.models.flight import EmergencyLevel, Flight, FlightType, WakeCategory
from skyflow.models.runway import Runway
from skyflow.models.weather import WeatherCondition, WeatherModel
from skyflow.utils.logging import get_logger


logger = get_logger(__name__)

CATEGORY_MIX = ([WakeCategory.LIGHT, WakeCategory.MEDIUM, WakeCategory.HEAVY, WakeCategory.SUPER], [0.10, 0.60, 0.25, 0.05])
# Distress levels drawn once a flight is picked as an emergency
EMERGENCY_MIX = (
	[EmergencyLevel.MINOR_MECHANICAL, EmergencyLevel.LOW_FUEL, EmergencyLevel.MEDICAL, EmergencyLevel.MAJOR_MECHANICAL, EmergencyLevel.CRITICAL],
	[0.2, 0.2, 0.2, 0.2, 0.2],
)
CONDITION_MIX = (list(WeatherCondition), [0.60, 0.20, 0.10, 0.05, 0.03, 0.02])

AIRLINES = {
	"AAL": "American Airlines",
	"UAL": "United Airlines",
	"DAL": "Delta Air Lines",
	"BAW": "British Airways",
	"DLH": "Lufthansa",
	"AFR": "Air France",
	"KLM": "KLM Royal Dutch Airlines",
	"UAE": "Emirates",
	"SIA": "Singapore Airlines",
	"QTR": "Qatar Airways",
	"ELY": "El Al Israel Airlines",
}

AIRCRAFT_BY_CATEGORY = {
	WakeCategory.LIGHT: ["Cessna 208", "Beechcraft King Air 350", "Pilatus PC-12"],
	WakeCategory.MEDIUM: ["Boeing 737-800", "Airbus A320", "Embraer E190", "Bombardier CRJ-900"],
	WakeCategory.HEAVY: ["Boeing 777-300ER", "Boeing 787-9", "Airbus A350-900", "Airbus A330-300", "Boeing 767-300"],
	WakeCategory.SUPER: ["Airbus A380-800"],
}

DEFAULT_RUNWAYS = [("36L", 0, 3500), ("36R", 0, 3000), ("09", 90, 2800)]


@dataclass
class IngestedData:
	flights: List[Flight]
	runways: List[Runway]
	weather: pd.DataFrame


def default_runways(config: Optional[Config] = None) -> List[Runway]:
	cfg = config or Config()
	return [Runway(rid, heading, length, config=cfg) for rid, heading, length in DEFAULT_RUNWAYS]


def weather_at(timeline: pd.DataFrame, minute: int) -> WeatherModel:
	"""Weather row in effect at ``minute`` of a simulated timeline."""
	idx = int(np.searchsorted(timeline["minute"].values, minute, side="right")) - 1
	row = timeline.iloc[max(0, min(idx, len(timeline) - 1))]
	return WeatherModel(
		wind_speed=float(row["wind_speed"]),
		wind_direction=float(row["wind_direction"]),
		visibility=float(row["visibility"]),
		condition=WeatherCondition[row["condition"]],
	)


def random_weather(seed: Optional[int] = None) -> WeatherModel:
	if seed is not None:
		np.random.seed(seed)
	conditions, probs = CONDITION_MIX
	return WeatherModel(
		wind_speed=float(np.random.uniform(0, 30)),
		wind_direction=float(np.random.randint(0, 360)),
		visibility=float(5.0 + np.random.uniform(0, 15)),
		condition=conditions[int(np.random.choice(len(conditions), p=probs))],
	)


def _draw_emergency(rate: float) -> EmergencyLevel:
	if np.random.random() >= rate:
		return EmergencyLevel.NONE
	levels, probs = EMERGENCY_MIX
	return levels[int(np.random.choice(len(levels), p=probs))]


def _draw_fuel(level: EmergencyLevel) -> int:
	if level is EmergencyLevel.LOW_FUEL:
		return int(np.random.randint(5, 16))
	return int(np.random.randint(10, 101))


class DataIngestion:
	def __init__(self, config: Config) -> None:
		self.config = config

	def simulate(self, start: Optional[datetime] = None) -> IngestedData:
		np.random.seed(self.config.seed)
		start = start or datetime.now().replace(second=0, microsecond=0)
		n = self.config.num_flights

		offsets = np.sort(np.random.randint(0, self.config.planning_horizon_minutes * 60, size=n))
		categories, cat_probs = CATEGORY_MIX
		cat_idx = np.random.choice(len(categories), size=n, p=cat_probs)
		types = np.random.choice([FlightType.ARRIVAL.value, FlightType.DEPARTURE.value], size=n, p=[0.5, 0.5])
		codes = list(AIRLINES)
		airline_idx = np.random.randint(0, len(codes), size=n)
		numbers = np.random.randint(100, 1000, size=n)

		flights = []
		for i in range(n):
			category = categories[int(cat_idx[i])]
			level = _draw_emergency(self.config.emergency_rate)
			models = AIRCRAFT_BY_CATEGORY[category]
			code = codes[int(airline_idx[i])]
			flights.append(Flight(
				flight_number=f"{code}{int(numbers[i])}",
				airline=AIRLINES[code],
				aircraft=models[int(np.random.randint(0, len(models)))],
				category=category,
				flight_type=FlightType(types[i]),
				scheduled_time=start + timedelta(seconds=int(offsets[i])),
				emergency_level=level,
				fuel_level=_draw_fuel(level),
				config=self.config,
			))

		step = 15
		weather_time = np.arange(0, self.config.planning_horizon_minutes, step)
		conditions, cond_probs = CONDITION_MIX
		weather = pd.DataFrame(
			{
				"minute": weather_time,
				"wind_speed": np.clip(np.random.normal(12, 6, size=len(weather_time)), 0, None),
				"wind_direction": np.random.randint(0, 360, size=len(weather_time)),
				"visibility": np.clip(np.random.normal(10, 4, size=len(weather_time)), 0.2, None),
				"condition": [conditions[int(i)].name for i in np.random.choice(len(conditions), size=len(weather_time), p=cond_probs)],
			}
		)

		logger.info("Simulated %d flights over %d minutes", n, self.config.planning_horizon_minutes)
		return IngestedData(flights=flights, runways=default_runways(self.config), weather=weather)


class OpenSkyStateParser:
	"""Builds flights from an OpenSky ``/states/all`` response body.

	Each state vector is a list whose first entries are ``icao24``,
	``callsign``, ``origin_country``, ``time_position``. Everything the feed
	does not carry (category, emergency, fuel) is drawn at random.
	"""

	def __init__(self, config: Config) -> None:
		self.config = config

	def parse(self, payload: Dict[str, Any], limit: Optional[int] = None) -> List[Flight]:
		np.random.seed(self.config.seed)
		states = payload.get("states") or []
		flights: List[Flight] = []
		for state in states:
			if limit is not None and len(flights) >= limit:
				break
			try:
				flights.append(self._to_flight(state, payload.get("time")))
			except (IndexError, TypeError, ValueError) as exc:
				logger.warning("Skipping malformed state vector %r: %s", state, exc)
		logger.info("Parsed %d flights from %d state vectors", len(flights), len(states))
		return flights

	def _to_flight(self, state: List[Any], response_time: Optional[int]) -> Flight:
		callsign = (state[1] or "").strip()
		if not callsign:
			raise ValueError("empty callsign")
		stamp = state[3] if state[3] is not None else response_time
		if stamp is None:
			raise ValueError("no position timestamp")

		prefix = callsign[:3]
		categories, cat_probs = CATEGORY_MIX
		category = categories[int(np.random.choice(len(categories), p=cat_probs))]
		models = AIRCRAFT_BY_CATEGORY[category]
		level = _draw_emergency(self.config.emergency_rate)
		return Flight(
			id=str(state[0]),
			flight_number=callsign,
			airline=AIRLINES.get(prefix, f"{prefix} Airlines"),
			aircraft=models[int(np.random.randint(0, len(models)))],
			category=category,
			flight_type=FlightType.ARRIVAL if np.random.random() < 0.5 else FlightType.DEPARTURE,
			scheduled_time=datetime.fromtimestamp(int(stamp)),
			emergency_level=level,
			fuel_level=_draw_fuel(level),
			config=self.config,
		)
