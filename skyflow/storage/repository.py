"""
Persistence for flights, runways and the current weather.

The scheduler never depends on these classes; the controller calls them after
engine mutations and treats any failure as a lost write, not a lost schedule.
"""

from __future__ import annotations

import copy
from typing import Dict, List, Optional

from sqlalchemy import (
	Boolean,
	Column,
	Float,
	Integer,
	MetaData,
	String,
	Table,
	create_engine,
	delete,
	insert,
	select,
	update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from skyflow.config import Config
from skyflow.models.flight import Flight
from skyflow.models.runway import Runway
from skyflow.models.weather import WeatherModel


class Repository:
	"""Record store contract used by the controller."""

	def save_flight(self, flight: Flight) -> None:
		raise NotImplementedError

	def update_flight(self, flight: Flight) -> None:
		raise NotImplementedError

	def delete_flight(self, flight_id: str) -> None:
		raise NotImplementedError

	def load_all_flights(self) -> List[Flight]:
		raise NotImplementedError

	def save_runway(self, runway: Runway) -> None:
		raise NotImplementedError

	def update_runway(self, runway: Runway) -> None:
		raise NotImplementedError

	def delete_runway(self, runway_id: str) -> None:
		raise NotImplementedError

	def load_all_runways(self) -> List[Runway]:
		raise NotImplementedError

	def save_weather(self, weather: WeatherModel) -> None:
		raise NotImplementedError

	def load_weather(self) -> Optional[WeatherModel]:
		raise NotImplementedError


class InMemoryRepository(Repository):
	def __init__(self) -> None:
		self.flights: Dict[str, Flight] = {}
		self.runways: Dict[str, Runway] = {}
		self.weather: Optional[WeatherModel] = None

	def save_flight(self, flight: Flight) -> None:
		self.flights[flight.id] = copy.copy(flight)

	def update_flight(self, flight: Flight) -> None:
		self.save_flight(flight)

	def delete_flight(self, flight_id: str) -> None:
		self.flights.pop(flight_id, None)

	def load_all_flights(self) -> List[Flight]:
		return [copy.copy(f) for f in self.flights.values()]

	def save_runway(self, runway: Runway) -> None:
		self.runways[runway.id] = copy.copy(runway)

	def update_runway(self, runway: Runway) -> None:
		self.save_runway(runway)

	def delete_runway(self, runway_id: str) -> None:
		self.runways.pop(runway_id, None)

	def load_all_runways(self) -> List[Runway]:
		return [copy.copy(r) for r in self.runways.values()]

	def save_weather(self, weather: WeatherModel) -> None:
		self.weather = weather.copy()

	def load_weather(self) -> Optional[WeatherModel]:
		return self.weather.copy() if self.weather is not None else None


metadata = MetaData()

flights_table = Table(
	"flights",
	metadata,
	Column("id", String, primary_key=True),
	Column("flight_number", String, nullable=False),
	Column("airline", String),
	Column("aircraft", String),
	Column("category", String, nullable=False),
	Column("flight_type", String, nullable=False),
	Column("scheduled_time", String, nullable=False),
	Column("actual_time", String),
	Column("emergency_level", String, nullable=False),
	Column("fuel_level", Integer),
	Column("assigned_runway_id", String),
	Column("escalation", Integer, default=0),
)

runways_table = Table(
	"runways",
	metadata,
	Column("id", String, primary_key=True),
	Column("heading", Float, nullable=False),
	Column("length", Integer, nullable=False),
	Column("next_available", String),
	Column("active", Boolean, nullable=False),
)

# A single row (id = 1) holds the current weather
weather_table = Table(
	"weather",
	metadata,
	Column("id", Integer, primary_key=True),
	Column("wind_speed", Float, nullable=False),
	Column("wind_direction", Float, nullable=False),
	Column("visibility", Float, nullable=False),
	Column("condition", String, nullable=False),
)


def make_engine(url: str) -> Engine:
	if url in ("sqlite://", "sqlite:///:memory:"):
		# One shared connection, otherwise every checkout sees an empty database
		return create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
	return create_engine(url, pool_pre_ping=True)


def _flight_row(flight: Flight) -> Dict:
	row = flight.to_dict()
	row.pop("priority", None)
	return row


class SqlRepository(Repository):
	def __init__(self, url: Optional[str] = None, config: Optional[Config] = None) -> None:
		self.config = config or Config()
		self.engine = make_engine(url or self.config.database_url)
		metadata.create_all(self.engine)

	def save_flight(self, flight: Flight) -> None:
		with self.engine.begin() as conn:
			conn.execute(insert(flights_table).values(**_flight_row(flight)))

	def update_flight(self, flight: Flight) -> None:
		row = _flight_row(flight)
		with self.engine.begin() as conn:
			result = conn.execute(update(flights_table).where(flights_table.c.id == flight.id).values(**row))
			if result.rowcount == 0:
				conn.execute(insert(flights_table).values(**row))

	def delete_flight(self, flight_id: str) -> None:
		with self.engine.begin() as conn:
			conn.execute(delete(flights_table).where(flights_table.c.id == flight_id))

	def load_all_flights(self) -> List[Flight]:
		with self.engine.connect() as conn:
			rows = conn.execute(select(flights_table)).mappings().all()
		return [Flight.from_dict(dict(row), self.config) for row in rows]

	def save_runway(self, runway: Runway) -> None:
		with self.engine.begin() as conn:
			conn.execute(insert(runways_table).values(**runway.to_dict()))

	def update_runway(self, runway: Runway) -> None:
		row = runway.to_dict()
		with self.engine.begin() as conn:
			result = conn.execute(update(runways_table).where(runways_table.c.id == runway.id).values(**row))
			if result.rowcount == 0:
				conn.execute(insert(runways_table).values(**row))

	def delete_runway(self, runway_id: str) -> None:
		with self.engine.begin() as conn:
			conn.execute(delete(runways_table).where(runways_table.c.id == runway_id))

	def load_all_runways(self) -> List[Runway]:
		with self.engine.connect() as conn:
			rows = conn.execute(select(runways_table)).mappings().all()
		return [Runway.from_dict(dict(row), self.config) for row in rows]

	def save_weather(self, weather: WeatherModel) -> None:
		row = weather.to_dict()
		with self.engine.begin() as conn:
			existing = conn.execute(select(weather_table.c.id).where(weather_table.c.id == 1)).first()
			if existing is None:
				conn.execute(insert(weather_table).values(id=1, **row))
			else:
				conn.execute(update(weather_table).where(weather_table.c.id == 1).values(**row))

	def load_weather(self) -> Optional[WeatherModel]:
		with self.engine.connect() as conn:
			row = conn.execute(select(weather_table).where(weather_table.c.id == 1)).mappings().first()
		if row is None:
			return None
		return WeatherModel.from_dict(dict(row))

	def close(self) -> None:
		self.engine.dispose()
