from datetime import datetime, timedelta

import pytest

from skyflow.config import Config
from skyflow.events.core import EventBus
from skyflow.models.flight import EmergencyLevel, Flight, FlightType, WakeCategory
from skyflow.models.runway import Runway
from skyflow.optimization.schedulers import SchedulingEngine


NOW = datetime(2024, 5, 1, 12, 0, 0)


class FixedClock:
	def __init__(self, now=NOW):
		self.now = now

	def __call__(self):
		return self.now

	def advance(self, **kwargs):
		self.now = self.now + timedelta(**kwargs)
		return self.now


def make_flight(number="BAW100", category=WakeCategory.MEDIUM, at=None, flight_type=FlightType.ARRIVAL,
				emergency=EmergencyLevel.NONE, fuel=80, **kwargs):
	return Flight(
		flight_number=number,
		airline="British Airways",
		aircraft="Airbus A320",
		category=category,
		flight_type=flight_type,
		scheduled_time=at or NOW + timedelta(minutes=10),
		emergency_level=emergency,
		fuel_level=fuel,
		**kwargs,
	)


@pytest.fixture
def clock():
	return FixedClock()


@pytest.fixture
def bus():
	return EventBus()


@pytest.fixture
def engine(clock, bus):
	eng = SchedulingEngine(Config(), clock=clock, bus=bus)
	eng.register_runway(Runway("27L", 270, 3500))
	return eng
