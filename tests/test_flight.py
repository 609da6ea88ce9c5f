from datetime import timedelta

import pytest

from conftest import NOW, make_flight
from skyflow.config import Config
from skyflow.models.flight import EmergencyLevel, Flight, FlightType, WakeCategory


def test_emergency_weight_dominates_everything_else():
	vip = make_flight(emergency=EmergencyLevel.VIP, at=NOW + timedelta(hours=2))
	desperate = make_flight(fuel=1, at=NOW - timedelta(hours=2))
	desperate.escalation = 20
	assert vip.update_priority(NOW) > desperate.update_priority(NOW)


def test_fuel_bonus_tiers_for_arrivals():
	far = NOW + timedelta(hours=2)
	assert make_flight(fuel=5, at=far).update_priority(NOW) == 300
	assert make_flight(fuel=15, at=far).update_priority(NOW) == 200
	assert make_flight(fuel=25, at=far).update_priority(NOW) == 100
	assert make_flight(fuel=30, at=far).update_priority(NOW) == 0


def test_departures_and_emergencies_get_no_fuel_bonus():
	far = NOW + timedelta(hours=2)
	assert make_flight(fuel=5, at=far, flight_type=FlightType.DEPARTURE).update_priority(NOW) == 0
	low = make_flight(fuel=5, at=far, emergency=EmergencyLevel.LOW_FUEL)
	assert low.update_priority(NOW) == 4 * 10_000


def test_urgency_inside_window():
	assert make_flight(at=NOW + timedelta(minutes=10), fuel=90).update_priority(NOW) == 60
	assert make_flight(at=NOW, fuel=90).update_priority(NOW) == 90


def test_late_flights_gain_points_up_to_cap():
	assert make_flight(at=NOW - timedelta(minutes=30), fuel=90).update_priority(NOW) == 60
	assert make_flight(at=NOW - timedelta(hours=5), fuel=90).update_priority(NOW) == 200


def test_escalation_raises_priority():
	flight = make_flight(at=NOW + timedelta(hours=2), fuel=90)
	assert flight.update_priority(NOW) == 0
	assert flight.escalate(NOW) == 25
	assert flight.escalate(NOW) == 50


def test_priority_recomputed_on_emergency_change():
	flight = make_flight()
	flight.emergency_level = EmergencyLevel.CRITICAL
	assert flight.priority >= 70_000


def test_fuel_is_clamped():
	assert make_flight(fuel=150).fuel_level == 100
	flight = make_flight(fuel=50)
	flight.fuel_level = -10
	assert flight.fuel_level == 0


def test_custom_weights():
	cfg = Config(escalation_step=100)
	flight = make_flight(at=NOW + timedelta(hours=2), fuel=90, config=cfg)
	assert flight.escalate(NOW) == 100


@pytest.mark.parametrize("field,value", [
	("category", "HEAVY"),
	("flight_type", "ARRIVAL"),
	("emergency_level", 3),
	("flight_number", ""),
])
def test_invalid_flights_are_rejected(field, value):
	kwargs = dict(
		flight_number="BAW1",
		airline="British Airways",
		aircraft="Airbus A320",
		category=WakeCategory.MEDIUM,
		flight_type=FlightType.ARRIVAL,
		scheduled_time=NOW,
	)
	kwargs[field] = value
	with pytest.raises(ValueError):
		Flight(**kwargs)


def test_assign_and_unassign_remember_runway():
	flight = make_flight()
	flight.assign("09", NOW + timedelta(minutes=12))
	assert flight.is_scheduled
	assert flight.delay_seconds() == 120
	flight.unassign()
	assert not flight.is_scheduled
	assert flight.delay_seconds() is None
	assert flight.preferred_runway_id == "09"


def test_dict_round_trip_keeps_identity_and_assignment():
	flight = make_flight(emergency=EmergencyLevel.MEDICAL, fuel=42)
	flight.assign("27L", NOW + timedelta(minutes=11))
	restored = Flight.from_dict(flight.to_dict())
	assert restored.id == flight.id
	assert restored.emergency_level is EmergencyLevel.MEDICAL
	assert restored.actual_time == flight.actual_time
	assert restored.assigned_runway_id == "27L"
	assert restored.fuel_level == 42


def test_scheduled_time_must_stay_a_datetime():
	flight = make_flight()
	with pytest.raises(ValueError):
		flight.scheduled_time = "2024-05-01T12:30"
	assert flight.scheduled_time == NOW + timedelta(minutes=10)
