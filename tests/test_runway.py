from datetime import timedelta

import pytest

from conftest import NOW, make_flight
from skyflow.models.flight import WakeCategory
from skyflow.models.runway import Runway
from skyflow.models.separation import SeparationMatrix
from skyflow.models.weather import WeatherCondition, WeatherModel


def test_headwind_runway_scores_higher():
	weather = WeatherModel(wind_speed=20, wind_direction=270, visibility=10)
	flight = make_flight()
	into_wind = Runway("27", 270, 3500, next_available=NOW)
	across = Runway("36", 0, 3500, next_available=NOW)
	assert into_wind.score(weather, flight, NOW) == pytest.approx(140)
	assert across.score(weather, flight, NOW) == pytest.approx(40)


def test_short_runway_penalised_for_heavy_only():
	weather = WeatherModel(wind_speed=0)
	short = Runway("09", 90, 2800, next_available=NOW)
	assert short.score(weather, make_flight(category=WakeCategory.HEAVY), NOW) == pytest.approx(50)
	assert short.score(weather, make_flight(category=WakeCategory.SUPER), NOW) == pytest.approx(50)
	assert short.score(weather, make_flight(category=WakeCategory.MEDIUM), NOW) == pytest.approx(100)


def test_waiting_time_lowers_score():
	weather = WeatherModel(wind_speed=0)
	busy = Runway("27", 270, 3500, next_available=NOW + timedelta(minutes=4, seconds=50))
	assert busy.score(weather, make_flight(), NOW) == pytest.approx(80)


def test_inactive_runway_gets_sentinel():
	runway = Runway("27", 270, 3500, active=False)
	assert runway.score(WeatherModel(), make_flight(), NOW) == -1000.0


def test_force_active_restores_flag():
	runway = Runway("27", 270, 3500, active=False)
	with runway.force_active():
		assert runway.active
	assert not runway.active


def test_advance_availability_uses_inflated_baseline_and_is_monotonic():
	runway = Runway("27", 270, 3500, next_available=NOW)
	fog = WeatherModel(visibility=0.5, condition=WeatherCondition.FOGGY)
	matrix = SeparationMatrix()
	slot = NOW + timedelta(minutes=10)
	assert runway.advance_availability(slot, WakeCategory.MEDIUM, matrix, fog) == slot + timedelta(seconds=336)
	assert runway.advance_availability(NOW, WakeCategory.MEDIUM, matrix, fog) == slot + timedelta(seconds=336)


def test_invalid_runways_are_rejected():
	with pytest.raises(ValueError):
		Runway("27", 360, 3500)
	with pytest.raises(ValueError):
		Runway("27", 270, 0)
	with pytest.raises(ValueError):
		Runway("", 270, 3500)


def test_dict_round_trip():
	runway = Runway("27", 270, 3500, active=False, next_available=NOW)
	restored = Runway.from_dict(runway.to_dict())
	assert (restored.id, restored.heading, restored.length, restored.active, restored.next_available) == ("27", 270, 3500, False, NOW)
