import pytest

from skyflow.models.weather import WeatherCondition, WeatherModel


def test_wind_components_follow_from_convention():
	w = WeatherModel(wind_speed=20, wind_direction=90, visibility=10)
	assert w.headwind(90) == pytest.approx(20)
	assert w.crosswind(90) == pytest.approx(0, abs=1e-9)
	# Same wind on the reciprocal runway is a tailwind
	assert w.headwind(270) == pytest.approx(-20)
	assert w.crosswind(0) == pytest.approx(20)


def test_angle_wraps_across_north():
	w = WeatherModel(wind_speed=10, wind_direction=350, visibility=10)
	assert w.headwind(10) == pytest.approx(w.headwind(330))
	assert w.crosswind(10) == pytest.approx(10 * 0.3420201433, rel=1e-6)


def test_default_weather_does_not_inflate_separation():
	assert WeatherModel().weather_factor() == pytest.approx(1.0)


def test_factor_multiplies_the_three_tiers():
	w = WeatherModel(wind_speed=30, wind_direction=0, visibility=2, condition=WeatherCondition.RAINY)
	assert w.weather_factor() == pytest.approx(1.5 * 1.3 * 1.2)


def test_factor_grows_as_visibility_drops():
	factors = [WeatherModel(visibility=v).weather_factor() for v in (20, 5, 4.9, 2.5, 0.5, 0)]
	assert factors == sorted(factors)
	assert factors[-1] > factors[0]


def test_factor_grows_with_wind_speed():
	factors = [WeatherModel(wind_speed=s).weather_factor() for s in (0, 15, 16, 26, 41, 80)]
	assert factors == sorted(factors)


def test_factor_grows_with_condition_severity():
	order = [
		WeatherCondition.SUNNY,
		WeatherCondition.CLOUDY,
		WeatherCondition.RAINY,
		WeatherCondition.FOGGY,
		WeatherCondition.SNOWY,
		WeatherCondition.THUNDERSTORM,
	]
	factors = [WeatherModel(condition=c).weather_factor() for c in order]
	assert factors == sorted(factors)
	assert len(set(factors)) == len(factors)


def test_factor_is_never_below_one():
	for speed in (0, 10, 20, 30, 50):
		for vis in (0, 0.5, 2, 4, 8, 15):
			for cond in WeatherCondition:
				assert WeatherModel(wind_speed=speed, visibility=vis, condition=cond).weather_factor() >= 1.0


def test_invalid_weather_is_rejected():
	with pytest.raises(ValueError):
		WeatherModel(wind_speed=-1)
	with pytest.raises(ValueError):
		WeatherModel(visibility=-0.1)
	with pytest.raises(ValueError):
		WeatherModel(condition="FOGGY")


def test_update_is_all_or_nothing():
	w = WeatherModel()
	with pytest.raises(ValueError):
		w.update(wind_speed=25, visibility=-3)
	assert w.wind_speed == 5.0
	w.update(wind_speed=25, wind_direction=370)
	assert w.wind_speed == 25
	assert w.wind_direction == 10


def test_dict_round_trip():
	w = WeatherModel(12.5, 180, 3.0, WeatherCondition.SNOWY)
	assert WeatherModel.from_dict(w.to_dict()) == w
