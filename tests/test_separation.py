import pytest

from skyflow.models.flight import WakeCategory
from skyflow.models.separation import SeparationMatrix, UnknownCategoryError


def test_every_ordered_pair_is_defined():
	matrix = SeparationMatrix()
	for lead in WakeCategory:
		for follow in WakeCategory:
			assert matrix.required_separation(lead, follow) > 0


def test_heavier_leader_needs_longer_gap_for_light_follower():
	matrix = SeparationMatrix()
	gaps = [matrix.required_separation(lead, WakeCategory.LIGHT) for lead in WakeCategory]
	assert gaps == sorted(gaps)
	assert matrix.required_separation(WakeCategory.SUPER, WakeCategory.LIGHT) == 300
	assert matrix.required_separation(WakeCategory.LIGHT, WakeCategory.SUPER) == 60


def test_baseline_is_self_separation():
	matrix = SeparationMatrix()
	for cat in WakeCategory:
		assert matrix.baseline(cat) == matrix.required_separation(cat, cat) == 120


def test_unknown_category_fails_fast():
	matrix = SeparationMatrix()
	with pytest.raises(UnknownCategoryError):
		matrix.required_separation("HEAVY", WakeCategory.LIGHT)
	with pytest.raises(KeyError):
		matrix.required_separation(WakeCategory.HEAVY, 2)


def test_adjusted_rounds_up_without_float_noise():
	matrix = SeparationMatrix()
	assert matrix.adjusted(WakeCategory.LIGHT, WakeCategory.MEDIUM, 1.05) == 105
	assert matrix.adjusted(WakeCategory.MEDIUM, WakeCategory.LIGHT, 1.5) == 270
	assert matrix.adjusted(WakeCategory.MEDIUM, WakeCategory.MEDIUM, 1.001) == 121


def test_update_cell():
	matrix = SeparationMatrix()
	matrix.update(WakeCategory.HEAVY, WakeCategory.MEDIUM, 200)
	assert matrix.required_separation(WakeCategory.HEAVY, WakeCategory.MEDIUM) == 200
	# Other instances keep the defaults
	assert SeparationMatrix().required_separation(WakeCategory.HEAVY, WakeCategory.MEDIUM) == 180
	with pytest.raises(ValueError):
		matrix.update(WakeCategory.HEAVY, WakeCategory.MEDIUM, 0)


def test_incomplete_table_is_rejected():
	with pytest.raises(ValueError):
		SeparationMatrix({WakeCategory.LIGHT: {WakeCategory.LIGHT: 60}})


def test_frame_view():
	frame = SeparationMatrix().to_frame()
	assert frame.shape == (4, 4)
	assert frame.loc["SUPER", "LIGHT"] == 300
	assert frame.loc["LIGHT", "SUPER"] == 60
