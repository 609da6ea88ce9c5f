from __future__ import annotations

import math
from typing import Dict

import pandas as pd

from skyflow.models.flight import WakeCategory


class UnknownCategoryError(KeyError):
	"""Raised when a separation lookup uses something other than a WakeCategory."""


# Wake turbulence separation in seconds, indexed [leading][following]
DEFAULT_SEPARATION_SECONDS: Dict[WakeCategory, Dict[WakeCategory, int]] = {
	WakeCategory.SUPER: {
		WakeCategory.SUPER: 120,
		WakeCategory.HEAVY: 180,
		WakeCategory.MEDIUM: 240,
		WakeCategory.LIGHT: 300,
	},
	WakeCategory.HEAVY: {
		WakeCategory.SUPER: 100,
		WakeCategory.HEAVY: 120,
		WakeCategory.MEDIUM: 180,
		WakeCategory.LIGHT: 240,
	},
	WakeCategory.MEDIUM: {
		WakeCategory.SUPER: 80,
		WakeCategory.HEAVY: 100,
		WakeCategory.MEDIUM: 120,
		WakeCategory.LIGHT: 180,
	},
	WakeCategory.LIGHT: {
		WakeCategory.SUPER: 60,
		WakeCategory.HEAVY: 80,
		WakeCategory.MEDIUM: 100,
		WakeCategory.LIGHT: 120,
	},
}


def _check(category: object) -> WakeCategory:
	if not isinstance(category, WakeCategory):
		raise UnknownCategoryError(category)
	return category


class SeparationMatrix:
	def __init__(self, table: Dict[WakeCategory, Dict[WakeCategory, int]] | None = None) -> None:
		source = DEFAULT_SEPARATION_SECONDS if table is None else table
		self._table = {lead: dict(row) for lead, row in source.items()}
		for lead in WakeCategory:
			for follow in WakeCategory:
				if follow not in self._table.get(lead, {}):
					raise ValueError(f"separation table is missing {lead.name} -> {follow.name}")

	def required_separation(self, leading: WakeCategory, following: WakeCategory) -> int:
		return self._table[_check(leading)][_check(following)]

	def baseline(self, category: WakeCategory) -> int:
		"""Self-separation, used when the neighbour on the runway is unknown."""
		return self.required_separation(category, category)

	def adjusted(self, leading: WakeCategory, following: WakeCategory, factor: float) -> int:
		# Rounded up so an inflated separation is never shortened by truncation;
		# the inner round drops float noise such as 100 * 1.05 = 105.00000000000001
		return int(math.ceil(round(self.required_separation(leading, following) * factor, 6)))

	def update(self, leading: WakeCategory, following: WakeCategory, seconds: int) -> None:
		if seconds <= 0:
			raise ValueError(f"separation must be positive, got {seconds}")
		self._table[_check(leading)][_check(following)] = int(seconds)

	def to_frame(self) -> pd.DataFrame:
		order = list(WakeCategory)
		return pd.DataFrame(
			[[self._table[lead][follow] for follow in order] for lead in order],
			index=pd.Index([c.name for c in order], name="leading"),
			columns=pd.Index([c.name for c in order], name="following"),
		)

	def __str__(self) -> str:
		return "Separation matrix (seconds):\n" + self.to_frame().to_string()
