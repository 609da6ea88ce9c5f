from __future__ import annotations

from dataclasses import dataclass
from typing import List, Dict

import pandas as pd

from skyflow.config import Config
from skyflow.models.flight import WakeCategory
from skyflow.models.separation import SeparationMatrix
from skyflow.optimization.schedulers import SchedulingEngine


@dataclass
class Alert:
	type: str
	message: str
	meta: Dict[str, str]


def find_separation_violations(assignments: pd.DataFrame, matrix: SeparationMatrix, factor: float) -> pd.DataFrame:
	"""Pairs of operations on the same runway that are closer than required.

	The earlier of each pair is the leading aircraft.
	"""
	columns = ["runway_id", "leading_id", "following_id", "gap_seconds", "required_seconds"]
	if assignments.empty:
		return pd.DataFrame(columns=columns)

	df = assignments.sort_values(["runway_id", "actual_time"]).reset_index(drop=True)
	rows = []
	for runway_id, group in df.groupby("runway_id", sort=True):
		group = group.reset_index(drop=True)
		for i in range(len(group)):
			lead = group.iloc[i]
			for j in range(i + 1, len(group)):
				follow = group.iloc[j]
				gap = (pd.Timestamp(follow["actual_time"]) - pd.Timestamp(lead["actual_time"])).total_seconds()
				required = matrix.adjusted(WakeCategory[lead["category"]], WakeCategory[follow["category"]], factor)
				if gap < required:
					rows.append({
						"runway_id": runway_id,
						"leading_id": lead["flight_id"],
						"following_id": follow["flight_id"],
						"gap_seconds": gap,
						"required_seconds": required,
					})
	return pd.DataFrame(rows, columns=columns)


class AlertAgent:
	def __init__(self, config: Config) -> None:
		self.config = config

	def generate(self, engine: SchedulingEngine) -> List[Alert]:
		alerts: List[Alert] = []
		assignments = engine.assignments_frame()
		pending = engine.pending_flights()

		if pending:
			alerts.append(Alert(
				type="UNSCHEDULED_FLIGHTS",
				message=f"{len(pending)} flights are waiting for a runway",
				meta={"count": str(len(pending)), "flight_numbers": ",".join(f.flight_number for f in pending)},
			))

		for flight in pending:
			if flight.is_emergency:
				alerts.append(Alert(
					type="EMERGENCY_PENDING",
					message=f"Emergency {flight.flight_number} ({flight.emergency_level.name}) has no runway",
					meta={"flight_id": flight.id, "level": flight.emergency_level.name},
				))

		if not assignments.empty:
			emergencies = assignments[assignments["emergency"] != "NONE"]
			for _, row in emergencies.iterrows():
				alerts.append(Alert(
					type="EMERGENCY_ACTIVE",
					message=f"Emergency {row['flight_number']} ({row['emergency']}) cleared for {row['runway_id']} at {pd.Timestamp(row['actual_time']):%H:%M:%S}",
					meta={"flight_id": row["flight_id"], "runway": str(row["runway_id"]), "level": row["emergency"]},
				))

			# Delay threshold alerts
			threshold = self.config.delay_alert_threshold_minutes * 60
			late = assignments[assignments["delay_seconds"] >= threshold]
			for _, row in late.iterrows():
				delay_min = float(row["delay_seconds"]) / 60.0
				alerts.append(Alert(
					type="DELAY_THRESHOLD",
					message=f"Flight {row['flight_number']} delayed {delay_min:.1f} min beyond its requested time",
					meta={"flight_id": row["flight_id"], "delay_min": f"{delay_min:.1f}"},
				))

			violations = find_separation_violations(assignments, engine.matrix, engine.weather().weather_factor())
			for _, v in violations.iterrows():
				alerts.append(Alert(
					type="SEPARATION_VIOLATION",
					message=f"{v['leading_id']} and {v['following_id']} on {v['runway_id']} are {v['gap_seconds']:.0f}s apart (need {v['required_seconds']}s)",
					meta={"runway": str(v["runway_id"]), "gap_seconds": f"{v['gap_seconds']:.0f}"},
				))

		return alerts

