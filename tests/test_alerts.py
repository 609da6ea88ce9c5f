from datetime import timedelta

import pandas as pd

from conftest import NOW, make_flight
from skyflow.alerting.alerts import AlertAgent, find_separation_violations
from skyflow.config import Config
from skyflow.models.flight import EmergencyLevel
from skyflow.models.separation import SeparationMatrix
from skyflow.optimization.schedulers import SchedulingEngine


def _types(alerts):
	return [a.type for a in alerts]


def test_no_alerts_for_clean_schedule(engine):
	engine.enqueue(make_flight("BAW1"))
	engine.run_scheduling_pass()
	assert AlertAgent(Config()).generate(engine) == []


def test_pending_and_emergency_alerts(engine):
	engine.set_runway_active("27L", False)
	engine.enqueue(make_flight("BAW1"))
	engine.enqueue(make_flight("MAY1", emergency=EmergencyLevel.CRITICAL))
	engine.run_scheduling_pass()

	types = _types(AlertAgent(Config()).generate(engine))
	# The emergency was forced onto the closed runway, the normal flight waits
	assert "UNSCHEDULED_FLIGHTS" in types
	assert "EMERGENCY_ACTIVE" in types
	assert "EMERGENCY_PENDING" not in types


def test_emergency_pending_when_no_runway_exists(clock, bus):
	eng = SchedulingEngine(Config(), clock=clock, bus=bus)
	eng.enqueue(make_flight("MAY1", emergency=EmergencyLevel.MEDICAL))
	eng.run_scheduling_pass()
	alerts = AlertAgent(Config()).generate(eng)
	assert "EMERGENCY_PENDING" in _types(alerts)


def test_delay_threshold(engine):
	for i in range(10):
		engine.enqueue(make_flight(f"BAW{i}", at=NOW + timedelta(minutes=10)))
	engine.run_scheduling_pass()
	late = [a for a in AlertAgent(Config(delay_alert_threshold_minutes=15)).generate(engine) if a.type == "DELAY_THRESHOLD"]
	# Delays run 0, 2, 4 ... 18 minutes
	assert len(late) == 2


def test_violation_finder_checks_every_pair_on_a_runway():
	frame = pd.DataFrame([
		{"flight_id": "a", "runway_id": "27L", "category": "HEAVY", "actual_time": NOW},
		{"flight_id": "b", "runway_id": "27L", "category": "MEDIUM", "actual_time": NOW + timedelta(seconds=150)},
		{"flight_id": "c", "runway_id": "09", "category": "LIGHT", "actual_time": NOW + timedelta(seconds=10)},
	])
	violations = find_separation_violations(frame, SeparationMatrix(), 1.0)
	assert len(violations) == 1
	row = violations.iloc[0]
	assert (row["leading_id"], row["following_id"], row["required_seconds"]) == ("a", "b", 180)


def test_violation_finder_handles_empty_frame():
	assert find_separation_violations(pd.DataFrame(), SeparationMatrix(), 1.0).empty
