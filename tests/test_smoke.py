from conftest import NOW
from skyflow.config import Config
from skyflow.orchestrator.sim import Simulation


def test_simulation_runs():
	cfg = Config(num_flights=20, planning_horizon_minutes=60, emergency_rate=0.2)
	metrics = Simulation(cfg).run(horizon_minutes=60, step_minutes=5, start=NOW)
	assert metrics.passes == 12
	assert metrics.scheduled + metrics.pending <= cfg.num_flights
	assert metrics.scheduled == len(metrics.assignments)
	assert metrics.mean_delay_minutes >= 0
	assert 0 < len(metrics.logs) <= metrics.num_events
	assert metrics.released >= 0
