from dataclasses import dataclass


@dataclass
class Config:
	# Simulation sizes
	num_flights: int = 40
	seed: int = 42
	planning_horizon_minutes: int = 180
	emergency_rate: float = 0.1

	# Priority model
	emergency_weight: int = 10_000
	fuel_bonus_critical: int = 300   # fuel < 10%
	fuel_bonus_low: int = 200        # fuel < 20%
	fuel_bonus_reduced: int = 100    # fuel < 30%
	late_points_per_minute: int = 2
	late_points_cap: int = 200
	urgency_window_minutes: int = 30
	urgency_points_per_minute: int = 3
	escalation_step: int = 25

	# Runway scoring
	base_runway_score: float = 100.0
	headwind_weight: float = 2.0
	crosswind_weight: float = 3.0
	short_runway_length_m: int = 3000
	short_runway_penalty: float = 50.0
	wait_penalty_per_minute: float = 5.0
	inactive_runway_score: float = -1000.0

	# Conflict resolution
	bump_buffer_seconds: int = 30

	# Event bus
	event_log_size: int = 1000

	# Alerting thresholds
	delay_alert_threshold_minutes: int = 15

	# Persistence
	database_url: str = "sqlite:///skyflow.db"

