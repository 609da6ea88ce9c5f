import json
import logging
import click

from skyflow.config import Config
from skyflow.ingestion.data_sources import DataIngestion
from skyflow.models.separation import SeparationMatrix
from skyflow.orchestrator.controller import ATCController
from skyflow.orchestrator.sim import Simulation
from skyflow.storage.repository import SqlRepository
from skyflow.utils.logging import set_level


@click.group()
@click.option("--verbose", is_flag=True, help="Log every placement and queue change.")
def main(verbose: bool) -> None:
	"""SkyFlow runway scheduling CLI."""
	if verbose:
		set_level(logging.DEBUG)


@main.command()
@click.option("--flights", type=int, default=40, show_default=True)
@click.option("--seed", type=int, default=42, show_default=True)
@click.option("--db", "database_url", type=str, default=None, help="SQLAlchemy URL to persist the schedule to.")
def run(flights: int, seed: int, database_url: str) -> None:
	"""Schedule one batch of simulated flights and print the result."""
	cfg = Config(num_flights=flights, seed=seed)
	repository = SqlRepository(database_url, cfg) if database_url else None
	controller = ATCController(cfg, repository=repository)
	data = DataIngestion(cfg).simulate()
	for runway in data.runways:
		controller.create_runway(runway.id, runway.heading, runway.length)
	controller.import_flights(lambda: data.flights)
	output = controller.run_pass()
	result = {
		"scheduled": len(output.scheduled),
		"pending": output.pending_count,
		"latency_seconds": output.latency_seconds,
		"weather_factor": controller.engine.weather().weather_factor(),
		"assignments": [
			{
				"flight": f.flight_number,
				"category": f.category.name,
				"emergency": f.emergency_level.name,
				"runway": f.assigned_runway_id,
				"time": f.actual_time.isoformat(),
			}
			for f in controller.engine.scheduled_flights()
		],
		"alerts": [
			{"type": a.type, "message": a.message, "meta": a.meta}
			for a in output.alerts
		],
	}
	click.echo(json.dumps(result, indent=2))


@main.command()
@click.option("--minutes", type=int, default=120, show_default=True)
@click.option("--step", type=int, default=5, show_default=True)
@click.option("--flights", type=int, default=40, show_default=True)
def simulate(minutes: int, step: int, flights: int) -> None:
	"""Run a tick-driven simulation and print metrics."""
	cfg = Config(num_flights=flights, planning_horizon_minutes=minutes)
	metrics = Simulation(cfg).run(horizon_minutes=minutes, step_minutes=step)
	res = {
		"passes": metrics.passes,
		"events": metrics.num_events,
		"scheduled": metrics.scheduled,
		"pending": metrics.pending,
		"bumped": metrics.bumped,
		"deferred": metrics.deferred,
		"released": metrics.released,
		"mean_delay_minutes": round(metrics.mean_delay_minutes, 2),
	}
	click.echo(json.dumps(res, indent=2))


@main.command()
def matrix() -> None:
	"""Print the wake turbulence separation matrix."""
	click.echo(str(SeparationMatrix()))


if __name__ == "__main__":
	main()
