from __future__ import annotations

import streamlit as st
import pandas as pd
import plotly.express as px
from datetime import datetime, timedelta

from skyflow.config import Config
from skyflow.ingestion.data_sources import DataIngestion, default_runways, random_weather
from skyflow.models.flight import EmergencyLevel, FlightType, WakeCategory
from skyflow.models.weather import WeatherCondition
from skyflow.orchestrator.controller import ATCController
from skyflow.orchestrator.sim import Simulation
from skyflow.storage.repository import SqlRepository


st.set_page_config(page_title="SkyFlow Runway Scheduler", layout="wide")
st.title("SkyFlow Runway Scheduler")


def _controller() -> ATCController:
	if "controller" not in st.session_state:
		cfg = Config()
		repository = SqlRepository(cfg.database_url, cfg)
		controller = ATCController(cfg, repository=repository)
		if controller.load_state() == 0 and not controller.engine.runways():
			for runway in default_runways(cfg):
				controller.create_runway(runway.id, runway.heading, runway.length)
		st.session_state["controller"] = controller
	return st.session_state["controller"]


controller = _controller()

with st.sidebar:
	st.header("Add flight")
	with st.form("add_flight"):
		flight_number = st.text_input("Flight number", "BAW123")
		airline = st.text_input("Airline", "British Airways")
		aircraft = st.text_input("Aircraft", "Airbus A320")
		category = st.selectbox("Wake category", [c.name for c in WakeCategory], index=1)
		flight_type = st.selectbox("Type", [t.value for t in FlightType])
		minutes_ahead = st.slider("Scheduled in (min)", 0, 180, 15)
		emergency = st.selectbox("Emergency", [e.name for e in EmergencyLevel])
		fuel = st.slider("Fuel level (%)", 0, 100, 80)
		if st.form_submit_button("Add"):
			controller.create_flight(
				flight_number,
				airline,
				aircraft,
				WakeCategory[category],
				FlightType(flight_type),
				datetime.now() + timedelta(minutes=minutes_ahead),
				EmergencyLevel[emergency],
				fuel,
			)

	st.divider()
	st.header("Weather")
	current = controller.engine.weather()
	with st.form("weather"):
		wind_speed = st.slider("Wind speed (km/h)", 0.0, 80.0, float(current.wind_speed))
		wind_direction = st.slider("Wind direction (deg)", 0, 359, int(current.wind_direction))
		visibility = st.slider("Visibility (km)", 0.0, 20.0, float(min(current.visibility, 20.0)))
		condition = st.selectbox("Condition", [c.name for c in WeatherCondition], index=list(WeatherCondition).index(current.condition))
		if st.form_submit_button("Update weather"):
			controller.set_weather(wind_speed, wind_direction, visibility, WeatherCondition[condition])
	if st.button("Random weather"):
		w = random_weather()
		controller.set_weather(w.wind_speed, w.wind_direction, w.visibility, w.condition)

	st.divider()
	st.header("Test data")
	num_flights = st.slider("Flights", 5, 100, 20, step=5)
	if st.button("Generate flights"):
		data = DataIngestion(Config(num_flights=num_flights, seed=int(datetime.now().timestamp()))).simulate()
		controller.import_flights(lambda: data.flights)

col_run, col_reset = st.columns(2)
with col_run:
	if st.button("Run scheduling pass", type="primary"):
		st.session_state["last_pass"] = controller.run_pass()
with col_reset:
	if st.button("Reset"):
		controller.reset()
		st.session_state.pop("last_pass", None)

weather = controller.engine.weather()
c1, c2, c3, c4 = st.columns(4)
c1.metric("Scheduled", len(controller.engine.scheduled_flights()))
c2.metric("Pending", controller.engine.unscheduled_count())
c3.metric("Weather factor", f"{weather.weather_factor():.2f}")
c4.metric("Condition", weather.condition.name)

last = st.session_state.get("last_pass")
if last is not None and last.alerts:
	st.subheader("Alerts")
	for a in last.alerts:
		if a.type in ("SEPARATION_VIOLATION", "EMERGENCY_PENDING"):
			st.error(f"[{a.type}] {a.message}")
		else:
			st.warning(f"[{a.type}] {a.message}")

st.subheader("Runways")
runway_rows = []
for runway in controller.engine.runways():
	runway_rows.append({
		"id": runway.id,
		"heading": runway.heading,
		"length": runway.length,
		"active": runway.active,
		"next_available": runway.next_available,
		"headwind": round(weather.headwind(runway.heading), 1),
		"crosswind": round(weather.crosswind(runway.heading), 1),
	})
st.dataframe(pd.DataFrame(runway_rows))
for runway in controller.engine.runways():
	toggled = st.toggle(f"{runway.id} active", value=runway.active, key=f"rwy-{runway.id}")
	if toggled != runway.active:
		controller.set_runway_active(runway.id, toggled)

st.subheader("Scheduled flights")
assignments = controller.engine.assignments_frame()
st.dataframe(assignments)

if not assignments.empty:
	df_tl = assignments.copy()
	df_tl["start"] = pd.to_datetime(df_tl["actual_time"])
	df_tl["end"] = df_tl["start"] + pd.Timedelta(seconds=60)
	fig = px.timeline(
		df_tl,
		x_start="start",
		x_end="end",
		y="runway_id",
		color="category",
		hover_data=["flight_number", "emergency", "delay_seconds"],
		title="Runway timeline",
	)
	fig.update_yaxes(autorange="reversed")
	fig.update_layout(xaxis_title="Time")
	st.plotly_chart(fig, use_container_width=True)

st.subheader("Pending flights")
pending = controller.engine.pending_flights()
if pending:
	st.dataframe(pd.DataFrame([f.to_dict() for f in pending]))
	target = st.selectbox("Flight", [f"{f.flight_number} ({f.id[:8]})" for f in pending])
	chosen = pending[[f"{f.flight_number} ({f.id[:8]})" for f in pending].index(target)]
	if st.button("Delete flight"):
		controller.delete_flight(chosen.id)
else:
	st.info("No flights waiting for a runway.")

st.divider()
st.header("Simulation")
sim_minutes = st.slider("Simulation horizon (minutes)", 30, 480, 120, step=30)
if st.button("Run Simulation"):
	metrics = Simulation(Config(planning_horizon_minutes=sim_minutes)).run(horizon_minutes=sim_minutes)
	m1, m2, m3, m4 = st.columns(4)
	m1.metric("Passes", metrics.passes)
	m2.metric("Scheduled", metrics.scheduled)
	m3.metric("Bumped", metrics.bumped)
	m4.metric("Mean delay (min)", f"{metrics.mean_delay_minutes:.1f}")
	if not metrics.assignments.empty:
		df_sim = metrics.assignments.copy()
		df_sim["start"] = pd.to_datetime(df_sim["actual_time"])
		df_sim["end"] = df_sim["start"] + pd.Timedelta(seconds=60)
		fig_sim = px.timeline(df_sim, x_start="start", x_end="end", y="runway_id", color="category", title="Simulation runway schedule")
		fig_sim.update_yaxes(autorange="reversed")
		st.plotly_chart(fig_sim, use_container_width=True)
	if metrics.logs:
		st.subheader("Scheduler event log")
		st.dataframe(pd.DataFrame(metrics.logs).tail(100))
