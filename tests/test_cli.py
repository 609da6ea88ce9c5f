import json
import logging

from click.testing import CliRunner

from skyflow.cli import main
from skyflow.utils.logging import set_level


def test_matrix_command():
	result = CliRunner().invoke(main, ["matrix"])
	assert result.exit_code == 0
	assert "SUPER" in result.output
	assert "300" in result.output


def test_run_command_prints_schedule():
	result = CliRunner().invoke(main, ["run", "--flights", "12", "--seed", "5"])
	assert result.exit_code == 0, result.output
	body = json.loads(result.output[result.output.index("{"):])
	assert body["scheduled"] + body["pending"] == 12
	assert len(body["assignments"]) == body["scheduled"]


def test_simulate_command():
	result = CliRunner().invoke(main, ["simulate", "--minutes", "30", "--step", "10", "--flights", "10"])
	assert result.exit_code == 0, result.output
	body = json.loads(result.output[result.output.index("{"):])
	assert body["passes"] == 3


def test_verbose_flag_lowers_log_level():
	result = CliRunner().invoke(main, ["--verbose", "matrix"])
	assert result.exit_code == 0
	assert logging.getLogger("skyflow.optimization.schedulers").level == logging.DEBUG
	set_level(logging.INFO)
