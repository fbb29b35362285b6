import json

import pytest

from dropsim_core.cli import build_parser, main


def test_run_prints_a_summary(capsys, tmp_path):
    code = main(["run", "--days", "3", "--seed", "5", "--snapshot-dir", str(tmp_path)])
    assert code == 0

    out = capsys.readouterr().out
    assert "Day    1" in out
    assert "Session cli: simulated 3 day(s)" in out

    snapshot = json.loads((tmp_path / "cli.json").read_text(encoding="utf-8"))
    assert snapshot["day"] == 3
    assert len(snapshot["simulationHistory"]["profit"]) == 3


def test_run_resumes_a_saved_session(capsys, tmp_path):
    args = ["run", "--days", "2", "--seed", "5", "--snapshot-dir", str(tmp_path)]
    assert main(args + ["--session-id", "learner"]) == 0
    assert main(args + ["--session-id", "learner"]) == 0
    snapshot = json.loads((tmp_path / "learner.json").read_text(encoding="utf-8"))
    assert snapshot["day"] == 4


def test_run_with_budget_uses_primary_path(capsys):
    code = main(["run", "--days", "1", "--seed", "5", "--budget", "DEMO1=60", "--budget", "DEMO2=40"])
    assert code == 0
    assert "simulated 1 day(s)" in capsys.readouterr().out


def test_malformed_budget_is_an_error(capsys):
    assert main(["run", "--days", "1", "--budget", "DEMO1"]) == 2


@pytest.mark.parametrize("budget", ["DEMO1=abc", "DEMO1=-5", "DEMO1=nan"])
def test_invalid_budget_amount_is_an_error(budget):
    assert main(["run", "--days", "1", "--seed", "1", "--budget", budget]) == 2


def test_negative_days_is_a_usage_error():
    with pytest.raises(SystemExit) as info:
        main(["run", "--days", "-1"])
    assert info.value.code == 2


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "dropsim" in capsys.readouterr().out


def test_parser_defaults():
    args = build_parser().parse_args(["run", "--days", "1"])
    assert args.session_id == "cli"
    assert args.seed is None
    assert args.override_inventory is False
    assert args.budget is None
