import argparse
import json

import pytest

from epichain.app.headless import main, parse_sweep, parse_times, run_headless


def _write_config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "\n".join(
            [
                "seed: 1",
                "general:",
                "  n_init: 8",
                "  n_emt: 2",
                "  t_end: 0.5",
            ]
        )
    )
    return path


def test_headless_summary_output(tmp_path):
    summary_path = tmp_path / "summary.json"
    summary = run_headless(
        steps=4,
        seed=3,
        summary_path=summary_path,
        config_path=_write_config(tmp_path),
        snapshot_interval=2,
    )
    payload = json.loads(summary_path.read_text())
    assert payload["steps"] == 4
    assert payload["seed"] == 3
    assert payload["cells"] == 8
    assert payload["emt_cells"] == 2
    assert payload["time"] == pytest.approx(0.4)
    assert len(payload["snapshots"]) == 2
    assert payload["snapshots"][0]["time"] == pytest.approx(0.2)
    assert summary["steps"] == payload["steps"]


def test_headless_runs_to_t_end_without_steps(tmp_path):
    summary = run_headless(steps=None, seed=None, summary_path=None, config_path=_write_config(tmp_path))
    assert summary["steps"] == 5
    assert summary["seed"] == 1
    assert summary["time"] == pytest.approx(0.5)


def test_parse_sweep_and_times():
    sweep = parse_sweep("cell_types.emt.run=0:1:3")
    assert sweep.path == "cell_types.emt.run"
    assert sweep.values() == [0.0, 0.5, 1.0]
    assert parse_sweep("general.mu=0.3").values() == [0.3]
    times = parse_times("0:2:0.5")
    assert (times.start, times.end, times.step) == (0.0, 2.0, 0.5)
    with pytest.raises(argparse.ArgumentTypeError):
        parse_sweep("general.mu")
    with pytest.raises(argparse.ArgumentTypeError):
        parse_times("0:2")


def test_batch_command_writes_results(tmp_path, capsys):
    output = tmp_path / "batch.json"
    main(
        [
            "--log-level",
            "WARNING",
            "batch",
            "--config",
            str(_write_config(tmp_path)),
            "--sweep",
            "general.n_emt=0:2:2",
            "--times",
            "0:0.2:0.1",
            "--workers",
            "1",
            "--output",
            str(output),
        ]
    )
    printed = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert printed == {"status": "completed", "completed": 2, "failed": 0}
    payload = json.loads(output.read_text())
    assert payload["total_runs"] == 2
    assert [run["overrides"] for run in payload["runs"]] == [{"general.n_emt": 0.0}, {"general.n_emt": 2.0}]
    assert len(payload["snapshots"]) == 6
    assert {snapshot["run_index"] for snapshot in payload["snapshots"]} == {0, 1}
