from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from mlprocess.cli import main
from mlprocess.runner import run
from mlprocess.tasks.eval_selector import read_measure


def _cfg(tmp_path: Path, workers: int) -> dict:
    return {
        "run": {"workers": workers, "log_level": "DEBUG", "log_file": "logs/run.log", "base_dir": str(tmp_path)},
        "tasks": {
            "baseline": {
                "kind": "classifier",
                "params": {"class_arg": "cls", "model": "majority"},
                "inputs": ["data/train.csv", "data/eval.csv"],
                "outputs": ["out/baseline.csv"],
            },
            "baseline_eval": {
                "kind": "eval_classification",
                "params": {"class_arg": "cls"},
                "inputs": ["data/eval.csv", "out/baseline.csv"],
                "outputs": ["out/baseline.txt"],
            },
            "settings": {
                "kind": "setting_selector",
                "params": {
                    "measure": "accuracy",
                    "tempfile": "tmp/settings-*",
                    "class_arg": "cls",
                    "model": "tree",
                    "max_depth": [1, 3],
                    "delete_tempfiles": True,
                },
                "inputs": ["data/train.csv", "data/eval.csv"],
                "outputs": ["out/settings.csv", "out/settings.txt", "out/settings-best.txt"],
            },
            "greedy": {
                "kind": "greedy_attribute_search",
                "params": {
                    "measure": "accuracy",
                    "tempfile": "tmp/greedy-*",
                    "class_arg": "cls",
                    "model": "tree",
                    "start": 1,
                    "end": 3,
                    "max_depth": 2,
                },
                "inputs": ["data/train.csv", "data/eval.csv"],
                "outputs": ["out/greedy.csv", "out/greedy.txt", "out/greedy-best.txt"],
            },
            # consumes a greedy output, so it must wait for the whole search
            "greedy_eval": {
                "kind": "eval_classification",
                "params": {"class_arg": "cls"},
                "inputs": ["data/eval.csv", "out/greedy.csv"],
                "outputs": ["out/greedy-check.txt"],
            },
        },
    }


@pytest.mark.parametrize("workers", [1, 2])
def test_run_scenario_end_to_end(tmp_path: Path, dataset, workers: int) -> None:
    assert run(argv=[], cfg=_cfg(tmp_path, workers)) == 0

    out = tmp_path / "out"
    assert read_measure(str(out / "baseline.txt"), "accuracy") == pytest.approx(0.5)
    assert read_measure(str(out / "settings.txt"), "accuracy") == pytest.approx(1.0)
    assert (out / "settings-best.txt").read_text(encoding="utf-8") == "max_depth:1\n"
    assert not list((tmp_path / "tmp").glob("settings-*"))

    best = (out / "greedy-best.txt").read_text(encoding="utf-8").split()
    assert best[0] == "a"
    assert read_measure(str(out / "greedy.txt"), "accuracy") == pytest.approx(1.0)
    assert read_measure(str(out / "greedy-check.txt"), "accuracy") == pytest.approx(1.0)
    assert (tmp_path / "tmp" / "greedy-(1-stats).txt").read_text(encoding="utf-8").startswith("Last best:-inf")
    assert (tmp_path / "logs" / "run.log").exists()


def test_failed_task_gives_exit_code_1(tmp_path: Path, dataset) -> None:
    cfg = _cfg(tmp_path, 1)
    cfg["tasks"]["baseline"]["params"]["class_arg"] = "missing"
    assert run(argv=[], cfg=cfg) == 1
    assert (tmp_path / "out" / "greedy-best.txt").exists()
    assert not (tmp_path / "out" / "baseline.txt").exists()


def test_cli_commands(tmp_path: Path, dataset, capsys) -> None:
    cfg = _cfg(tmp_path, 1)
    del cfg["run"]["base_dir"]
    path = tmp_path / "scenario.yaml"
    path.write_text(yaml.safe_dump(cfg), encoding="utf-8")

    assert main(["kinds"]) == 0
    listed = capsys.readouterr().out
    assert "greedy_attribute_search" in listed
    assert "logreg" in listed

    assert main(["-c", str(path), "show"]) == 0
    assert "greedy [greedy_attribute_search] ready" in capsys.readouterr().out

    assert main(["-c", str(path), "run", "--set", "tasks.greedy.params.end=1"]) == 0
    assert (tmp_path / "out" / "greedy-best.txt").read_text(encoding="utf-8").split() == ["a"]

    assert main(["-c", str(path), "nope"]) == 2
    assert main([]) == 2
    assert main(["-c", str(tmp_path / "missing.yaml"), "run"]) == 1


def test_cli_global_options_anywhere(tmp_path: Path, dataset, capsys) -> None:
    cfg = _cfg(tmp_path, 1)
    del cfg["run"]["base_dir"]
    path = tmp_path / "scenario.yaml"
    path.write_text(yaml.safe_dump(cfg), encoding="utf-8")

    assert main(["--set", "run.workers=2", "show", "-c", str(path), "--set", "tasks.greedy.params.end=1"]) == 0
    assert "greedy [greedy_attribute_search] ready" in capsys.readouterr().out

    # kinds never reads the scenario
    assert main(["-c", str(tmp_path / "missing.yaml"), "kinds"]) == 0
    assert main(["-c", str(path), "--set", "no_equals_sign", "show"]) == 1
    assert "cannot load scenario" in capsys.readouterr().err
