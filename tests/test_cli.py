"""Tests for the rule-tuner CLI."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from rule_tuner import cli
from rule_tuner.adapters.base import Oracle


class FixedOracle(Oracle):
    def complete(self, prompt: str, max_tokens: int) -> str:
        if prompt.startswith("You are an expert at optimizing"):
            return '{"improvements": [], "summary": "nothing to change"}'
        return '{"score": 64, "feedback": "fine"}'


def _write_inputs(tmp_path: Path) -> tuple[Path, Path, Path]:
    convos = tmp_path / "convos.jsonl"
    lines = []
    for i in range(4):
        lines.append(
            json.dumps(
                {
                    "conversation_id": f"c{i}",
                    "messages": [
                        {"sender": "CUSTOMER", "content": "hi"},
                        {"sender": "BOT", "content": f"hello {i}"},
                    ],
                }
            )
        )
    convos.write_text("\n".join(lines))
    rules = tmp_path / "rules.txt"
    rules.write_text("RULE: greet the customer.")
    config = tmp_path / "config.yaml"
    config.write_text("pacing_delay: 0\nretry_delay: 0\n")
    return convos, rules, config


class TestParser:
    def test_no_command_exits(self):
        with pytest.raises(SystemExit) as exc_info:
            cli.main([])
        assert exc_info.value.code == 1

    def test_run_requires_inputs(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["run"])

    def test_run_args(self):
        args = cli.build_parser().parse_args(
            ["run", "--conversations", "c.csv", "--rules", "r.yaml", "--seed", "4", "--no-sampling"]
        )
        assert args.seed == 4
        assert args.no_sampling is True
        assert args.sample_size is None


class TestReportCommand:
    def test_prints_report(self, tmp_path: Path, capsys):
        path = tmp_path / "report.json"
        path.write_text(json.dumps({"ab_test": {"improvement_pct": 12.5}}))

        with pytest.raises(SystemExit) as exc_info:
            cli.main(["report", str(path)])

        assert exc_info.value.code == 0
        assert "12.5" in capsys.readouterr().out

    def test_missing_report(self, tmp_path: Path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["report", str(tmp_path / "missing.json")])
        assert exc_info.value.code == 1
        assert "not found" in capsys.readouterr().err


class TestRunCommand:
    def test_full_run(self, tmp_path: Path, capsys):
        convos, rules, config = _write_inputs(tmp_path)
        out_dir = tmp_path / "out"

        with patch.object(cli, "_create_oracle", return_value=FixedOracle()):
            with pytest.raises(SystemExit) as exc_info:
                cli.main(
                    [
                        "run",
                        "--conversations",
                        str(convos),
                        "--rules",
                        str(rules),
                        "--config",
                        str(config),
                        "--output-dir",
                        str(out_dir),
                        "--no-sampling",
                        "--seed",
                        "3",
                    ]
                )

        assert exc_info.value.code == 0
        assert (out_dir / "revised_rules.txt").read_text() == "RULE: greet the customer."
        assert (out_dir / "pipeline_report.json").exists()
        assert "Final improvement: 0.0%" in capsys.readouterr().out

    def test_evaluate_only(self, tmp_path: Path):
        convos, rules, config = _write_inputs(tmp_path)
        out_dir = tmp_path / "out"

        with patch.object(cli, "_create_oracle", return_value=FixedOracle()):
            with pytest.raises(SystemExit) as exc_info:
                cli.main(
                    [
                        "evaluate",
                        "--conversations",
                        str(convos),
                        "--rules",
                        str(rules),
                        "--config",
                        str(config),
                        "--output-dir",
                        str(out_dir),
                        "--sample-size",
                        "2",
                    ]
                )

        assert exc_info.value.code == 0
        saved = json.loads((out_dir / "eval_results.json").read_text())
        assert saved["stats"]["total"] == 2
        assert not (out_dir / "revised_rules.txt").exists()

    def test_missing_input_file(self, tmp_path: Path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(
                [
                    "run",
                    "--conversations",
                    str(tmp_path / "none.jsonl"),
                    "--rules",
                    str(tmp_path / "none.txt"),
                ]
            )
        assert exc_info.value.code == 1
        assert "Error" in capsys.readouterr().err
