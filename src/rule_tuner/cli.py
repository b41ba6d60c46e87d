"""CLI entry point: rule-tuner

Subcommands:
    run       Evaluate, revise the rules and A/B test the revision
    evaluate  Score conversations against the rules only
    report    Print a saved JSON report

Usage:
    rule-tuner run --conversations convos.csv --rules rules.yaml
    rule-tuner evaluate --conversations convos.jsonl --rules rules.txt --no-sampling
    rule-tuner report /tmp/rule-tuner/pipeline_report.json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .errors import ConfigError, RuleTunerError


def _setup_logging(args: argparse.Namespace) -> None:
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _build_config(args: argparse.Namespace):
    from .config import TunerConfig, load_config

    config = load_config(args.config) if args.config else TunerConfig()
    config = config.with_overrides(
        output_dir=args.output_dir,
        model=args.model,
        sample_size=args.sample_size,
        seed=args.seed,
    )
    if args.no_sampling:
        config = config.with_overrides(use_sampling=False)
    errors = config.validate()
    if errors:
        raise ConfigError("; ".join(errors))
    return config


def _create_oracle(config):
    from .adapters.anthropic_oracle import AnthropicOracle

    return AnthropicOracle(model=config.model, temperature=config.temperature)


def _cmd_run(args: argparse.Namespace) -> int:
    """Run the full evaluate -> revise -> A/B test cycle."""
    from .data.loaders import load_conversations, load_rules
    from .self_improve.runner import run_pipeline

    _setup_logging(args)

    try:
        config = _build_config(args)
        conversations = load_conversations(args.conversations)
        rules = load_rules(args.rules)
        oracle = _create_oracle(config)
        result = run_pipeline(conversations, rules, oracle, config)
    except (RuleTunerError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if result.ab_test.improvement_pct is None:
        print("\nFinal improvement: undefined")
    else:
        print(f"\nFinal improvement: {result.ab_test.improvement_pct:.1f}%")
    return 0


def _cmd_evaluate(args: argparse.Namespace) -> int:
    """Score conversations without revising the rules."""
    from .config import make_rng
    from .core.evaluator import Evaluator
    from .core.scoring import ScoringClient
    from .core.selection import print_diagnostic_sample, select_diagnostic_sample
    from .data.loaders import load_conversations, load_rules, sample_conversations
    from .self_improve.ab_test import calc_stats

    _setup_logging(args)

    try:
        config = _build_config(args)
        conversations = load_conversations(args.conversations)
        rules = load_rules(args.rules)
        oracle = _create_oracle(config)
    except (RuleTunerError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if config.use_sampling:
        conversations = sample_conversations(
            conversations, config.sample_size, make_rng(config.seed)
        )

    evaluator = Evaluator(ScoringClient(oracle, config), config)
    results = evaluator.evaluate(conversations, rules)
    stats = calc_stats(results, config.good_score_threshold)
    print(
        f"\nAverage {stats.avg_score} | median {stats.median_score} | "
        f"good {stats.good_pct}% | total {stats.total}"
    )
    print_diagnostic_sample(select_diagnostic_sample(results, config.diagnostic_fraction))

    output_dir = Path(config.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    results_path = output_dir / "eval_results.json"
    with open(results_path, "w") as f:
        json.dump(
            {"stats": stats.to_dict(), "results": [r.to_dict() for r in results]},
            f,
            indent=2,
            ensure_ascii=False,
        )
    print(f"\nResults saved to {results_path}")
    return 0


def _cmd_report(args: argparse.Namespace) -> int:
    """Print a saved report."""
    report_path = Path(args.report_file)
    if not report_path.exists():
        print(f"Error: Report file not found: {report_path}", file=sys.stderr)
        return 1

    with open(report_path) as f:
        data = json.load(f)

    print(json.dumps(data, indent=2, ensure_ascii=False))
    return 0


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--conversations", required=True, help="Conversations (.csv/.json/.jsonl)")
    parser.add_argument("--rules", required=True, help="Rule document (.yaml/.json/.txt)")
    parser.add_argument("--config", default="", help="YAML config file")
    parser.add_argument("--output-dir", default=None, help="Output directory")
    parser.add_argument("--model", default=None, help="Judge model")
    parser.add_argument("--sample-size", type=int, default=None, help="Conversations to sample")
    parser.add_argument("--no-sampling", action="store_true", help="Use every conversation")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rule-tuner",
        description="Score chatbot conversations against business rules and revise the rules",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Evaluate, revise and A/B test the rules")
    _add_common_args(run_parser)

    eval_parser = subparsers.add_parser("evaluate", help="Score conversations only")
    _add_common_args(eval_parser)

    rpt_parser = subparsers.add_parser("report", help="Print a saved report")
    rpt_parser.add_argument("report_file", help="Path to report JSON file")

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    handlers = {
        "run": _cmd_run,
        "evaluate": _cmd_evaluate,
        "report": _cmd_report,
    }

    handler = handlers.get(args.command)
    if handler:
        sys.exit(handler(args))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
