"""
Command line entry point: ``python -m rallylog.validation``.
"""

import argparse
import sys

from rallylog.config import settings
from rallylog.logging_config import configure_logging
from rallylog.validation.runner import TEST_SCENARIOS, run_validation, summarize


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Cross-validate the scoring engine on simulated matches")
    parser.add_argument("--matches", type=int, default=3, help="Matches simulated per scenario")
    parser.add_argument("--seed", type=int, default=settings.SIMULATION_SEED, help="Random seed")
    parser.add_argument("--scenario", type=str, help="Only run scenarios whose name contains this text")
    parser.add_argument("--output", type=str, help="Write the per-match report to this CSV path")
    args = parser.parse_args(argv)

    configure_logging()
    scenarios = TEST_SCENARIOS
    if args.scenario:
        scenarios = [s for s in TEST_SCENARIOS if args.scenario.lower() in s["name"].lower()]
        if not scenarios:
            parser.error(f"no scenario matches {args.scenario!r}")

    report = run_validation(matches_per_scenario=args.matches, seed=args.seed, scenarios=scenarios)
    print(summarize(report).to_string(index=False))
    if args.output:
        report.to_csv(args.output, index=False)
        print(f"Report saved to {args.output}")

    failed = int((~report["passed"]).sum())
    print(f"{len(report) - failed}/{len(report)} matches passed")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
