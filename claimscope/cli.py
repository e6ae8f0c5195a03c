"""
claimscope/cli.py - Command line entry point.

    claimscope recalc estimate.json [--catalog prices.json] [--output out.json]
    claimscope check estimate.json
"""

from __future__ import annotations
import argparse
import json
import logging
import sys

from .core.config import EngineConfig, setup_logging
from .errors.taxonomy import EstimateError
from .hierarchy.models import Estimate
from .pricing.catalog import InMemoryCatalog
from .service.operations import EstimateService
from .validators.estimate import check_estimate

logger = logging.getLogger(__name__)


def _load_estimate(path: str) -> Estimate:
    with open(path) as f:
        return Estimate.from_dict(json.load(f))


def _cmd_recalc(parsed, config: EngineConfig) -> int:
    catalog = InMemoryCatalog.from_file(parsed.catalog) if parsed.catalog else None
    service = EstimateService(catalog=catalog, config=config)

    result = service.import_estimate(_load_estimate(parsed.estimate))

    if parsed.output:
        with open(parsed.output, "w") as f:
            json.dump(service.get_estimate(result.estimate_id).to_dict(), f, indent=2)
        logger.info(f"Wrote recalculated estimate to {parsed.output}")

    output = {
        "rollup": result.rollup.to_dict(),
        "coverage": result.coverage.to_dict(include_items=False),
        "warnings": [w.to_dict() for w in result.warnings],
    }
    print(json.dumps(output, indent=2))
    return 0


def _cmd_check(parsed, config: EngineConfig) -> int:
    report = check_estimate(_load_estimate(parsed.estimate), config)
    print(json.dumps(report.to_dict(), indent=2))
    return 0 if report.passed else 1


def main(args: list = None) -> int:
    """
    CLI entry point.

    Args:
        args: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        description="Estimate hierarchy and financial rollup engine",
        prog="claimscope",
    )
    parser.add_argument(
        "-c", "--config",
        help="Path to configuration file",
        default=None,
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log level (defaults to the configured level)",
    )
    parser.add_argument(
        "--log-file",
        help="Log file path",
        default=None,
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    recalc = subparsers.add_parser("recalc", help="Recalculate an estimate and print its rollup")
    recalc.add_argument("estimate", help="Estimate JSON file")
    recalc.add_argument("--catalog", help="Catalog JSON file", default=None)
    recalc.add_argument("-o", "--output", help="Write the recalculated estimate here", default=None)

    check = subparsers.add_parser("check", help="Check an estimate's derived state")
    check.add_argument("estimate", help="Estimate JSON file")

    parsed = parser.parse_args(args)

    config = EngineConfig.from_file(parsed.config) if parsed.config else EngineConfig.from_env()
    if parsed.log_file:
        config.logging.log_file = parsed.log_file
    setup_logging(config=config.logging, level=parsed.log_level)

    try:
        if parsed.command == "recalc":
            return _cmd_recalc(parsed, config)
        return _cmd_check(parsed, config)
    except EstimateError as e:
        print(json.dumps({"error": e.to_dict()}, indent=2), file=sys.stderr)
        return 2
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Could not read input: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
