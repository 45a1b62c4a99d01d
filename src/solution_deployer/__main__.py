"""CLI entrypoints for the solution deployer (deploy, status)."""

from __future__ import annotations

import argparse
import json
import sys
import uuid
from typing import List, Optional

import structlog

from solution_deployer import __version__
from solution_deployer.core.config import Settings, load_deployment_config, load_settings
from solution_deployer.core.exceptions import ConfigurationError, DeployerError
from solution_deployer.deploy.orchestrator import PackageDeployer
from solution_deployer.deploy.repository import (
    ImportRepository,
    InMemoryImportRepository,
    load_repository_factory,
)
from solution_deployer.utils.logging import bind_deployment_context, log_progress_event, setup_logging

logger = structlog.get_logger()

PHASES = ("holding", "delete-original", "new")


def _build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="solution-deployer", description="Holding-pattern solution deployer")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="cmd", required=True)

    commands = {
        "deploy": sub.add_parser("deploy", help="Run deployment passes"),
        "status": sub.add_parser("status", help="Show solution details as JSON"),
    }
    for cmd in commands.values():
        cmd.add_argument("--config", default=settings.config_file, help="Deployment configuration YAML")
        source = cmd.add_mutually_exclusive_group()
        source.add_argument("--repository", help="Remote repository factory as module:callable")
        source.add_argument("--dry-run", action="store_true", help="Use an in-memory repository")

    commands["deploy"].add_argument(
        "--phase",
        choices=PHASES + ("all",),
        default="all",
        help="Pass to run; 'all' runs holding, delete-original, new in order",
    )
    return parser


def _resolve_repository(args: argparse.Namespace) -> ImportRepository:
    if args.repository:
        factory = load_repository_factory(args.repository)
        try:
            return factory()
        except DeployerError:
            raise
        except Exception as e:
            raise ConfigurationError(
                f"Repository factory {args.repository} failed: {e}", code="repository_factory"
            ) from e
    if args.dry_run:
        logger.info("Dry run: using in-memory repository")
        return InMemoryImportRepository()
    raise ConfigurationError("Either --repository or --dry-run is required", code="repository_missing")


def run_deployment(deployer: PackageDeployer, phase: str = "all") -> None:
    """Run one pass, or all three in order."""
    passes = {
        "holding": deployer.install_holding_solutions,
        "delete-original": deployer.delete_original_solutions,
        "new": deployer.install_new_solutions,
    }
    selected = PHASES if phase == "all" else (phase,)
    for name in selected:
        passes[name]()


def run(argv: Optional[List[str]] = None) -> int:
    try:
        settings = load_settings()
    except ConfigurationError as e:
        setup_logging()
        logger.error("Configuration error", error=str(e), code=e.code)
        return 2
    setup_logging(settings.log_level, settings.log_format)
    args = _build_parser(settings).parse_args(argv)
    bind_deployment_context(args.config, str(uuid.uuid4()))

    try:
        config = load_deployment_config(args.config)
        repository = _resolve_repository(args)
        deployer = PackageDeployer.from_repository(config, repository)
    except ConfigurationError as e:
        logger.error("Configuration error", error=str(e), code=e.code)
        return 2
    except DeployerError as e:
        logger.error("Failed to prepare deployment", error=str(e), code=e.code)
        return 1

    if args.cmd == "status":
        details = [d.model_dump(mode="json") for d in deployer.get_solution_details()]
        print(json.dumps(details, indent=2))
        return 0

    deployer.subscribe(log_progress_event)
    try:
        run_deployment(deployer, args.phase)
    except DeployerError as e:
        logger.error(
            "Deployment failed",
            error=str(e),
            code=e.code,
            solution=getattr(e, "solution_name", None),
            operation=getattr(e, "operation", None),
        )
        return 1

    logger.info("Deployment complete", phase=args.phase, package_count=len(deployer.packages))
    return 0


def main():
    sys.exit(run())


if __name__ == "__main__":
    main()
