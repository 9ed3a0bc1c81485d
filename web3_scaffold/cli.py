"""Command-line entry point for web3-scaffold.

Usage::

    web3-scaffold ./bushido-nft
    web3-scaffold ./bushido-nft --minimal --skip-prerequisites
    python -m web3_scaffold ./bushido-nft --dry-run

Exit codes: 0 on success (or a dry run), 1 on any failure.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Any

from rich.markup import escape
from rich.panel import Panel
from rich.tree import Tree

from . import __version__
from .config import ScaffoldConfig, read_config_file
from .prerequisites import PrerequisiteError, check_prerequisites
from .reporting import Reporter, Severity
from .scaffolder import ConflictError, ProjectGenerator, ScaffoldError, ScaffoldStep
from .utils import console, format_duration, print_rule, print_summary_table

EXIT_OK = 0
EXIT_FAILURE = 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="web3-scaffold",
        description="Scaffold a pnpm/Turborepo NFT monorepo (contracts, frontend, backend, scripts)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  web3-scaffold ./bushido-nft\n"
            "  web3-scaffold ./bushido-nft --minimal --skip-prerequisites\n"
            "  web3-scaffold ./bushido-nft --name bushido --symbol BSH --mint-price 0.05\n"
        ),
    )
    parser.add_argument(
        "target",
        nargs="?",
        default=None,
        help="Directory to generate the project into (default: ./web3-project)",
    )
    parser.add_argument("--name", dest="project_name", default=None, help="Project name (default: target directory name)")
    parser.add_argument("--description", default=None, help="Collection description")
    parser.add_argument("--symbol", dest="collection_symbol", default=None, help="Token symbol")
    parser.add_argument("--max-supply", type=int, default=None, help="Maximum token supply")
    parser.add_argument("--mint-price", dest="mint_price_eth", default=None, help="Mint price in ETH")
    parser.add_argument(
        "--minimal",
        action="store_true",
        default=None,
        help="Only generate the workspace, contracts and frontend",
    )
    parser.add_argument(
        "--skip-prerequisites",
        action="store_true",
        default=None,
        help="Do not check for node/pnpm/git",
    )
    parser.add_argument("--force", action="store_true", default=None, help="Overwrite existing files")
    parser.add_argument("--install", action="store_true", default=None, help="Run `pnpm install` afterwards")
    parser.add_argument("--git", dest="init_git", action="store_true", default=None, help="Run `git init` afterwards")
    parser.add_argument("--dry-run", action="store_true", default=None, help="Show the plan without writing")
    parser.add_argument("--config", default=None, help="JSON file with configuration values")
    parser.add_argument("--log-file", default=None, help="Append JSON-lines log records to this file")

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Show debug output")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only show warnings and errors")

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def build_config(args: argparse.Namespace) -> ScaffoldConfig:
    """Layer defaults < ``W3S_*`` env < config file < flags into one config."""
    values: dict[str, Any] = dict(ScaffoldConfig.env_overrides())
    if args.config:
        values.update(read_config_file(args.config))

    flags = {
        "target_dir": args.target,
        "project_name": args.project_name,
        "description": args.description,
        "collection_symbol": args.collection_symbol,
        "max_supply": args.max_supply,
        "mint_price_eth": args.mint_price_eth,
        "minimal": args.minimal,
        "skip_prerequisites": args.skip_prerequisites,
        "force": args.force,
        "install": args.install,
        "init_git": args.init_git,
        "dry_run": args.dry_run,
        "log_file": args.log_file,
    }
    values.update({key: value for key, value in flags.items() if value is not None})
    if args.verbose:
        values["log_level"] = "debug"
    elif args.quiet:
        values["log_level"] = "warning"

    return ScaffoldConfig.model_validate(values)


async def run(config: ScaffoldConfig, reporter: Reporter) -> int:
    """Check prerequisites, then plan or generate.  Returns the exit code."""
    if reporter.enabled(Severity.INFO):
        console.print(
            Panel(
                f"[bold bright_cyan]{config.display_name}[/bold bright_cyan]\n"
                f"Target   : {escape(str(config.target_dir.resolve()))}\n"
                f"Contract : {config.contract_name} ({config.collection_symbol})\n"
                f"Setup    : {'minimal' if config.minimal else 'full'}",
                title="[bold]web3-scaffold[/bold]",
                border_style="bright_cyan",
            )
        )

    if config.skip_prerequisites:
        reporter.warning("Skipping prerequisite checks")
    else:
        try:
            statuses = await check_prerequisites(config)
        except PrerequisiteError as exc:
            for status in exc.failures:
                reporter.error(status.describe(), tool=status.name)
            reporter.error("Prerequisite check failed; nothing was written. " + reporter.log_hint())
            return EXIT_FAILURE
        for status in statuses:
            reporter.success(status.describe(), tool=status.name)

    generator = ProjectGenerator(config, reporter=reporter)

    if config.dry_run:
        steps = generator.plan()
        console.print(_plan_tree(config.target_dir.name or str(config.target_dir), steps))
        conflicts = generator.conflicts(steps)
        if conflicts:
            reporter.warning(f"{len(conflicts)} file(s) already exist and would need --force")
        reporter.info("Dry run: nothing was written")
        return EXIT_OK

    try:
        result = await generator.generate()
    except ConflictError as exc:
        reporter.error(f"{exc}. Re-run with --force to overwrite them.")
        return EXIT_FAILURE
    except ScaffoldError as exc:
        reporter.error(
            f"Scaffolding failed at step '{exc.step}': {exc.cause}. "
            "All generated files were rolled back. " + reporter.log_hint(),
            step=exc.step,
        )
        return EXIT_FAILURE

    reporter.success(
        f"Generated {len(result.files_written)} file(s) in {format_duration(result.duration)}",
        root=str(result.root),
    )
    if reporter.enabled(Severity.INFO):
        print_rule("Done", color="bright_green")
        print_summary_table(
            {
                "Project": config.project_name,
                "Location": str(result.root.resolve()),
                "Steps": ", ".join(result.steps_completed),
                "Files written": str(len(result.files_written)),
                "Directories created": str(result.directories_created),
                "Duration": format_duration(result.duration),
            },
            title="Scaffold Results",
        )
        next_steps = [f"cd {config.target_dir}", "cp .env.example .env"]
        if not config.install:
            next_steps.append("pnpm install")
        next_steps += ["pnpm test:contracts", "pnpm dev"]
        console.print(Panel("\n".join(next_steps), title="Next steps", border_style="green"))
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for ``web3-scaffold`` / ``python -m web3_scaffold``."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except (ValueError, ArithmeticError, OSError) as exc:
        console.print(f"[bold red]Error:[/bold red] Invalid configuration: {escape(str(exc))}")
        return EXIT_FAILURE

    reporter = Reporter(level=config.log_level, log_file=config.log_file)
    try:
        return asyncio.run(run(config, reporter))
    except KeyboardInterrupt:
        reporter.error("Interrupted; generated files were rolled back")
        return EXIT_FAILURE


def _plan_tree(label: str, steps: list[ScaffoldStep]) -> Tree:
    tree = Tree(f"[bold]{label}[/bold]")
    for step in steps:
        branch = tree.add(f"[cyan]{step.name}[/cyan] [dim]{step.description}[/dim]")
        for generated in step.files:
            branch.add(generated.path)
    return tree


if __name__ == "__main__":
    sys.exit(main())
