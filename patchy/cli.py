from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from .commands import branch_fetch, gen_patches, init_config, pr_fetch
from .config import CONFIG_FILE, Settings, load_config
from .errors import PatchyError
from .github import make_client
from .gitutils import find_git_root
from .interact import confirm_prompt
from .reporting import summarize_run
from .run import RunOrchestrator


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="patchy",
        description="Declaratively manage a personal fork by merging pull requests, "
        "branches and patches onto a fresh copy of an upstream branch.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    parser.add_argument(
        "--use-gh-cli",
        action="store_true",
        help="Query GitHub through the `gh` CLI instead of plain HTTPS requests.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="Create the example config file.")
    init_parser.add_argument(
        "-y", "--yes", action="store_true", help="Overwrite an existing config without asking."
    )

    run_parser = subparsers.add_parser("run", help="Rebuild the local branch from the config.")
    run_parser.add_argument(
        "-y",
        "--yes",
        action="store_true",
        help="Overwrite the local branch without asking for confirmation.",
    )

    gen_parser = subparsers.add_parser("gen-patch", help="Save commits as .patch files.")
    gen_parser.add_argument("commits", nargs="+", help="Commit hashes to turn into patches.")
    gen_parser.add_argument(
        "-n", "--patch-filename", help="Custom patch name (only with a single commit)."
    )

    pr_parser = subparsers.add_parser("pr-fetch", help="Fetch pull requests into local branches.")
    pr_parser.add_argument(
        "pull_requests", nargs="+", help="Pull request numbers, optionally `<number>@<commit>`."
    )
    pr_parser.add_argument(
        "-r", "--repo-name", help="owner/repo to fetch from (defaults to the `origin` remote)."
    )
    pr_parser.add_argument(
        "-b", "--branch-name", help="Local branch name (only with a single pull request)."
    )
    pr_parser.add_argument(
        "-c", "--checkout", action="store_true", help="Check out the first fetched branch."
    )

    branch_parser = subparsers.add_parser("branch-fetch", help="Fetch remote branches locally.")
    branch_parser.add_argument(
        "branches", nargs="+", help="Branches as `owner/repo/branch`, optionally `@<commit>`."
    )
    branch_parser.add_argument(
        "-c", "--checkout", action="store_true", help="Check out the first fetched branch."
    )

    return parser


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def run(args: argparse.Namespace, settings: Settings | None = None) -> int:
    configure_logging(args.verbose)
    logging.debug("Arguments: %s", args)

    if settings is None:
        settings = Settings.from_env(find_git_root(Path.cwd()), use_gh_cli=args.use_gh_cli)

    if args.command == "init":
        init_config(settings, overwrite=True if args.yes else None)
        return 0
    if args.command == "run":
        return _run_flow(args, settings)
    if args.command == "gen-patch":
        gen_patches(settings, args.commits, args.patch_filename)
        return 0
    if args.command == "pr-fetch":
        pr_fetch(
            settings,
            make_client(settings.use_gh_cli),
            args.pull_requests,
            repo=args.repo_name,
            branch_name=args.branch_name,
            checkout=args.checkout,
        )
        return 0
    if args.command == "branch-fetch":
        branch_fetch(
            settings,
            make_client(settings.use_gh_cli),
            args.branches,
            checkout=args.checkout,
        )
        return 0
    raise PatchyError(f"Unknown command: {args.command}")


def _run_flow(args: argparse.Namespace, settings: Settings) -> int:
    if not settings.config_file.exists():
        logging.error(
            "Could not find configuration file at %s/%s", settings.config_dir_name, CONFIG_FILE
        )
        # never prompt with --yes, it is meant for scripts
        if args.yes:
            logging.info("You can create it with `patchy init`")
        elif confirm_prompt("Would you like us to run `patchy init` to initialize it?"):
            init_config(settings)
        return 0

    config = load_config(settings)
    orchestrator = RunOrchestrator(settings, make_client(settings.use_gh_cli))
    try:
        report = orchestrator.run(config, yes=args.yes)
    finally:
        logging.info("\n%s", summarize_run(orchestrator.report, config.local_branch))
    if report.failures:
        logging.warning(
            "%d item(s) could not be merged: %s",
            len(report.failures),
            ", ".join(report.failed_items),
        )
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return run(args)
    except PatchyError as exc:
        logging.error("%s", exc)
        return 2
    except KeyboardInterrupt:
        logging.error("Interrupted")
        return 130


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
