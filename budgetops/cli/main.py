#!/usr/bin/env python3
"""CLI for the Budget Analyzer workspace tooling."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys

from budgetops.core import (
    Console,
    ManifestError,
    MarkdownValidator,
    NullConsole,
    RepoStatusChecker,
    RepoSync,
    UnknownServiceError,
    WorkspaceLayout,
    WorkspaceManifest,
    WorkspaceRelease,
    WorkspaceRootError,
    load_manifest,
    resolve_workspace_root,
)

LOG_ENV = "BUDGETOPS_LOG"


def configure_logging(verbose: bool = False) -> None:
    level_name = "DEBUG" if verbose else os.environ.get(LOG_ENV, "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )


def _manifest(args: argparse.Namespace) -> WorkspaceManifest:
    try:
        return load_manifest(args.manifest)
    except ManifestError as exc:
        raise SystemExit(f"[budgetops] Invalid workspace manifest:\n{exc}") from exc


def _layout(args: argparse.Namespace) -> WorkspaceLayout:
    manifest = _manifest(args)
    try:
        root = resolve_workspace_root(args.workspace_root)
    except WorkspaceRootError as exc:
        raise SystemExit(f"[budgetops] {exc}") from exc
    return WorkspaceLayout(root, manifest)


def _ask(question: str) -> bool:
    # Prompt on stderr so --json output stays parseable.
    sys.stderr.write(f"{question} (y/N) ")
    sys.stderr.flush()
    return sys.stdin.readline()[:1] in ("y", "Y")


def _release(args: argparse.Namespace) -> WorkspaceRelease:
    layout = _layout(args)
    return WorkspaceRelease(
        layout.manifest,
        layout.root,
        console=NullConsole() if args.json else Console(),
        confirm=(lambda _question: True) if getattr(args, "yes", False) else _ask,
    )


def _emit(args: argparse.Namespace, report) -> int:
    if args.json:
        print(json.dumps(report.as_dict(), indent=2))
    return 0 if report.ok else 1


def clone_repos(args: argparse.Namespace) -> int:
    layout = _layout(args)
    console = NullConsole() if args.json else Console()
    report = RepoSync(layout.manifest, layout.root, console=console).run()
    if args.json:
        print(json.dumps(report.as_dict(), indent=2))
    return 0 if report.ok else 1


def validate_markdown(args: argparse.Namespace) -> int:
    layout = _layout(args)
    console = NullConsole() if args.json else Console()
    report = MarkdownValidator(layout.manifest, layout.root, console=console).validate()
    if args.json:
        print(json.dumps(report.as_dict(), indent=2))
    return 0 if report.ok else 1


def validate_repos(args: argparse.Namespace) -> int:
    layout = _layout(args)
    console = NullConsole() if args.json else Console()
    checker = RepoStatusChecker(
        layout.manifest,
        layout.root,
        console=console,
        branch=args.branch,
        fetch=not args.no_fetch,
    )
    report = checker.check()
    if args.json:
        print(json.dumps(report.as_dict(), indent=2))
    return 0 if report.ok else 1


def repo_path(args: argparse.Namespace) -> int:
    print(_layout(args).get_repo_path(args.name))
    return 0


def service_port(args: argparse.Namespace) -> int:
    layout = _layout(args)
    lookup = layout.debug_port if args.debug else layout.service_port
    try:
        port = lookup(args.service)
    except UnknownServiceError:
        kind = "debug" if args.debug else "service"
        print(f"[budgetops] No {kind} port mapped for '{args.service}'", file=sys.stderr)
        return 1
    print(port)
    return 0


def checkout_main(args: argparse.Namespace) -> int:
    return _emit(args, _release(args).checkout_main(pull=args.pull))


def checkout_tag(args: argparse.Namespace) -> int:
    return _emit(args, _release(args).checkout_tag(args.tag))


def tag_release(args: argparse.Namespace) -> int:
    return _emit(args, _release(args).tag_release(args.version))


def tilt_config(args: argparse.Namespace) -> int:
    print(json.dumps(_layout(args).tilt_settings(), indent=2))
    return 0


def lint_manifest(args: argparse.Namespace) -> int:
    manifest = _manifest(args)
    summary = manifest.summary()
    if args.json:
        print(json.dumps(summary, indent=2))
        return 0
    console = Console()
    console.info(f"{len(manifest.repositories)} repositories declared")
    for warning in summary["warnings"]:
        console.warning(warning)
    if not summary["warnings"]:
        console.success("Port tables match the repository list")
    return 0


COMMANDS = {
    "clone": clone_repos,
    "validate-markdown": validate_markdown,
    "validate-repos": validate_repos,
    "checkout-main": checkout_main,
    "checkout-tag": checkout_tag,
    "tag-release": tag_release,
    "repo-path": repo_path,
    "port": service_port,
    "tilt-config": tilt_config,
    "lint-manifest": lint_manifest,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="budgetops", description=__doc__)
    parser.add_argument(
        "--manifest",
        help="Workspace manifest (defaults to $BUDGETOPS_MANIFEST or the bundled copy)",
    )
    parser.add_argument(
        "--workspace-root",
        help="Directory holding the sibling repositories (Tilt's main-dir)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    clone = subparsers.add_parser(
        "clone", help="Clone missing sibling repositories"
    )
    clone.add_argument("--json", action="store_true", help="Emit a JSON report")

    markdown = subparsers.add_parser(
        "validate-markdown", help="Validate @references in markdown files"
    )
    markdown.add_argument("--json", action="store_true", help="Emit a JSON report")

    repos = subparsers.add_parser(
        "validate-repos", help="Check repositories are clean and up to date"
    )
    repos.add_argument("--branch", default="main", help="Expected branch")
    repos.add_argument(
        "--no-fetch", action="store_true", help="Skip fetching from origin"
    )
    repos.add_argument("--json", action="store_true", help="Emit a JSON report")

    main_branch = subparsers.add_parser(
        "checkout-main", help="Switch every repository back to main"
    )
    main_branch.add_argument(
        "--pull", action="store_true", help="Pull latest changes after checkout"
    )
    main_branch.add_argument("-y", "--yes", action="store_true", help="Skip confirmation")
    main_branch.add_argument("--json", action="store_true", help="Emit a JSON report")

    tag = subparsers.add_parser(
        "checkout-tag", help="Check out a tag in every repository"
    )
    tag.add_argument("tag", help="Tag name")
    tag.add_argument("--json", action="store_true", help="Emit a JSON report")

    release = subparsers.add_parser(
        "tag-release", help="Tag every repository with a version and push the tags"
    )
    release.add_argument("version", help="Release version, e.g. v1.2.1")
    release.add_argument("-y", "--yes", action="store_true", help="Skip confirmation")
    release.add_argument("--json", action="store_true", help="Emit a JSON report")

    path = subparsers.add_parser("repo-path", help="Print a sibling repository path")
    path.add_argument("name", help="Repository name")

    port = subparsers.add_parser("port", help="Print the port mapped to a service")
    port.add_argument("service", help="Service name")
    port.add_argument(
        "--debug", action="store_true", help="Print the JDWP debug port instead"
    )

    subparsers.add_parser("tilt-config", help="Print paths and ports for Tilt as JSON")

    lint = subparsers.add_parser(
        "lint-manifest", help="Validate the manifest and report port/repo drift"
    )
    lint.add_argument("--json", action="store_true", help="Emit JSON")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    return COMMANDS[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
