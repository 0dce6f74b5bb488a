"""Argparse parser definition for the ownergate CLI."""

from __future__ import annotations

import argparse
import os


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ownergate",
        description="Code owner approval gate for pull requests",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("OWNERGATE_LOG_LEVEL", "INFO"),
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=["json", "text"],
        default=os.environ.get("OWNERGATE_LOG_FORMAT", "json"),
    )
    sub = parser.add_subparsers(dest="command")

    _register_check_command(sub)
    _register_local_commands(sub)
    _register_server_commands(sub)

    return parser


def _add_rules_source(p: argparse.ArgumentParser) -> None:
    group = p.add_mutually_exclusive_group()
    group.add_argument("--rules", help="Path to a CODEOWNERS file")
    group.add_argument("--root", default=".", help="Repository checkout to search for CODEOWNERS")


def _register_check_command(sub: argparse._SubParsersAction) -> None:
    p = sub.add_parser("check", help="Check code owner approvals for a pull request on GitHub")
    p.add_argument("--repo", help="owner/repo (default: GitHub Actions environment)")
    p.add_argument("--pr", type=int, help="Pull request number (requires --repo)")
    p.add_argument("--include-deleted", action="store_true",
                   help="Also require owners of removed files")
    p.add_argument("--no-publish", action="store_true",
                   help="Evaluate only; do not post a check run or comment")


def _register_local_commands(sub: argparse._SubParsersAction) -> None:
    p = sub.add_parser("owners", help="Resolve owners for file paths against a local CODEOWNERS")
    _add_rules_source(p)
    p.add_argument("files", nargs="+", help="Repo-relative file paths")

    p = sub.add_parser("lint", help="Parse a CODEOWNERS file and report malformed lines")
    _add_rules_source(p)


def _register_server_commands(sub: argparse._SubParsersAction) -> None:
    p = sub.add_parser("serve", help="Run the GitHub webhook server")
    p.add_argument("--host", default=os.environ.get("OWNERGATE_HOST", "0.0.0.0"))
    p.add_argument("--port", type=int, default=int(os.environ.get("OWNERGATE_PORT", "8080")))
