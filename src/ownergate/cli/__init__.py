"""CLI for ownergate.

Commands:
  ownergate check [--repo owner/repo --pr N]
  ownergate owners {--rules FILE | --root DIR} PATH...
  ownergate lint {--rules FILE | --root DIR}
  ownergate serve [--host --port]
"""

from __future__ import annotations

import sys

from ownergate.cli._helpers import _out  # noqa: F401
from ownergate.cli._parser import build_parser
from ownergate.cli.commands import cmd_check, cmd_lint, cmd_owners, cmd_serve
from ownergate.observability import setup_logging

_DISPATCH = {
    "check": cmd_check,
    "owners": cmd_owners,
    "lint": cmd_lint,
    "serve": cmd_serve,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv if argv is not None else sys.argv[1:])

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.log_level, args.log_format)
    return _DISPATCH[args.command](args)


if __name__ == "__main__":
    raise SystemExit(main())
