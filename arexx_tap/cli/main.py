# arexx_tap/cli/main.py
from __future__ import annotations

from typing import Optional

from arexx_tap.core.errors import TapError

from arexx_tap.cli.args import parse_args
from arexx_tap.cli.commands import cmd_run, cmd_show_config


def main(argv: Optional[list[str]] = None) -> int:
    try:
        args = parse_args(argv)

        if args.cmd == "run":
            return cmd_run(args)
        if args.cmd == "show-config":
            return cmd_show_config(args)

        return 2
    except TapError as e:
        print(f"ERROR: {e.message}")
        if e.hint:
            print(f"Hint: {e.hint}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
