# arexx_tap/cli/args.py
from __future__ import annotations

import argparse
from typing import Optional


def positive_int(v: str) -> int:
    n = int(v)
    if n <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {v!r}")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="arexx-tap",
        description="Read temperatures from an Arexx logger base station and forward them to sinks.",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-c", "--config", default=None, help="YAML config file (defaults apply if omitted).")

    p_run = sub.add_parser("run", parents=[common], help="Poll the device and dispatch readings.")
    p_run.add_argument(
        "--port",
        default=None,
        help="Use this serial port instead of the USB bulk device (overrides device.port).",
    )
    p_run.add_argument(
        "--start-time",
        default=None,
        help="Device clock on first handshake: 'HH:MM:SS', 'YYYY-MM-DD' or 'YYYY-MM-DD HH:MM:SS' (local).",
    )
    p_run.add_argument("--polls", type=positive_int, default=None, help="Stop after this many polls.")

    sub.add_parser("show-config", parents=[common], help="Print the effective configuration.")

    return parser


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)
