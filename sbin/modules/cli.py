# CLI argument parsing for sbin

import argparse
import sys

from sbin import config


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="sbin",
        description="Fetch a program from its Docker image and install it to /usr/local/bin.",
    )
    p.add_argument(
        "program",
        nargs="?",
        help=f"Program to install (image {config.DEFAULT_NAMESPACE}/<program>:{config.DEFAULT_TAG}), "
             "or namespace/name:tag",
    )
    p.add_argument(
        "--out", "-o",
        dest="out",
        default=config.DEFAULT_OUT_DIR,
        help=f"Output directory (default: {config.DEFAULT_OUT_DIR})",
    )
    p.add_argument(
        "--temp", "-t",
        dest="temp",
        default=config.DEFAULT_TEMP_DIR,
        help=f"Base temporary directory (default: {config.DEFAULT_TEMP_DIR})",
    )
    p.add_argument(
        "--platform", "-p",
        dest="platform",
        default=config.DEFAULT_PLATFORM,
        help=f"Platform to pick from multi-arch images (default: {config.DEFAULT_PLATFORM})",
    )
    p.add_argument(
        "--force", "-F",
        action="store_true",
        help="Reinstall the same version and upgrade without prompting",
    )
    p.add_argument(
        "--yes", "-y",
        action="store_true",
        help="Answer yes to the upgrade prompt",
    )
    p.add_argument(
        "--list", "-L",
        dest="list_installed",
        action="store_true",
        help="List programs in the output directory and exit",
    )
    p.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON",
    )
    p.add_argument(
        "--log-file", "-l",
        dest="log_file",
        help="Path to save a complete log of output",
    )
    p.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress detailed progress output",
    )
    return p


def parse_args(argv=None):
    p = build_parser()
    args = p.parse_args(argv)
    # Show help if no mode selected
    if not args.program and not args.list_installed:
        p.print_help()
        sys.exit(0)
    return args
