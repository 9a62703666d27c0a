"""
efile - Command Line Entry Point

Usage:
    efile enc PATH [PATH ...] [-q] [-k KEY]
    efile dec PATH [PATH ...] [-q] [-k KEY]
    efile enc --batch PATH [PATH ...] KEY
    efile version

Key input:
    -k/--key KEY      key on the command line
    --batch           last positional argument is the key, no prompts
    (default)         masked prompt

A single path outside batch mode stops at the first error and exits 1.
Several paths, or batch mode, run everything and print a summary; the
per-path errors are shown with --details (or after a y/n question when
interactive). Transform failures do not change the exit status there.
"""

import argparse
import getpass
import logging
import sys
from typing import List, Optional, Tuple

from colorama import Fore, Style, deinit, init

from . import __version__
from .config import TransformConfig, configure_logging
from .errors import TransformError
from .tree import ErrorReport, Mode, Orchestrator


class UsageError(Exception):
    """Bad command line input."""
    pass


class _Parser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on malformed commands."""

    def error(self, message):
        self.print_usage(sys.stderr)
        print(f"efile error: {message}", file=sys.stderr)
        sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    """Build the efile argument parser."""
    parser = _Parser(
        prog="efile",
        description="efile is a CLI tool to encrypt and decrypt files.",
    )
    subparsers = parser.add_subparsers(dest="command", parser_class=_Parser)

    _add_transform_command(subparsers, "enc", "Encrypt a file or folder")
    _add_transform_command(subparsers, "dec", "Decrypt a file or folder")

    subparsers.add_parser("version", help="Print the version number of efile")
    return parser


def _add_transform_command(subparsers, name: str, help_text: str) -> None:
    cmd = subparsers.add_parser(name, help=help_text, description=help_text + ".")
    cmd.add_argument("paths", nargs="+", metavar="PATH",
                     help="files or folders (in --batch mode the last one is the key)")
    cmd.add_argument("-q", "--quiet", action="store_true", default=None,
                     help="suppress output")
    cmd.add_argument("-k", "--key", help="key (prompted for if omitted)")
    cmd.add_argument("-b", "--batch", action="store_true",
                     help="non-interactive: last positional argument is the key")
    cmd.add_argument("--details", action="store_true",
                     help="print every per-path error after the summary")
    cmd.add_argument("-w", "--workers", type=int, default=None,
                     help="size of the file worker pool")

    scope = cmd.add_mutually_exclusive_group()
    scope.add_argument("--names-only", action="store_true",
                       help="transform file and folder names only")
    scope.add_argument("--content-only", action="store_true",
                       help="transform file contents only")

    cmd.add_argument("--debug", action="store_true", help="enable debug logging")
    cmd.add_argument("--log-file", help="also write log records to this file")


def resolve_key(args: argparse.Namespace) -> Tuple[List[str], str]:
    """
    Split positional arguments into paths and the key.

    Returns:
        (paths, key)

    Raises:
        UsageError: No paths or an empty key
    """
    paths = list(args.paths)
    if args.key is not None:
        key = args.key
    elif args.batch:
        if len(paths) < 2:
            raise UsageError("batch mode needs at least one path followed by the key")
        paths, key = paths[:-1], paths[-1]
    else:
        key = getpass.getpass("Enter key: ")

    if not key:
        raise UsageError("key must not be empty")
    return paths, key


def build_config(args: argparse.Namespace) -> TransformConfig:
    """TransformConfig from environment plus command-line flags."""
    return TransformConfig.from_env(
        quiet=args.quiet,
        names=not args.content_only,
        contents=not args.names_only,
        max_workers=args.workers,
    )


def print_report(report: ErrorReport, mode: Mode, show_details: bool,
                 interactive: bool) -> None:
    """Print the post-run summary and, if wanted, the per-path errors."""
    if report.ok:
        print(Fore.GREEN + report.summary())
        return

    action = "Encryption" if mode is Mode.ENCRYPT else "Decryption"
    print(Fore.YELLOW + f"{action} finished with {report.summary()}, "
                        f"please check your key and try again.")

    if not show_details and interactive:
        answer = _ask("Do you want to check them out? [y/n] ")
        show_details = answer.strip().lower() in ("y", "yes")

    if show_details:
        for entry_error in report:
            print(Fore.RED + f"{action} error: {entry_error}")


def _ask(prompt: str) -> str:
    try:
        return input(prompt)
    except EOFError:
        return ""


def run_transform(args: argparse.Namespace, mode: Mode) -> int:
    """Run enc/dec. Returns the process exit status."""
    configure_logging(logging.DEBUG if args.debug else logging.WARNING, args.log_file)

    try:
        paths, key = resolve_key(args)
        config = build_config(args)
    except (UsageError, ValueError) as exc:
        print(Fore.RED + f"efile error: {exc}", file=sys.stderr)
        return 1

    orchestrator = Orchestrator(key, config)

    if len(paths) == 1 and not args.batch:
        try:
            orchestrator.transform_one(paths[0], mode)
        except TransformError as exc:
            print(Fore.RED + f"Error: {exc}", file=sys.stderr)
            return 1
        print(Fore.GREEN + "All done no error")
        return 0

    report = orchestrator.run(paths, mode)
    print_report(report, mode, args.details, interactive=not args.batch)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for efile."""
    parser = build_parser()
    args = parser.parse_args(argv)

    init(autoreset=True)
    try:
        if args.command == "version":
            print(f"efile version {__version__}")
            return 0
        if args.command == "enc":
            return run_transform(args, Mode.ENCRYPT)
        if args.command == "dec":
            return run_transform(args, Mode.DECRYPT)

        parser.print_help()
        print(Style.DIM + "\nRun 'efile enc PATH' to encrypt or 'efile dec PATH' to decrypt.")
        return 0
    finally:
        deinit()


if __name__ == "__main__":
    sys.exit(main())
