"""Command line toolbox to download, check and sample the Federal Revenue data."""

from __future__ import annotations

import argparse
import logging
import os
import re
import sys
from datetime import timedelta
from decimal import Decimal

from minhareceita.check import CheckError, check, check_checksum, create_checksum
from minhareceita.download import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MAX_PARALLEL,
    DEFAULT_MAX_RETRIES,
    DownloadError,
    download,
    urls,
)
from minhareceita.sample import MAX_LINES, TARGET_DIR, sample

DEFAULT_DATA_DIR = "data"
DEFAULT_TIMEOUT = "3m0s"

HELP = """Minha Receita.

Toolbox to manage Minha Receita, including tools to handle extract, transform
and load data.

See --help for more details."""

DOWNLOAD_HELP = """Downloads the required ZIP and Excel files.

The main files are downloaded from the official website of the Brazilian
Federal Revenue. An extra file is downloaded from the National Treasure. Since
the server is extremely slow, all files are downloaded using multiple HTTP
requests with small content ranges."""

URLS_HELP = """Shows the URLs of the required ZIP and Excel files.

The main files are downloaded from the official website of the Brazilian
Federal Revenue. An extra file is downloaded from the National Treasure."""

CHECK_HELP = """Checks the integrity of the downloaded ZIP files.

The main files downloaded from the official website of the Brazilian
Federal Revenue are ZIP files. This command tries to unarchive them to check
their integrity."""

CHECKSUM_HELP = """Checksum of the downloaded files.

Even though the official website of the Brazilian Federal Revenue does not offer
a checksum for their files, this command can be used to create or check the
checksum of downloaded files."""

SAMPLE_HELP = """Creates versions of the source files from the Federal Revenue with a
limited number of lines, allowing us to manually test the process quicker."""

_UNITS = {
    "ns": Decimal("0.000000001"),
    "us": Decimal("0.000001"),
    "µs": Decimal("0.000001"),
    "μs": Decimal("0.000001"),
    "ms": Decimal("0.001"),
    "s": Decimal(1),
    "m": Decimal(60),
    "h": Decimal(3600),
}
_COMPONENT = r"([0-9]+\.?[0-9]*|\.[0-9]+)(ns|us|µs|μs|ms|s|m|h)"
_DURATION = re.compile(f"(?:{_COMPONENT})+")
_PART = re.compile(_COMPONENT)


def assert_dir_exists(directory) -> str:
    """Return ``directory`` as a string if it is an existing directory."""
    path = os.fspath(directory)
    if not os.path.exists(path):
        raise FileNotFoundError(f"directory {path} does not exist")
    if not os.path.isdir(path):
        raise NotADirectoryError(f"{path} is not a directory")
    return path


def parse_duration(value: str) -> timedelta:
    """Parse a duration such as ``3m0s``, ``1h30m`` or ``1.5s``."""
    text = value
    negative = False
    if text[:1] in ("+", "-") and text:
        negative = text[0] == "-"
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not text or not _DURATION.fullmatch(text):
        raise ValueError(f"invalid duration {value!r}")
    seconds = sum(
        (Decimal(number) * _UNITS[unit] for number, unit in _PART.findall(text)),
        Decimal(0),
    )
    if negative:
        seconds = -seconds
    return timedelta(seconds=float(seconds))


def _add_data_dir(parser: argparse.ArgumentParser, help_text: str) -> None:
    parser.add_argument(
        "-d", "--directory", default=DEFAULT_DATA_DIR, help=help_text
    )


def _run_download(args: argparse.Namespace) -> None:
    directory = assert_dir_exists(args.directory)
    timeout = parse_duration(args.timeout)
    download(
        directory,
        timeout,
        args.skip,
        args.restart,
        args.parallel,
        args.retries,
        args.chunk_size,
    )


def _run_urls(args: argparse.Namespace) -> None:
    if args.skip:
        assert_dir_exists(args.directory)
    urls(args.directory, args.skip)


def _run_check(args: argparse.Namespace) -> None:
    check(assert_dir_exists(args.directory), args.delete)


def _run_checksum_create(args: argparse.Namespace) -> None:
    create_checksum(assert_dir_exists(args.directory))


def _run_checksum_check(args: argparse.Namespace) -> None:
    target = assert_dir_exists(args.directory)
    check_checksum(args.src_directory, target)


def _run_sample(args: argparse.Namespace) -> None:
    source = assert_dir_exists(args.directory)
    sample(source, args.target_directory, args.max_lines, args.updated_at)


def _help_for(parser: argparse.ArgumentParser):
    def show(_: argparse.Namespace) -> None:
        parser.print_help()

    return show


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all sub-commands."""
    formatter = argparse.RawDescriptionHelpFormatter
    parser = argparse.ArgumentParser(
        prog="minha-receita", description=HELP, formatter_class=formatter
    )
    parser.set_defaults(handler=_help_for(parser))
    commands = parser.add_subparsers(dest="command", metavar="<command>")

    dl = commands.add_parser(
        "download",
        help="Downloads the required ZIP and Excel files",
        description=DOWNLOAD_HELP,
        formatter_class=formatter,
    )
    _add_data_dir(dl, "directory of the downloaded files")
    dl.add_argument(
        "-x", "--skip", action="store_true", help="skip the download of existing files"
    )
    dl.add_argument(
        "-t", "--timeout", default=DEFAULT_TIMEOUT, help="timeout for each download"
    )
    dl.add_argument(
        "-r",
        "--retries",
        type=int,
        default=DEFAULT_MAX_RETRIES,
        help="maximum retries per download, use -1 for unlimited",
    )
    dl.add_argument(
        "-p",
        "--parallel",
        type=int,
        default=DEFAULT_MAX_PARALLEL,
        help="maximum parallel downloads",
    )
    dl.add_argument(
        "-c",
        "--chunk-size",
        type=int,
        default=DEFAULT_CHUNK_SIZE,
        help="max length of the bytes range for each HTTP request",
    )
    dl.add_argument(
        "-e",
        "--restart",
        action="store_true",
        help="restart all downloads from the beginning",
    )
    dl.set_defaults(handler=_run_download)

    url_list = commands.add_parser(
        "urls",
        help="Shows the URLs for the required ZIP and Excel files",
        description=URLS_HELP,
        formatter_class=formatter,
    )
    _add_data_dir(url_list, "directory of the downloaded files, used only with --skip")
    url_list.add_argument(
        "-x", "--skip", action="store_true", help="skip the download of existing files"
    )
    url_list.set_defaults(handler=_run_urls)

    chk = commands.add_parser(
        "check",
        help="Checks the integrity of downloaded ZIP files",
        description=CHECK_HELP,
        formatter_class=formatter,
    )
    _add_data_dir(chk, "directory of the downloaded files")
    chk.add_argument(
        "-x",
        "--delete",
        action="store_true",
        help="deletes ZIP files that fails the check",
    )
    chk.set_defaults(handler=_run_check)
    chk_commands = chk.add_subparsers(dest="check_command", metavar="<command>")

    checksum = chk_commands.add_parser(
        "checksum",
        help="Checksum of the downloaded files.",
        description=CHECKSUM_HELP,
        formatter_class=formatter,
    )
    checksum.set_defaults(handler=_help_for(checksum))
    checksum_commands = checksum.add_subparsers(
        dest="checksum_command", metavar="<command>"
    )

    create = checksum_commands.add_parser(
        "create", help="Creates checksum of downloaded files."
    )
    _add_data_dir(create, "directory of the downloaded files")
    create.set_defaults(handler=_run_checksum_create)

    compare = checksum_commands.add_parser(
        "check", help="Checks checksum of downloaded files."
    )
    _add_data_dir(compare, "directory of the downloaded files")
    compare.add_argument(
        "-s",
        "--src-directory",
        default=DEFAULT_DATA_DIR,
        help="directory of the checksum file(s) to compare with",
    )
    compare.set_defaults(handler=_run_checksum_check)

    smp = commands.add_parser(
        "sample",
        help="Creates sample data of the source files from the Federal Revenue",
        description=SAMPLE_HELP,
        formatter_class=formatter,
    )
    _add_data_dir(smp, "directory of the downloaded files")
    smp.add_argument(
        "-m",
        "--max-lines",
        type=int,
        default=MAX_LINES,
        help="maximum lines per file",
    )
    smp.add_argument(
        "-t",
        "--target-directory",
        default=os.path.join(DEFAULT_DATA_DIR, TARGET_DIR),
        help="directory for the sample CSV files",
    )
    smp.add_argument(
        "-u",
        "--updated-at",
        default="",
        help="updated at date to be used if the data directory does not have a "
        "updated_at.txt file, format YYYY-MM-DD",
    )
    smp.set_defaults(handler=_run_sample)

    return parser


def main(argv=None) -> int:
    """Run the command line tool and return its exit status."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
    args = build_parser().parse_args(argv)
    try:
        args.handler(args)
    except (CheckError, DownloadError, ValueError, OSError) as err:
        print(err, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())