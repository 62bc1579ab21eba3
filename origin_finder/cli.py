"""
Origin Finder - Checks which candidate IPs actually serve a URL behind a CDN
Compares a baseline response with the same request sent straight to each IP
"""

import argparse
import logging
import sys
from typing import List

from .config import (
    DEFAULT_LIMIT,
    DEFAULT_THRESHOLD,
    DEFAULT_TIMEOUT,
    DEFAULT_URL,
    DEFAULT_WORKERS,
    ProbeConfig,
)
from .finder import OriginFinder
from .useragents import random_user_agent

# Fix Windows console encoding issues
if sys.platform == 'win32':
    try:
        sys.stdout.reconfigure(encoding='utf-8')
        sys.stderr.reconfigure(encoding='utf-8')
    except AttributeError:
        pass

BANNER = r"""
  ___       _       _         _____ _           _
 / _ \ _ __(_) __ _(_)_ __   |  ___(_)_ __   __| | ___ _ __
| | | | '__| |/ _` | | '_ \  | |_  | | '_ \ / _` |/ _ \ '__|
| |_| | |  | | (_| | | | | | |  _| | | | | | (_| |  __/ |
 \___/|_|  |_|\__, |_|_| |_| |_|   |_|_| |_|\__,_|\___|_|
              |___/
"""


def read_candidates(stream) -> List[str]:
    """Split raw input into lines, CRLF and LF alike"""
    return stream.read().replace('\r\n', '\n').split('\n')


def load_ips_from_file(filepath: str) -> List[str]:
    """Load candidate lines from a file"""
    try:
        with open(filepath, 'r', encoding='utf-8', errors='replace', newline='') as f:
            return read_candidates(f)
    except FileNotFoundError:
        print(f"Error: File '{filepath}' not found", file=sys.stderr)
        sys.exit(1)
    except OSError as e:
        print(f"Error reading file: {e}", file=sys.stderr)
        sys.exit(1)


def load_ips_from_stdin() -> List[str]:
    try:
        return read_candidates(sys.stdin)
    except OSError as e:
        print(f"Error reading standard input: {e}", file=sys.stderr)
        sys.exit(1)


def setup_logging(level: int = logging.INFO):
    """Diagnostics go to stderr, bare messages"""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter('%(message)s'))
    root = logging.getLogger('origin_finder')
    root.handlers[:] = [handler]
    root.setLevel(level)
    root.propagate = False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='origin-finder',
        description='Origin Finder - Check which IPs serve a URL behind a CDN/proxy',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --url https://example.com --file ips.txt
  cat ips.txt | %(prog)s --url https://example.com --perc 80
  %(prog)s -u https://example.com -f ips.txt --threads 50 --show
        """
    )

    parser.add_argument(
        '--url', '-u',
        default=DEFAULT_URL,
        help=f'URL to check (default: {DEFAULT_URL})'
    )

    parser.add_argument(
        '--file', '-f',
        help='File containing candidate IPs, one per line (default: stdin)'
    )

    parser.add_argument(
        '--mbits',
        type=int,
        default=DEFAULT_LIMIT,
        help=f'Compare only the first MBITS bytes of each response (default: {DEFAULT_LIMIT})'
    )

    parser.add_argument(
        '--perc',
        type=int,
        default=DEFAULT_THRESHOLD,
        help=f'Match above PERC percent similarity (default: {DEFAULT_THRESHOLD})'
    )

    parser.add_argument(
        '--threads',
        type=int,
        default=DEFAULT_WORKERS,
        help=f'Number of concurrent threads (default: {DEFAULT_WORKERS})'
    )

    parser.add_argument(
        '--timeout', '-t',
        type=float,
        default=DEFAULT_TIMEOUT,
        help=f'Request timeout in seconds (default: {DEFAULT_TIMEOUT:g})'
    )

    parser.add_argument(
        '--ua',
        help='User-Agent to send (default: a random browser user agent)'
    )

    parser.add_argument(
        '--show',
        action='store_true',
        help='Show the compared response samples'
    )

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='Only print warnings and results'
    )
    verbosity.add_argument(
        '--debug',
        action='store_true',
        help='Print debug diagnostics'
    )

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.WARNING if args.quiet else logging.DEBUG if args.debug else logging.INFO
    setup_logging(level)
    logger = logging.getLogger('origin_finder')

    try:
        config = ProbeConfig(
            url=args.url,
            user_agent=args.ua or random_user_agent(),
            timeout=args.timeout,
            limit=args.mbits,
            threshold=args.perc,
            workers=args.threads,
            show_samples=args.show,
        )
    except ValueError as e:
        parser.error(str(e))

    logger.info(BANNER)
    logger.info("[*] Starting on %s with UA %s", config.url, config.user_agent)

    if args.file:
        lines = load_ips_from_file(args.file)
    else:
        lines = load_ips_from_stdin()

    OriginFinder(config).scan(lines)
    logger.info("[*] Scan complete")

