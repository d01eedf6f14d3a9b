"""
Command-line interface for the encryptdir tool.

This module orchestrates all other components and provides
the user-facing CLI commands:
- encrypt
- decrypt
- status
- keygen
- help
"""

from __future__ import annotations

import sys
import logging
import argparse
from pathlib import Path
from typing import List, Optional

from .config import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_RSA_BITS,
    TOOL_VERSION,
    get_passphrase,
    load_signing_identity,
    normalize_extension,
)
from .dispatcher import RootDispatcher, RunReport
from .errors import AggregateError, ConfigError, TransformError
from .file_scanner import FileScanner
from .manifest import Manifest, encode_key
from .primitives import SigningIdentity, generate_key
from .rules import KeyRules
from .transformer import Direction, Outcome, Transformer
from .utils import temp_target, write_private_file


# ---------------------------------------------------------------------------
# Color output helpers
# ---------------------------------------------------------------------------


class Colors:
    """ANSI color codes for terminal output."""
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    CYAN = "\033[96m"
    RESET = "\033[0m"
    BOLD = "\033[1m"


def colored(text: str, color: str) -> str:
    """Return colored text for terminal output."""
    return f"{color}{text}{Colors.RESET}"


def print_error(msg: str) -> None:
    """Print error message to stderr."""
    print(colored(f"✗ Error: {msg}", Colors.RED), file=sys.stderr)


def print_success(msg: str) -> None:
    """Print success message."""
    print(colored(f"✓ {msg}", Colors.GREEN))


def print_warning(msg: str) -> None:
    """Print warning message."""
    print(colored(f"⚠ Warning: {msg}", Colors.YELLOW))


def setup_logging(verbose: bool, quiet: bool) -> None:
    level = logging.DEBUG if verbose else logging.ERROR if quiet else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# CLI context
# ---------------------------------------------------------------------------


class CLIContext:
    """Shared context for CLI commands."""

    def __init__(
        self,
        config_path: str,
        workers: Optional[int],
        verbose: bool,
        quiet: bool,
        dry_run: bool,
    ):
        self.config_path = Path(config_path)
        self.workers = workers
        self.verbose = verbose
        self.quiet = quiet
        self.dry_run = dry_run

        # Lazy-loaded
        self._manifest: Optional[Manifest] = None
        self._identity: Optional[SigningIdentity] = None

    @property
    def manifest(self) -> Manifest:
        """Load config lazily."""
        if self._manifest is None:
            self._manifest = Manifest.load(self.config_path)
        return self._manifest

    @property
    def identity(self) -> SigningIdentity:
        """Load signing identity lazily."""
        if self._identity is None:
            self._identity = load_signing_identity(self.manifest.identity)
        return self._identity

    def roots(self, paths: List[str]) -> List[Path]:
        """
        Resolve the directories to operate on.

        Explicit arguments win over the config's 'directories'.
        """

        roots = [Path(p) for p in paths] if paths else list(self.manifest.directories)
        if not roots:
            raise ConfigError("No directories given and none configured")

        missing = [r for r in roots if not r.is_dir()]
        if missing:
            raise ConfigError(
                "Not a directory: " + ", ".join(str(m) for m in missing)
            )
        return roots

    def log(self, msg: str) -> None:
        """Log message if not quiet."""
        if not self.quiet:
            print(msg)

    def log_verbose(self, msg: str) -> None:
        """Log message if verbose."""
        if self.verbose:
            print(colored(f"  → {msg}", Colors.BLUE))


# ---------------------------------------------------------------------------
# Command implementations
# ---------------------------------------------------------------------------


def _print_report(ctx: CLIContext, report: RunReport) -> None:
    for outcome in Outcome:
        count = report.counts[outcome]
        if count:
            ctx.log(f"  {outcome.value.replace('_', ' '):<16} {count}")


def _run(ctx: CLIContext, args: argparse.Namespace, direction: Direction) -> int:
    roots = ctx.roots(args.paths)
    dispatcher = RootDispatcher(
        ctx.identity,
        ctx.manifest.key_map,
        workers=ctx.workers or ctx.manifest.workers,
        dry_run=ctx.dry_run,
    )

    verb = direction.value.capitalize()
    if ctx.dry_run:
        ctx.log(colored("[DRY RUN] No files will be modified", Colors.YELLOW))
    ctx.log(colored(f"{verb}ing {len(roots)} director{'y' if len(roots) == 1 else 'ies'}", Colors.BOLD))
    for root in roots:
        ctx.log_verbose(f"Root: {root}")

    try:
        report = dispatcher.run(roots, direction, timeout=args.timeout)
    except AggregateError as e:
        if e.report is not None:
            _print_report(ctx, e.report)
        for failure in e.failures:
            print_error(str(failure))
        print_warning(f"{len(e.failures)} file(s) failed")
        return 1

    _print_report(ctx, report)
    if report.counts[Outcome.CANCELLED]:
        print_warning("Run stopped before all files were processed")
        return 1

    if ctx.dry_run:
        ctx.log(f"Would {direction.value} {report.counts[Outcome.WOULD_TRANSFORM]} file(s)")
    else:
        print_success(f"{verb}ed {report.transformed} file(s)")
    return 0


def cmd_encrypt(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Encrypt every file whose extension has a key.
    """
    return _run(ctx, args, Direction.ENCRYPT)


def cmd_decrypt(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Decrypt every file whose extension has a key.
    """
    return _run(ctx, args, Direction.DECRYPT)


def cmd_status(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Show which eligible files are encrypted, which are plaintext, and
    which temp files were left behind by interrupted runs.
    """
    roots = ctx.roots(args.paths)
    rules = KeyRules(ctx.manifest.key_map)
    transformer = Transformer(ctx.identity)

    encrypted: List[Path] = []
    plaintext: List[Path] = []
    stale: List[Path] = []
    unreadable: List[Path] = []

    for root in roots:
        for record in FileScanner(root).scan():
            if not record.is_dir and temp_target(record.path) is not None:
                stale.append(record.path)
                continue

            decision = rules.evaluate(record)
            if not decision.eligible:
                continue

            try:
                if transformer.is_ciphertext(record.path, decision.key):
                    encrypted.append(record.path)
                else:
                    plaintext.append(record.path)
            except OSError as e:
                ctx.log_verbose(f"Cannot read {record.path}: {e}")
                unreadable.append(record.path)

    if args.json:
        import json
        output = {
            "encrypted_files": len(encrypted),
            "plaintext_files": len(plaintext),
            "stale_temp_files": [str(p) for p in stale],
            "unreadable_files": [str(p) for p in unreadable],
            "directories": [str(r) for r in roots],
        }
        print(json.dumps(output, indent=2))
    else:
        ctx.log(colored("Encryption Status", Colors.BOLD))
        ctx.log("")
        ctx.log(f"  Directories:      {len(roots)}")
        ctx.log(f"  Encrypted files:  {len(encrypted)}")
        ctx.log(f"  Plaintext files:  {len(plaintext)}")
        if unreadable:
            ctx.log(f"  Unreadable files: {len(unreadable)}")

        if plaintext and ctx.verbose:
            ctx.log("")
            for path in plaintext[:10]:
                ctx.log(f"    - {path}")
            if len(plaintext) > 10:
                ctx.log(f"    ... and {len(plaintext) - 10} more")

        if stale:
            ctx.log("")
            print_warning("Temp files from an interrupted run (files they shadow are skipped until removed):")
            for path in stale:
                ctx.log(f"    - {path}")
        ctx.log("")

    # Exit with error if plaintext remains in CI mode
    if args.ci and (plaintext or stale):
        return 1
    return 0


def cmd_keygen(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Create a signing identity and print a config skeleton with fresh keys.
    """
    identity_path = Path(args.identity)
    if identity_path.exists() and not args.force:
        raise ConfigError(f"{identity_path} already exists (use --force to overwrite)")

    ctx.log_verbose(f"Generating {args.bits}-bit RSA identity")
    identity = SigningIdentity.generate(args.bits)
    write_private_file(identity_path, identity.to_pem(get_passphrase()), overwrite=args.force)
    print_success(f"Wrote signing identity to {identity_path}")

    import yaml
    skeleton = {
        "version": 1,
        "identity": str(identity_path),
        "keys": {normalize_extension(ext): encode_key(generate_key(args.key_size)) for ext in args.ext},
    }
    ctx.log("")
    ctx.log(f"# {DEFAULT_CONFIG_PATH}")
    print(yaml.safe_dump(skeleton, sort_keys=False), end="")
    return 0


def cmd_help(ctx: Optional[CLIContext], args: argparse.Namespace) -> int:
    """
    Show help message.
    """
    help_text = f"""
{colored('encryptdir', Colors.BOLD)} — encrypt and decrypt files in place by extension

{colored('USAGE:', Colors.CYAN)}
  encryptdir [options] <command> [dirs...]

{colored('DESCRIPTION:', Colors.CYAN)}
  encryptdir walks one or more directories and encrypts (or decrypts)
  every file whose extension has a key in the config file. Encrypted
  files start with a signed marker, so running a command twice never
  double-encrypts or double-decrypts anything.

{colored('COMMANDS:', Colors.CYAN)}
  encrypt     Encrypt eligible files in place
  decrypt     Decrypt eligible files in place
  status      Show which eligible files are encrypted
  keygen      Create a signing identity and a config skeleton
  help        Show this help message

{colored('GLOBAL OPTIONS:', Colors.CYAN)}
  -c, --config PATH         Path to config file
                            (default: {DEFAULT_CONFIG_PATH})
  -w, --workers N           Concurrent file workers per directory
  -n, --dry-run             Show what would happen without modifying files
  -v, --verbose             Enable verbose output
  -q, --quiet               Suppress non-error output
  -h, --help                Show this help message and exit

{colored('ENVIRONMENT:', Colors.CYAN)}
  ENCRYPTDIR_IDENTITY       Path to the RSA signing identity (PEM),
                            used when the config file names none
  ENCRYPTDIR_PASSPHRASE     Passphrase protecting the identity

{colored('EXAMPLES:', Colors.CYAN)}
  encryptdir keygen --identity identity.pem --ext txt --ext md
  encryptdir encrypt docs notes
  encryptdir --dry-run decrypt
  encryptdir status --ci

{colored('VERSION:', Colors.CYAN)}
  {TOOL_VERSION}
"""
    print(help_text)
    return 0


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="encryptdir",
        description="Encrypt and decrypt files in place by extension",
        add_help=False,
    )

    # Global options
    parser.add_argument(
        "-c", "--config",
        default=DEFAULT_CONFIG_PATH,
        help="Path to config file",
    )
    parser.add_argument(
        "-w", "--workers",
        type=int,
        help="Concurrent file workers per directory",
    )
    parser.add_argument(
        "-n", "--dry-run",
        action="store_true",
        help="Show what would happen without modifying files",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress non-error output",
    )
    parser.add_argument(
        "-h", "--help",
        action="store_true",
        help="Show help message",
    )

    # Subcommands
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    for name, text in (("encrypt", "Encrypt eligible files"), ("decrypt", "Decrypt eligible files")):
        sub = subparsers.add_parser(name, help=text)
        sub.add_argument("paths", nargs="*", help="Directories to process")
        sub.add_argument("--timeout", type=float, help="Stop starting new files after this many seconds")

    # status command
    status_parser = subparsers.add_parser("status", help="Show encryption state")
    status_parser.add_argument("paths", nargs="*", help="Directories to inspect")
    status_parser.add_argument("--ci", action="store_true", help="Exit non-zero if plaintext remains")
    status_parser.add_argument("--json", action="store_true", help="Output status as JSON")

    # keygen command
    keygen_parser = subparsers.add_parser("keygen", help="Create identity and keys")
    keygen_parser.add_argument("--identity", required=True, help="Where to write the RSA identity")
    keygen_parser.add_argument("--ext", action="append", default=[], help="Extension to generate a key for")
    keygen_parser.add_argument("--bits", type=int, default=DEFAULT_RSA_BITS, help="RSA key size")
    keygen_parser.add_argument("--key-size", type=int, default=32, choices=(16, 24, 32), help="AES key size in bytes")
    keygen_parser.add_argument("--force", action="store_true", help="Overwrite an existing identity")

    # help command
    subparsers.add_parser("help", help="Show help message")

    return parser


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Show help if requested or no command
    if args.help or not args.command:
        return cmd_help(None, args)

    if args.workers is not None and args.workers < 1:
        print_error("--workers must be at least 1")
        return 1

    setup_logging(args.verbose, args.quiet)

    # Build context
    ctx = CLIContext(
        config_path=args.config,
        workers=args.workers,
        verbose=args.verbose,
        quiet=args.quiet,
        dry_run=args.dry_run,
    )

    # Dispatch to command
    commands = {
        "encrypt": cmd_encrypt,
        "decrypt": cmd_decrypt,
        "status": cmd_status,
        "keygen": cmd_keygen,
        "help": cmd_help,
    }

    cmd_func = commands.get(args.command)
    if not cmd_func:
        print_error(f"Unknown command: {args.command}")
        return 1

    try:
        return cmd_func(ctx, args)
    except KeyboardInterrupt:
        print_error("Interrupted")
        return 130
    except (ConfigError, TransformError) as e:
        print_error(str(e))
        return 1
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
