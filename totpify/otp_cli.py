#!/usr/bin/env python3
"""
otp_cli.py: command line front end for totpify.

Subcommands:
- generate      : print the current TOTP code for a secret
- verify        : check a code (exit 0 valid, 1 invalid)
- qrcode        : otpauth QR code as a data URL, or saved to a PNG file
- create-secret : print a new random secret
- uri           : print the otpauth:// URI
- hotp          : print the HOTP code for an explicit counter
- watch         : live TOTP codes for SHA-1/256/512 until Ctrl+C

Every validation failure exits with status 1.
"""

import argparse
import logging
import os
import sys
import time

from . import otp_core, provisioning
from .errors import OTPError, UnsupportedAlgorithm
from .otp_core import HashAlgorithm, TOTPOptions

COMMANDS = ("generate", "verify", "qrcode", "create-secret", "uri", "hotp", "watch", "help")

EXAMPLES = """\
Examples:
  totpify generate JBSWY3DPEHPK3PXP
  totpify verify 123456 JBSWY3DPEHPK3PXP
  totpify qrcode JBSWY3DPEHPK3PXP --issuer=MyApp code.png
  totpify create-secret
"""


class _Parser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on usage errors."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


# --- Flag validators ---
def _algorithm(value: str) -> HashAlgorithm:
    try:
        return HashAlgorithm.parse(value)
    except UnsupportedAlgorithm as e:
        raise argparse.ArgumentTypeError(str(e))


def _digits(value: str) -> int:
    try:
        digits = int(value)
    except ValueError:
        digits = None
    if digits not in otp_core.SUPPORTED_DIGITS:
        raise argparse.ArgumentTypeError("Digits must be 6 or 8")
    return digits


def _bounded_int(name: str, minimum: int, requirement: str, maximum=None):
    def convert(value: str) -> int:
        try:
            number = int(value)
        except ValueError:
            number = None
        if number is None or number < minimum:
            raise argparse.ArgumentTypeError(f"Invalid {name}: must be a {requirement} number")
        if maximum is not None and number > maximum:
            raise argparse.ArgumentTypeError(f"Invalid {name}: must be at most {maximum}")
        return number
    return convert


def _options(args) -> TOTPOptions:
    return TOTPOptions(
        algorithm=args.algorithm,
        digits=args.digits,
        period=args.period,
        timestamp=args.timestamp,
        window=args.window,
    )


def _require_secret(args) -> bool:
    if not args.secret:
        print("Secret is required", file=sys.stderr)
        return False
    return True


# --- CLI command handlers ---
def cmd_generate(args) -> int:
    if not _require_secret(args):
        return 1
    print(otp_core.generate_totp(args.secret, _options(args)))
    return 0


def cmd_verify(args) -> int:
    if not args.code or not args.secret:
        print("Code and secret are required", file=sys.stderr)
        return 1
    result = otp_core.verify_totp(args.code, args.secret, _options(args))
    if result.valid:
        print(f"Valid (time drift: {result.delta} periods)")
        return 0
    print("Invalid code")
    return 1


def cmd_qrcode(args) -> int:
    if not _require_secret(args):
        return 1
    if args.output_file:
        uri = provisioning.build_otpauth_uri(args.secret, issuer=args.issuer, account=args.account)
        png = provisioning.render_qr_png(uri, size=args.size)
        with open(os.path.abspath(args.output_file), "wb") as f:
            f.write(png)
        print(f"QR code saved to {args.output_file}")
    else:
        print(provisioning.generate_qr_code(
            args.secret, issuer=args.issuer, account=args.account, size=args.size
        ))
    return 0


def cmd_create_secret(args) -> int:
    if args.length is None:
        length = otp_core.SECRET_BYTES
    else:
        try:
            length = int(args.length)
        except ValueError:
            length = 0
    if length <= 0:
        print("Length must be a positive number", file=sys.stderr)
        return 1
    print(otp_core.generate_secret(length))
    return 0


def cmd_uri(args) -> int:
    if not _require_secret(args):
        return 1
    print(provisioning.build_otpauth_uri(args.secret, issuer=args.issuer, account=args.account))
    return 0


def cmd_hotp(args) -> int:
    if not _require_secret(args):
        return 1
    print(otp_core.generate_hotp(args.secret, args.counter, args.algorithm, args.digits))
    return 0


def _progress_bar(remaining: int, period: int, width: int = 20) -> str:
    filled = (remaining * width) // period
    return "#" * filled + "-" * (width - filled)


def cmd_watch(args) -> int:
    if not _require_secret(args):
        return 1
    # fail fast on a bad secret instead of inside the loop
    otp_core.resolve_secret(args.secret)

    print(f"Press Ctrl+C to quit. Generating {args.digits}-digit TOTP every {args.period}s...\n")
    options = TOTPOptions(digits=args.digits, period=args.period)
    last_codes = None
    try:
        while True:
            now = otp_core.current_timestamp()
            codes = [
                (algorithm, otp_core.generate_totp(args.secret, options.replace(algorithm=algorithm, timestamp=now)))
                for algorithm in HashAlgorithm
            ]
            remaining = otp_core.time_remaining(args.period, now)
            if codes != last_codes:
                print(f"[{_progress_bar(remaining, args.period)}] {remaining:2d}s")
                for algorithm, code in codes:
                    print(f"  {algorithm.value:<8} {code}")
                last_codes = codes
            else:
                print(f".. {remaining:2d}s left", end="\r", flush=True)
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nBye.")
    return 0


# --- Argparse builder ---
def build_parser() -> argparse.ArgumentParser:
    common = _Parser(add_help=False)
    common.add_argument("--algorithm", type=_algorithm, default=HashAlgorithm.SHA1,
                        help="Hash algorithm (SHA-1, SHA-256, SHA-512)")
    common.add_argument("--digits", type=_digits, default=otp_core.DEFAULT_DIGITS,
                        help="Number of digits (6, 8)")
    common.add_argument("--period", type=_bounded_int("period", 1, "positive"),
                        default=otp_core.DEFAULT_TIME_STEP,
                        help="Token validity period in seconds (default: 30)")
    common.add_argument("--window", type=_bounded_int("window", 0, "non-negative"),
                        default=otp_core.DEFAULT_WINDOW, help="Time drift window (default: 1)")
    common.add_argument("--timestamp", type=_bounded_int("timestamp", 0, "non-negative"),
                        help="Unix time in milliseconds (default: now)")
    common.add_argument("--issuer", default=provisioning.DEFAULT_ISSUER, help="Issuer name for QR code")
    common.add_argument("--account", default=provisioning.DEFAULT_ACCOUNT, help="Account name for QR code")
    common.add_argument("--size", type=_bounded_int("size", 1, "positive"),
                        default=provisioning.DEFAULT_QR_SIZE, help="QR code size in pixels")
    common.add_argument("--verbose", action="store_true", help="Verbose output")

    p = _Parser(
        prog="totpify",
        description="Totpify - TOTP generator and verifier",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = p.add_subparsers(dest="cmd")

    pg = sub.add_parser("generate", parents=[common], help="Print the current TOTP code")
    pg.add_argument("secret", nargs="?")
    pg.set_defaults(func=cmd_generate)

    pv = sub.add_parser("verify", parents=[common], help="Verify a TOTP code")
    pv.add_argument("code", nargs="?")
    pv.add_argument("secret", nargs="?")
    pv.set_defaults(func=cmd_verify)

    pq = sub.add_parser("qrcode", parents=[common], help="Generate a QR code for authenticator apps")
    pq.add_argument("secret", nargs="?")
    pq.add_argument("output_file", nargs="?", help="PNG file to write (default: print a data URL)")
    pq.set_defaults(func=cmd_qrcode)

    pc = sub.add_parser("create-secret", parents=[common], help="Create a random secret")
    pc.add_argument("length", nargs="?", help="Secret length (default: 20)")
    pc.set_defaults(func=cmd_create_secret)

    pu = sub.add_parser("uri", parents=[common], help="Print the otpauth:// URI")
    pu.add_argument("secret", nargs="?")
    pu.set_defaults(func=cmd_uri)

    ph = sub.add_parser("hotp", parents=[common], help="Generate the HOTP code for a counter")
    ph.add_argument("secret", nargs="?")
    ph.add_argument("--counter", required=True,
                    type=_bounded_int("counter", 0, "non-negative", otp_core.MAX_COUNTER))
    ph.set_defaults(func=cmd_hotp)

    pw = sub.add_parser("watch", parents=[common], help="Show TOTP codes in real time")
    pw.add_argument("secret", nargs="?")
    pw.set_defaults(func=cmd_watch)

    sub.add_parser("help", help="Show this message")
    return p


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else list(argv)
    parser = build_parser()

    if argv and not argv[0].startswith("-") and argv[0] not in COMMANDS:
        print(f"Unknown command: {argv[0]}", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return 1

    args = parser.parse_args(argv)
    if args.cmd in (None, "help"):
        parser.print_help()
        return 0

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[+] %(message)s",
    )
    try:
        return args.func(args)
    except (OTPError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
