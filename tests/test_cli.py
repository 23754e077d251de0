"""Tests for the totpify command line interface."""

from __future__ import annotations

import re

import pytest

from totpify import otp_cli, otp_core

SECRET = "JBSWY3DPEHPK3PXP"
AT = "--timestamp=1635000000000"


def run(capsys, *argv):
    code = otp_cli.main(list(argv))
    out, err = capsys.readouterr()
    return code, out, err


def run_usage_error(capsys, *argv):
    with pytest.raises(SystemExit) as exc:
        otp_cli.main(list(argv))
    out, err = capsys.readouterr()
    return exc.value.code, err


# --- help ---
@pytest.mark.parametrize("argv", [[], ["help"]])
def test_help(capsys, argv):
    code, out, _ = run(capsys, *argv)
    assert code == 0
    assert "Totpify - TOTP generator and verifier" in out
    assert "Examples:" in out


def test_help_flag(capsys):
    with pytest.raises(SystemExit) as exc:
        otp_cli.main(["--help"])
    assert exc.value.code == 0
    assert "usage: totpify" in capsys.readouterr().out


def test_unknown_command(capsys):
    code, _, err = run(capsys, "unknown-command")
    assert code == 1
    assert "Unknown command: unknown-command" in err


# --- generate ---
def test_generate_pinned(capsys):
    code, out, _ = run(capsys, "generate", SECRET, AT)
    assert code == 0
    assert out == "930202\n"


@pytest.mark.parametrize(
    "flag, expected",
    [
        ("--digits=8", "37930202"),
        ("--algorithm=SHA-256", "881960"),
        ("--algorithm=SHA-512", "981721"),
        ("--period=60", "775505"),
    ],
)
def test_generate_options(capsys, flag, expected):
    code, out, _ = run(capsys, "generate", SECRET, AT, flag)
    assert code == 0
    assert out.strip() == expected


def test_generate_now(capsys):
    code, out, _ = run(capsys, "generate", SECRET)
    assert code == 0
    assert re.fullmatch(r"\d{6}", out.strip())


def test_generate_requires_secret(capsys):
    code, _, err = run(capsys, "generate")
    assert code == 1
    assert "Secret is required" in err


def test_generate_invalid_secret(capsys):
    code, _, err = run(capsys, "generate", "INVALID!@#")
    assert code == 1
    assert err.startswith("Error: Invalid secret")


@pytest.mark.parametrize(
    "flag, message",
    [
        ("--algorithm=INVALID", "Invalid algorithm: INVALID"),
        ("--digits=9", "Digits must be 6 or 8"),
        ("--digits=six", "Digits must be 6 or 8"),
        ("--period=-30", "Invalid period: must be a positive number"),
        ("--period=0", "Invalid period: must be a positive number"),
        ("--window=-1", "Invalid window: must be a non-negative number"),
    ],
)
def test_generate_flag_validation(capsys, flag, message):
    code, err = run_usage_error(capsys, "generate", SECRET, flag)
    assert code == 1
    assert message in err


# --- verify ---
@pytest.mark.parametrize("token, drift", [("930202", 0), ("504455", -1), ("936632", 1)])
def test_verify_valid(capsys, token, drift):
    code, out, _ = run(capsys, "verify", token, SECRET, AT)
    assert code == 0
    assert out.strip() == f"Valid (time drift: {drift} periods)"


def test_verify_invalid(capsys):
    code, out, _ = run(capsys, "verify", "000000", SECRET, AT)
    assert code == 1
    assert out.strip() == "Invalid code"


def test_verify_zero_window(capsys):
    code, out, _ = run(capsys, "verify", "504455", SECRET, AT, "--window=0")
    assert code == 1
    assert "Invalid code" in out


def test_verify_wider_window(capsys):
    code, out, _ = run(capsys, "verify", "701657", SECRET, AT, "--window=2")
    assert code == 0
    assert "time drift: -2" in out


def test_verify_fresh_code(capsys):
    token = otp_core.generate_totp(SECRET)
    code, out, _ = run(capsys, "verify", token, SECRET)
    assert code == 0
    assert out.startswith("Valid")


@pytest.mark.parametrize("argv", [["verify"], ["verify", "123456"]])
def test_verify_requires_code_and_secret(capsys, argv):
    code, _, err = run(capsys, *argv)
    assert code == 1
    assert "Code and secret are required" in err


# --- create-secret ---
def test_create_secret_default(capsys):
    code, out, _ = run(capsys, "create-secret")
    assert code == 0
    assert re.fullmatch(r"[A-Z2-7]{20}", out.strip())


def test_create_secret_custom_length(capsys):
    code, out, _ = run(capsys, "create-secret", "32")
    assert code == 0
    assert re.fullmatch(r"[A-Z2-7]{32}", out.strip())


@pytest.mark.parametrize("length", ["-5", "0", "abc"])
def test_create_secret_invalid_length(capsys, length):
    code, _, err = run(capsys, "create-secret", length)
    assert code == 1
    assert "Length must be a positive number" in err


# --- qrcode / uri ---
def test_qrcode_data_url(capsys):
    code, out, _ = run(capsys, "qrcode", SECRET)
    assert code == 0
    assert out.startswith("data:image/png;base64,")


def test_qrcode_custom_labels(capsys):
    code, out, _ = run(capsys, "qrcode", SECRET, "--issuer=TestApp", "--account=user@example.com")
    assert code == 0
    assert out.startswith("data:image/png;base64,")


def test_qrcode_to_file(capsys, tmp_path):
    target = tmp_path / "code.png"
    code, out, _ = run(capsys, "qrcode", SECRET, str(target), "--issuer=MyApp")
    assert code == 0
    assert out.strip() == f"QR code saved to {target}"
    assert target.read_bytes().startswith(b"\x89PNG")


def test_qrcode_unwritable_path(capsys, tmp_path):
    code, _, err = run(capsys, "qrcode", SECRET, str(tmp_path / "missing" / "code.png"))
    assert code == 1
    assert err.startswith("Error:")


def test_qrcode_oversized_uri(capsys):
    code, _, err = run(capsys, "qrcode", SECRET, "--issuer=" + "A" * 5000)
    assert code == 1
    assert err.startswith("Error: QR code generation failed")


def test_qrcode_requires_secret(capsys):
    code, _, err = run(capsys, "qrcode")
    assert code == 1
    assert "Secret is required" in err


def test_uri(capsys):
    code, out, _ = run(capsys, "uri", "jbsw y3dp ehpk 3pxp", "--issuer=Test App", "--account=bob")
    assert code == 0
    assert out.strip() == "otpauth://totp/Test%20App:bob?secret=JBSWY3DPEHPK3PXP&issuer=Test%20App"


# --- hotp ---
def test_hotp(capsys):
    code, out, _ = run(capsys, "hotp", "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ", "--counter=1")
    assert code == 0
    assert out.strip() == "287082"


def test_hotp_largest_counter(capsys):
    code, out, _ = run(capsys, "hotp", SECRET, f"--counter={otp_core.MAX_COUNTER}")
    assert code == 0
    assert re.fullmatch(r"\d{6}", out.strip())


def test_hotp_counter_too_large(capsys):
    code, err = run_usage_error(capsys, "hotp", SECRET, f"--counter={2 ** 64}")
    assert code == 1
    assert "Invalid counter: must be at most 18446744073709551615" in err


def test_hotp_requires_counter(capsys):
    code, err = run_usage_error(capsys, "hotp", SECRET)
    assert code == 1
    assert "--counter" in err


# --- watch ---
def test_watch_prints_all_algorithms(capsys, monkeypatch):
    def stop(seconds):
        raise KeyboardInterrupt

    monkeypatch.setattr(otp_core, "current_timestamp", lambda: 1635000000000)
    monkeypatch.setattr(otp_cli.time, "sleep", stop)
    code, out, _ = run(capsys, "watch", SECRET)
    assert code == 0
    assert "30s" in out
    for token in ("930202", "881960", "981721"):
        assert token in out
    assert "Bye." in out


def test_watch_invalid_secret(capsys):
    code, _, err = run(capsys, "watch", "!!!")
    assert code == 1
    assert "Error: Invalid secret" in err
