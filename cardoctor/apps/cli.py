from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import uuid
from typing import Any

from cardoctor.config import Settings, ensure_dirs, load_dirs, load_settings, write_default_config
from cardoctor.core.dtc.decode import decode_dtcs
from cardoctor.core.dtc.format import DIGIT3_POLICIES
from cardoctor.core.service import DiagnosticService, ServiceError
from cardoctor.core.transport.base import Scanner
from cardoctor.core.transport.mock import MockScanner
from cardoctor.core.transport.replay import ReplayError, ReplayScanner
from cardoctor.core.util.hexcodec import InvalidHex, parse_hex
from cardoctor.logging import TRACE_LEVEL, parse_log_level, setup_logging, trace_context


log = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="cardoctor", description="OBD-II stored trouble code reader.")
    _add_logging_args(parser)
    _add_dir_args(parser)

    sub = parser.add_subparsers(dest="cmd", required=True)

    scan_p = sub.add_parser("scan", help="List available adapters")
    _add_logging_args(scan_p)
    _add_source_args(scan_p)
    scan_p.add_argument("--scan-delay-ms", type=int, default=None, help="Simulated discovery delay")

    read_p = sub.add_parser("read", help="Connect to an adapter and read stored DTCs (Mode 03)")
    _add_logging_args(read_p)
    _add_source_args(read_p)
    read_p.add_argument("--device", required=True, help="Device id as listed by 'scan' (e.g. 1)")
    read_p.add_argument("--record", default=None, help="Record session traffic to a JSONL file")
    _add_digit3_arg(read_p)

    decode_p = sub.add_parser("decode", help="Decode a raw Mode 03 response given as hex")
    _add_logging_args(decode_p)
    decode_p.add_argument("hex", nargs="+", help="Response bytes as hex (e.g. 43 01 30 31 02 42 30)")
    _add_digit3_arg(decode_p)

    config_p = sub.add_parser("config", help="Configuration")
    _add_logging_args(config_p)
    config_sub = config_p.add_subparsers(dest="config_cmd", required=True)
    config_show_p = config_sub.add_parser("show", help="Show resolved directories and settings")
    _add_logging_args(config_show_p)
    config_init_p = config_sub.add_parser("init", help="Write a default cardoctor.json")
    _add_logging_args(config_init_p)
    config_init_p.add_argument("--force", action="store_true", help="Overwrite an existing config file")

    args = parser.parse_args(argv)

    _apply_dir_overrides(args)

    if getattr(args, "trace", False):
        level = TRACE_LEVEL
    elif getattr(args, "verbose", False):
        level = logging.DEBUG
    else:
        level = parse_log_level(getattr(args, "log_level", None))

    setup_logging(
        level=level,
        log_format=str(getattr(args, "log_format", "pretty") or "pretty"),
        log_file=getattr(args, "log_file", None),
        no_color=bool(getattr(args, "no_color", False)),
    )

    trace_id = uuid.uuid4().hex[:12]
    with trace_context(trace_id):
        log.debug("CLI start", extra={"cmd": args.cmd})
        _dispatch(args)


def _dispatch(args: argparse.Namespace) -> None:
    if args.cmd == "config":
        raise SystemExit(_run_config(args))

    try:
        settings = load_settings(
            digit3_policy=getattr(args, "digit3_policy", None),
            scan_delay_ms=getattr(args, "scan_delay_ms", None),
        )
    except ValueError as exc:
        _print_json({"ok": False, "error": str(exc)})
        raise SystemExit(1)

    if args.cmd == "decode":
        response = _decode_text(" ".join(args.hex), settings)
        _print_json(response)
        raise SystemExit(0 if response.get("ok") else 1)

    scanner = _build_scanner(args, settings)

    if args.cmd == "scan":
        response = _run_inprocess(scanner, settings, op="scan")
        _print_json(response)
        raise SystemExit(0 if response.get("ok") else 1)

    if args.cmd == "read":
        response = _run_inprocess(scanner, settings, op="read_dtcs", device=args.device, record=args.record)
        _print_json(response)
        raise SystemExit(0 if response.get("ok") else 1)

    raise SystemExit("error: unknown command")


def _build_scanner(args: argparse.Namespace, settings: Settings) -> Scanner:
    replay = getattr(args, "replay", None)
    if replay:
        return ReplayScanner(replay)
    return MockScanner(scan_delay_ms=settings.scan_delay_ms)


def _run_inprocess(
    scanner: Scanner,
    settings: Settings,
    *,
    op: str,
    device: str | None = None,
    record: str | None = None,
) -> dict[str, Any]:
    try:
        with DiagnosticService(scanner, digit3_policy=settings.digit3_policy, record_path=record) as service:
            if op == "scan":
                devices = service.scan_devices()
                return {"ok": True, "devices": [d.to_dict() for d in devices]}
            if op == "read_dtcs":
                handle = service.connect(str(device))
                dtcs = service.read_dtcs()
                return {"ok": True, "device": handle.to_dict(), "dtcs": dtcs}
            return {"ok": False, "error": f"unknown op: {op}"}
    except (InvalidHex, ServiceError, ReplayError) as exc:
        log.error("Command failed", extra={"op": op, "error": str(exc)})
        return {"ok": False, "error": str(exc)}


def _decode_text(text: str, settings: Settings) -> dict[str, Any]:
    # Pure decode; no adapter session involved.
    try:
        data = parse_hex(text)
    except InvalidHex as exc:
        log.error("Command failed", extra={"op": "decode", "error": str(exc)})
        return {"ok": False, "error": str(exc)}
    return {"ok": True, "dtcs": decode_dtcs(data, digit3_policy=settings.digit3_policy)}


def _run_config(args: argparse.Namespace) -> int:
    dirs = load_dirs()
    if args.config_cmd == "show":
        try:
            settings = load_settings(dirs)
        except ValueError as exc:
            _print_json({"ok": False, "error": str(exc)})
            return 1
        _print_json(
            {
                "ok": True,
                "config_dir": str(dirs.config_dir),
                "cache_dir": str(dirs.cache_dir),
                "config_file": str(dirs.config_file),
                "digit3_policy": settings.digit3_policy,
                "scan_delay_ms": settings.scan_delay_ms,
            }
        )
        return 0
    if args.config_cmd == "init":
        if dirs.config_file.exists() and not args.force:
            _print_json({"ok": False, "error": f"config file exists: {dirs.config_file}"})
            return 1
        ensure_dirs(dirs)
        defaults = Settings()
        write_default_config(
            dirs.config_file,
            data={"digit3_policy": defaults.digit3_policy, "scan_delay_ms": defaults.scan_delay_ms},
        )
        _print_json({"ok": True, "config_file": str(dirs.config_file)})
        return 0
    _print_json({"ok": False, "error": "unknown config command"})
    return 1


def _apply_dir_overrides(args: argparse.Namespace) -> None:
    # Apply as env vars so core stays CLI-agnostic.
    if getattr(args, "config_dir", None):
        os.environ["CARDOCTOR_CONFIG_DIR"] = str(args.config_dir)
    if getattr(args, "cache_dir", None):
        os.environ["CARDOCTOR_CACHE_DIR"] = str(args.cache_dir)


def _add_source_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--replay",
        default=None,
        help="Serve adapter responses from a JSONL recording instead of the simulated adapters",
    )


def _add_digit3_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--digit3-policy",
        choices=list(DIGIT3_POLICIES),
        default=None,
        help="Render the third DTC character as a plain decimal number or a single hex digit",
    )


def _add_logging_args(parser: argparse.ArgumentParser) -> None:
    # SUPPRESS defaults keep root-level flags from being reset by subparsers.
    parser.add_argument(
        "--log-level",
        choices=["error", "warning", "info", "debug", "trace"],
        default=argparse.SUPPRESS,
        help="Logging level (default: info)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Alias for --log-level=debug",
    )
    parser.add_argument(
        "--trace",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Alias for --log-level=trace",
    )
    parser.add_argument("--log-file", default=argparse.SUPPRESS, help="Optional log file path")
    parser.add_argument(
        "--log-format",
        choices=["pretty", "json"],
        default=argparse.SUPPRESS,
        help="Log output format (default: pretty)",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Disable ANSI colors in pretty logs",
    )


def _add_dir_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config-dir", default=None, help="Override config dir (default: ~/.config/cardoctor)")
    parser.add_argument("--cache-dir", default=None, help="Override cache dir (default: ~/.cache/cardoctor)")


def _print_json(payload: dict[str, Any]) -> None:
    sys.stdout.write(json.dumps(payload, sort_keys=True, indent=2) + "\n")


if __name__ == "__main__":
    main()
