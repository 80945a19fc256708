"""credwallet command-line tool."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

from credwallet.config import resolve_log_level, resolve_trust_registry_path
from credwallet.disclosure import (
    FIELD_LABELS,
    PRESET_FIELDS,
    PRESET_LABELS,
    PRESET_ORDER,
    disclose,
    encode_presentation,
)
from credwallet.normalizer import display_name, format_attribute_name, normalize
from credwallet.status import resolve_status
from credwallet.trust import load_trust_registry
from credwallet.types import DisclosureLevel
from credwallet.validator import validate

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_UNREADABLE = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="credwallet", description="credwallet CLI")
    parser.add_argument("--log-level", default=None)
    subparsers = parser.add_subparsers(dest="command", required=True)

    inspect_parser = subparsers.add_parser("inspect", help="Normalize, validate and disclose a credential")
    inspect_parser.add_argument("path")
    selection = inspect_parser.add_mutually_exclusive_group()
    selection.add_argument(
        "--level",
        choices=[level.value for level in PRESET_ORDER],
        default=None,
    )
    selection.add_argument("--fields", default=None, help="Comma-separated attribute names")
    inspect_parser.add_argument("--revoked", action="store_true", help="Treat the credential as revoked")
    inspect_parser.add_argument("--trust-registry", default=None)
    inspect_parser.add_argument("--attachment", action="store_true", help="Include the encoded presentation")
    inspect_parser.add_argument("--json", action="store_true")

    presets_parser = subparsers.add_parser("presets", help="List disclosure presets")
    presets_parser.add_argument("--json", action="store_true")

    return parser


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _label(field: str) -> str:
    return FIELD_LABELS.get(field) or format_attribute_name(field)


def _presets(as_json: bool) -> int:
    if as_json:
        print(
            json.dumps(
                {
                    "command": "presets",
                    "presets": {
                        level.value: sorted(PRESET_FIELDS[level]) for level in PRESET_ORDER
                    },
                },
                sort_keys=True,
            )
        )
        return EXIT_OK
    for level in PRESET_ORDER:
        fields = ", ".join(_label(field) for field in sorted(PRESET_FIELDS[level]))
        print(f"{level.value}: {PRESET_LABELS[level]} [{fields}]")
    return EXIT_OK


def _inspect(args: argparse.Namespace) -> int:
    try:
        raw = json.loads(Path(args.path).read_text(encoding="utf-8"))
        registry_path = resolve_trust_registry_path(args.trust_registry)
        registry = load_trust_registry(registry_path) if registry_path else None
    except (OSError, ValueError) as error:
        print(f"error: {error}", file=sys.stderr)
        return EXIT_UNREADABLE

    credential = normalize(raw)

    validation = validate(credential, trust_registry=registry, raw=raw)
    status = resolve_status(credential, args.revoked)

    if args.fields is not None:
        fields = [field.strip() for field in args.fields.split(",") if field.strip()]
        result = disclose(credential, fields=fields)
    else:
        result = disclose(credential, level=args.level or DisclosureLevel.MINIMAL)

    attachment = encode_presentation(credential, result) if args.attachment else None
    exit_code = EXIT_OK if validation.is_valid else EXIT_INVALID

    if args.json:
        payload = {
            "command": "inspect",
            "name": display_name(credential),
            "valid": validation.is_valid,
            "errors": list(validation.errors),
            "warnings": list(validation.warnings),
            "schemas": list(validation.schemas),
            "status": status.value,
            "issuer": credential.issuer,
            "type": list(credential.credential_type),
            "issued_at": _iso(credential.issued_at),
            "expires_at": _iso(credential.expires_at),
            "disclosure": {
                "level": result.level.value,
                "fields": sorted(result.fields),
                "hidden_fields": sorted(result.hidden_fields),
                "redacted_view": dict(result.redacted_view),
            },
        }
        if attachment is not None:
            payload["attachment"] = attachment
        print(json.dumps(payload, sort_keys=True, default=str))
        return exit_code

    print(f"credential: {display_name(credential)}")
    print(f"issuer: {credential.issuer}")
    print(f"type: {', '.join(credential.credential_type)}")
    print(f"issuedAt: {_iso(credential.issued_at)}")
    if credential.expires_at is not None:
        print(f"expiresAt: {_iso(credential.expires_at)}")
    print(f"status: {status.value}")
    print("valid: yes" if validation.is_valid else "valid: no")
    for error in validation.errors:
        print(f"  - {error}")
    for warning in validation.warnings:
        print(f"  ! {warning}")
    print(f"disclosure: {result.level.value}")
    if result.shares_nothing:
        print("  nothing will be shared")
    for field, value in result.redacted_view.items():
        print(f"  {_label(field)}: {value}")
    if attachment is not None:
        print(f"attachment: {attachment}")
    return exit_code


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        logging.basicConfig(level=resolve_log_level(args.log_level))
    except ValueError as error:
        parser.error(str(error))

    if args.command == "presets":
        return _presets(args.json)

    if args.command == "inspect":
        return _inspect(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
