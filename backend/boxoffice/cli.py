import argparse
import json
import re
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from boxoffice.core.config import settings
from boxoffice.core.logging_config import configure_logging
from boxoffice.schemas.breakdown import BreakdownRequest
from boxoffice.services import breakdown as breakdown_service


SAFE_JSON_FILENAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*\.json$")


def _normalize_json_filename(raw_path: str) -> str:
    raw = (raw_path or "").strip()
    if not raw:
        raise SystemExit("Path is required")
    if Path(raw).name != raw:
        raise SystemExit("Only JSON file names are allowed (no directories)")
    if not SAFE_JSON_FILENAME_RE.fullmatch(raw):
        raise SystemExit("Invalid JSON file name")
    return raw


def _resolve_json_path(raw_path: str) -> Path:
    resolved = (Path.cwd().resolve() / _normalize_json_filename(raw_path)).resolve(strict=False)
    if not resolved.is_file():
        raise SystemExit(f"Input file not found: {resolved}")
    return resolved


def load_request(raw_path: str) -> BreakdownRequest:
    path = _resolve_json_path(raw_path)
    try:
        return BreakdownRequest.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as exc:
        raise SystemExit(f"Invalid basket file {path.name}:\n{exc}") from exc


def run_breakdown(payload: BreakdownRequest, *, totals_only: bool = False) -> dict[str, Any]:
    result = breakdown_service.compute_breakdown(
        payload.line_items,
        payload.fee_policy,
        payload.delivery_option,
        payload.currency or settings.default_currency,
        payload.options,
        rounding=settings.money_rounding,
    )
    if totals_only:
        return breakdown_service.basket_totals(result, rounding=settings.money_rounding).model_dump(mode="json")
    return result.model_dump(mode="json")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Order financial breakdown utilities")
    subparsers = parser.add_subparsers(dest="command", required=True)
    breakdown_cmd = subparsers.add_parser("breakdown", help="Print the full financial breakdown of a basket file")
    breakdown_cmd.add_argument("path", help="Basket JSON file in the current directory")
    totals_cmd = subparsers.add_parser("totals", help="Print the basket totals summary of a basket file")
    totals_cmd.add_argument("path", help="Basket JSON file in the current directory")
    return parser


def main(argv: list[str] | None = None) -> int:
    configure_logging(settings.log_json)
    args = _build_parser().parse_args(argv)
    payload = load_request(args.path)
    output = run_breakdown(payload, totals_only=args.command == "totals")
    json.dump(output, sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
