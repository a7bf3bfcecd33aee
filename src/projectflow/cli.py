"""Command-line interface for ProjectFlow."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import uvicorn
from pydantic import ValidationError

from .config import settings


def main(argv: Optional[list[str]] = None):
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="ProjectFlow - Formula evaluation engine for project sheets"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Server command
    server_parser = subparsers.add_parser("serve", help="Start the web server")
    server_parser.add_argument(
        "--host", default=settings.host, help=f"Host to bind to (default: {settings.host})"
    )
    server_parser.add_argument(
        "--port", type=int, default=settings.port, help=f"Port to bind to (default: {settings.port})"
    )
    server_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    # Compute command
    compute_parser = subparsers.add_parser(
        "compute", help="Recompute the formula cells of a sheet JSON file"
    )
    compute_parser.add_argument("sheet", help="Path to a JSON file with 'rows' and 'columns'")
    compute_parser.add_argument(
        "--output", "-o", help="Write computed rows here instead of stdout"
    )

    # Eval command
    eval_parser = subparsers.add_parser("eval", help="Evaluate a single formula")
    eval_parser.add_argument("formula", help="Formula text, e.g. '=SUM([Progress])'")
    eval_parser.add_argument("--sheet", "-s", help="Sheet JSON file providing rows and columns")
    eval_parser.add_argument(
        "--row", "-r", help="Id of the row to evaluate against (default: first row)"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        run_server(args.host, args.port, args.reload)
    elif args.command == "compute":
        sys.exit(run_compute(args.sheet, args.output))
    elif args.command == "eval":
        sys.exit(run_eval(args.formula, args.sheet, args.row))
    else:
        parser.print_help()
        sys.exit(1)


def run_server(host: str, port: int, reload: bool):
    """Run the web server."""
    uvicorn.run(
        "projectflow.api:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


def load_sheet(path: str):
    """Load and validate a sheet JSON file."""
    from .sheets import Sheet

    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return Sheet.model_validate(data)


def run_compute(sheet_path: str, output_path: Optional[str] = None) -> int:
    """Compute a sheet file and print or write the resulting rows."""
    from .formula import compute_sheet_data

    try:
        sheet = load_sheet(sheet_path)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        print(f"Error: could not load sheet {sheet_path}: {e}", file=sys.stderr)
        return 1

    rows = compute_sheet_data(sheet)
    payload = json.dumps(rows, indent=2, default=str)

    if output_path:
        Path(output_path).write_text(payload + "\n", encoding="utf-8")
        print(f"Wrote {len(rows)} rows to {output_path}")
    else:
        print(payload)
    return 0


def run_eval(formula: str, sheet_path: Optional[str] = None, row_id: Optional[str] = None) -> int:
    """Evaluate one formula and print its value."""
    from .formula import evaluate_formula
    from .sheets import Sheet

    sheet = Sheet()
    if sheet_path:
        try:
            sheet = load_sheet(sheet_path)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            print(f"Error: could not load sheet {sheet_path}: {e}", file=sys.stderr)
            return 1

    row = sheet.rows[0] if sheet.rows else {}
    if row_id is not None:
        matches = [r for r in sheet.rows if str(r.get("id")) == row_id]
        if not matches:
            print(f"Error: row '{row_id}' not found", file=sys.stderr)
            return 1
        row = matches[0]

    value = evaluate_formula(formula, row, sheet.rows, sheet.columns)
    print(json.dumps(value, default=str))
    return 0


if __name__ == "__main__":
    main()
