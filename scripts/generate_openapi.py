"""Write the OpenAPI document of the board and decision API."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from fastapi.openapi.utils import get_openapi

from openprs.main import create_app


def build_schema() -> dict:
    app = create_app()
    return get_openapi(
        title=app.title,
        version=app.version,
        routes=app.routes,
        description=app.description,
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate the OpenPRs OpenAPI schema")
    parser.add_argument("--output", default="openapi.json", help="Destination file (default: openapi.json)")
    parser.add_argument("--stdout", action="store_true", help="Print the schema instead of writing a file")
    parser.add_argument("--indent", type=int, default=2)
    args = parser.parse_args()

    rendered = json.dumps(build_schema(), indent=args.indent, sort_keys=True)
    if args.stdout:
        sys.stdout.write(rendered + "\n")
        return
    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(rendered, encoding="utf-8")
    print(f"OpenAPI schema with {len(json.loads(rendered)['paths'])} paths written to {output_path}")


if __name__ == "__main__":
    main()
