#!/usr/bin/env python3
"""
Command line for the BOM engine.

    python bom_cli.py -i bom.json explode FG001 -q 10
    python bom_cli.py -i bom.csv --format json cost FG001
    python bom_cli.py -i bom.csv where-used RM001 --all
    python bom_cli.py -i bom.csv validate
"""

import argparse
import dataclasses
import json
import logging
import sys

import pandas as pd

from bom_config import configure_logging, load_settings
from bom_engine import BomEngine
from bom_errors import BomError
from bom_loader import read_bom_file
from bom_quantity import format_quantity


logger = logging.getLogger(__name__)

FORMATS = ["table", "json", "csv"]


def render(df: pd.DataFrame, fmt: str) -> str:
    if fmt == "json":
        return json.dumps(df.to_dict(orient="records"), indent=2)
    if fmt == "csv":
        return df.to_csv(index=False)
    if df.empty:
        return "(none)"
    return df.to_string(index=False)


def explode_command(engine: BomEngine, args) -> pd.DataFrame:
    result = engine.explode_result(args.component, args.quantity)
    return pd.DataFrame([
        {
            "component": item.component_id,
            "quantity": format_quantity(item.total_quantity),
            "level": item.level,
            "paths": len(item.paths),
        }
        for item in result.items.values()
    ], columns=["component", "quantity", "level", "paths"])


def cost_command(engine: BomEngine, args) -> pd.DataFrame:
    breakdown = engine.cost_breakdown(args.component, args.quantity)
    rows = [{"component": args.component, "role": "own", "quantity": format_quantity(breakdown.quantity),
             "cost": format_quantity(breakdown.own_cost)}]
    rows += [
        {"component": child.component_id, "role": "child", "quantity": format_quantity(child.quantity),
         "cost": format_quantity(child.cost)}
        for child in breakdown.children
    ]
    rows.append({"component": args.component, "role": "total", "quantity": format_quantity(breakdown.quantity),
                 "cost": format_quantity(breakdown.total_cost)})
    return pd.DataFrame(rows)


def where_used_command(engine: BomEngine, args) -> pd.DataFrame:
    if args.all:
        ancestors = engine.where_used_all(args.component)
        return pd.DataFrame(
            [{"parent": parent, "level": level} for parent, level in ancestors.items()],
            columns=["parent", "level"],
        )
    return pd.DataFrame({"parent": engine.where_used(args.component)}, columns=["parent"])


def validate_command(engine: BomEngine, args) -> pd.DataFrame:
    engine.validate()
    return pd.DataFrame([engine.stats()])


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bom", description="BOM Calculation Engine CLI")
    parser.add_argument("-i", "--input", required=True, help="Input file (JSON, CSV or Excel)")
    parser.add_argument("-o", "--output", default=None, help="Output file (default: stdout)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    parser.add_argument("-f", "--format", default="table", choices=FORMATS, help="Output format")

    sub = parser.add_subparsers(dest="command", required=True)

    explode = sub.add_parser("explode", help="Explode BOM structure")
    explode.add_argument("component")
    explode.add_argument("-q", "--quantity", default="1", help="Quantity to manufacture")
    explode.set_defaults(handler=explode_command)

    cost = sub.add_parser("cost", help="Calculate rolled-up cost")
    cost.add_argument("component")
    cost.add_argument("-q", "--quantity", default="1")
    cost.set_defaults(handler=cost_command)

    where_used = sub.add_parser("where-used", help="Where-used analysis")
    where_used.add_argument("component")
    where_used.add_argument("--all", action="store_true", help="Include every ancestor, not only direct parents")
    where_used.set_defaults(handler=where_used_command)

    validate = sub.add_parser("validate", help="Check for cycles and missing components")
    validate.set_defaults(handler=validate_command)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings()
    if args.verbose:
        settings = dataclasses.replace(settings, log_level="INFO")
    configure_logging(settings)

    try:
        engine = BomEngine(settings)
        read_bom_file(args.input, default_uom=settings.default_uom).load_into(engine)
        output = render(args.handler(engine, args), args.format)
    except BomError as e:
        print(f"error[{e.code}]: {e.message}", file=sys.stderr)
        return e.status

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(output)
        logger.info("Wrote %s", args.output)
    else:
        print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
