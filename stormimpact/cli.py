"""
Command Line Interface (CLI)
============================

Two commands:

    python -m stormimpact.cli report --data repdata_StormData.csv.bz2 \
        --categories event_types.csv --out storm_report.docx

    python -m stormimpact.cli template --data repdata_StormData.csv.bz2 \
        --out event_types.csv

`template` writes a lookup-table skeleton (one row per distinct raw label,
canonical column blank) to be filled in by hand. `report` runs the whole
pipeline and writes the DOCX report; with --export-dir it also writes the
ranking tables as CSV and JSON.

The CLI does not modify the input files.
"""

from __future__ import annotations
import argparse
import logging
import os
import sys

from .categories import LABEL_ORDERS, build_mapping_template
from .engine import (PipelineConfig, export_csv, export_json, quiet_warnings,
                     run_pipeline)
from .errors import StormImpactError
from .loader import load_category_map, load_storm_data


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="stormimpact")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = ap.add_subparsers(dest="command", required=True)

    rep = sub.add_parser("report", help="Run the analysis and write the DOCX report")
    rep.add_argument("--data", required=True, help="Path to the storm-events CSV (may be .bz2/.gz)")
    rep.add_argument("--categories", required=True, help="Lookup table: original,canonical (CSV or XLSX)")
    rep.add_argument("--out", required=True, help="Output .docx path")
    rep.add_argument("--top-n", type=int, default=10, help="Event types per ranking (default 10)")
    rep.add_argument("--label-order", choices=LABEL_ORDERS, default="first-seen")
    rep.add_argument("--lenient-order", action="store_true",
                     help="Only require every label to be mapped; ignore table row order")
    rep.add_argument("--export-dir", help="Also write ranking tables as CSV/JSON here")
    rep.add_argument("--show-warnings", action="store_true", help="Do not silence library warnings")

    tpl = sub.add_parser("template", help="Write a lookup-table skeleton from the data's labels")
    tpl.add_argument("--data", required=True)
    tpl.add_argument("--out", required=True, help="Output CSV path")
    tpl.add_argument("--label-order", choices=LABEL_ORDERS, default="first-seen")
    return ap


def cmd_report(args: argparse.Namespace) -> None:
    from .report import DatasetCitation, ReportConfig, generate_docx_report

    if args.top_n < 1:
        raise ValueError("--top-n must be at least 1")
    config = PipelineConfig(
        top_n=args.top_n,
        label_order=args.label_order,
        strict_order=not args.lenient_order,
        suppress_warnings=not args.show_warnings,
    )

    with quiet_warnings(config.suppress_warnings):
        print("Loading dataset...")
        dataset = load_storm_data(args.data)
        category_map = load_category_map(args.categories)
        print(f"Loaded {dataset.n_rows} rows x {dataset.n_cols} columns, {len(category_map)} category mappings.")

        result = run_pipeline(dataset, category_map, config)
        print(f"Kept {len(result.kept)} rows with impact; {len(result.aggregates)} event types.")

        cfg = ReportConfig(citation=DatasetCitation(
            file_name=os.path.basename(args.data),
            lookup_file_name=os.path.basename(args.categories),
        ))
        generate_docx_report(result, args.out, config=cfg)
        print(f"Report written to {args.out}")

    if args.export_dir:
        os.makedirs(args.export_dir, exist_ok=True)
        for name, rows in (("health_ranking", result.health),
                           ("economic_ranking", result.economic),
                           ("combined", result.combined)):
            export_csv(rows, os.path.join(args.export_dir, f"{name}.csv"))
            export_json(rows, os.path.join(args.export_dir, f"{name}.json"))
        print(f"Exported tables to {args.export_dir}")


def cmd_template(args: argparse.Namespace) -> None:
    import csv
    from .engine import filter_impactful

    dataset = load_storm_data(args.data)
    rows = build_mapping_template(filter_impactful(dataset.records), args.label_order)
    with open(args.out, "w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(["original", "canonical"])
        w.writerows(rows)
    print(f"Wrote {len(rows)} labels to {args.out}")


def main(argv=None) -> int:
    """Entry point. Returns the process exit code."""
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    try:
        if args.command == "report":
            cmd_report(args)
        else:
            cmd_template(args)
    except (StormImpactError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
