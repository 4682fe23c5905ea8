"""
CLI entry point for the CDP Lineage Dashboard.

Usage:
    python -m cdp_lineage serve   [--file PATH] [--host HOST] [--port PORT]
    python -m cdp_lineage summary --file PATH [--gbgf TAG] [--eim-id ID] [--app NAME]
    python -m cdp_lineage export  --file PATH --output PATH [--node NODE_ID] [filters]
"""

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path

from .core.logger import configure_logging
from .core.session import DashboardSession
from .core.settings import load_settings
from .models import FilterField


def _add_filter_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--gbgf", default=None, help="GB/GF tag filter")
    parser.add_argument("--eim-id", dest="eim_id", default=None, help="EIM ID filter (source or downstream)")
    parser.add_argument("--app", dest="application_name", default=None, help="Application name filter")


def _apply_filters(session: DashboardSession, args: argparse.Namespace) -> None:
    for filter_field in FilterField:
        value = getattr(args, filter_field.value, None)
        if value:
            session.set_filter(filter_field, value)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="CDP Lineage Dashboard - source → CDP → downstream lineage flows"
    )
    parser.add_argument("--config", type=str, default=None, help="Settings JSON (default: config/dashboard_settings.json)")
    parser.add_argument("--log-file", type=str, default=None, help="Also log to this file, rotated daily (default: CDP_LOG_FILE / settings)")
    parser.add_argument("--verbose", action="store_true", help="Debug logging (default level: CDP_LOG_LEVEL / settings)")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the API server")
    serve.add_argument("--file", type=str, default=None, help="Lineage CSV export (default: CDP_DATA_FILE / settings)")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Server host (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=8000, help="Server port (default: 8000)")

    summary = sub.add_parser("summary", help="Print KPI statistics as JSON")
    summary.add_argument("--file", type=str, required=True, help="Lineage CSV export")
    _add_filter_args(summary)

    export = sub.add_parser("export", help="Write the overview graph (or one detail flow) as JSON")
    export.add_argument("--file", type=str, required=True, help="Lineage CSV export")
    export.add_argument("--output", type=str, required=True, help="Output JSON path")
    export.add_argument("--node", type=str, default=None, help="Downstream node id to export the detail flow of")
    _add_filter_args(export)

    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        settings = load_settings(args.config)
        logger = configure_logging(settings, verbose=args.verbose, log_file=args.log_file)
    except ValueError as e:
        print(f"Error: {e}")
        return 1
    logger.debug(f"Settings: {settings}")

    file_path = getattr(args, "file", None) or settings.data_file
    if file_path:
        settings = replace(settings, data_file=str(file_path))
        if not Path(file_path).exists():
            print(f"Error: File not found: {file_path}")
            return 1

    session = DashboardSession(settings)

    if args.command == "serve":
        if file_path:
            session.load_file(file_path)
        print(f"🚀 Starting server at http://{args.host}:{args.port}")
        from .server import run_server
        run_server(session, host=args.host, port=args.port)
        return 0

    try:
        session.load_file(file_path)
        _apply_filters(session, args)
    except ValueError as e:
        logger.error(str(e))
        print(f"Error: {e}")
        return 1

    if args.command == "summary":
        print(json.dumps(session.stats().model_dump(), indent=2))
        return 0

    from .core.graph_builder import export_graph_to_json

    if args.node:
        session.select(args.node)
        graph = session.detail()
        if graph is None:
            print(f"Error: {args.node!r} is not a drillable downstream node")
            return 1
    else:
        graph = session.overview()
    export_graph_to_json(graph, Path(args.output))
    print(f"Wrote {len(graph.nodes)} nodes, {len(graph.links)} links to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
