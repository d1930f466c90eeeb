"""Print the dependency graph, validation errors and live visibility for a field catalog."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..analyzers.dependency_graph import DependencyGraphBuilder, format_cycle
from ..analyzers.validation import summarize, validate_catalog
from ..config.catalog_loader import catalog_from_dicts, load_catalog_document
from ..config.config_loader import load_settings
from ..config.settings import EngineSettings
from ..services.visibility_controller import VisibilityController
from ..utils.errors import FormLogicError
from ..utils.logging import configure_logging


def build_report(
    document: Dict[str, Any],
    values: Optional[Dict[str, Any]] = None,
    references_for: Optional[str] = None,
    settings: Optional[EngineSettings] = None,
) -> Dict[str, Any]:
    fields = catalog_from_dicts(document["fields"])
    answers = dict(document.get("values") or {})
    answers.update(values or {})

    builder = DependencyGraphBuilder(fields)
    graph = builder.get_graph()
    validation = builder.validate()
    issues = validate_catalog(fields)
    controller = VisibilityController(fields, initial_values=answers, settings=settings)

    report: Dict[str, Any] = {
        "evaluation_order": graph.evaluation_order,
        "nodes": {
            field_id: {
                "level": node.level,
                "dependencies": node.dependencies,
                "dependents": node.dependents,
            }
            for field_id, node in graph.nodes.items()
        },
        "cycles": graph.cycles,
        "is_valid": validation.is_valid,
        "errors": validation.errors,
        "issue_counts": summarize(issues),
        "visibility": {
            f.id: {
                "visible": controller.get_visibility(f.id),
                "reasons": controller.get_evaluation_result(f.id).reasons,
            }
            for f in fields
        },
    }
    if references_for:
        report["available_references"] = {
            references_for: [f.id for f in builder.get_available_references(references_for)]
        }
    return report


def print_report(report: Dict[str, Any]) -> None:
    print("Evaluation order:")
    for position, field_id in enumerate(report["evaluation_order"], start=1):
        node = report["nodes"][field_id]
        deps = ", ".join(node["dependencies"]) or "-"
        print(f"  {position:>3}. {field_id} (level {node['level']}; depends on {deps})")

    if report["cycles"]:
        print("\nCycles:")
        for cycle in report["cycles"]:
            print(f"  - {format_cycle(cycle)}")

    status = "valid" if report["is_valid"] else "INVALID"
    print(f"\nGraph is {status}")
    for error in report["errors"]:
        print(f"  - {error}")

    hidden: List[str] = [fid for fid, entry in report["visibility"].items() if not entry["visible"]]
    print(f"\nVisibility: {len(report['visibility']) - len(hidden)} visible • {len(hidden)} hidden")
    for field_id in hidden:
        reasons = "; ".join(report["visibility"][field_id]["reasons"])
        print(f"  - {field_id}: {reasons}")

    for field_id, refs in report.get("available_references", {}).items():
        print(f"\n{field_id} can reference: {', '.join(refs) or '-'}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m formlogic.scripts.inspect_catalog catalog.yaml
  python -m formlogic.scripts.inspect_catalog catalog.json --values '{"age": 21}'
  python -m formlogic.scripts.inspect_catalog catalog.yaml --references license_number --json
        """,
    )
    parser.add_argument("catalog", type=Path, help="YAML or JSON catalog file")
    parser.add_argument("--values", default=None, help="JSON object of answers, merged over the file's values")
    parser.add_argument("--references", default=None, help="Field id to list safe references for")
    parser.add_argument("--settings", type=Path, default=None, help="Engine settings YAML")
    parser.add_argument("--env-file", type=Path, default=None, help=".env file read before resolving env() placeholders")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.settings, env_file=args.env_file)
        configure_logging(settings.log_level, debug=settings.debug)
        document = load_catalog_document(args.catalog)
        values = json.loads(args.values) if args.values else None
        report = build_report(document, values, args.references, settings)
    except (FormLogicError, ValueError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(report, indent=2, default=str))
    else:
        print_report(report)
    return 0 if report["is_valid"] else 2


if __name__ == "__main__":
    sys.exit(main())
