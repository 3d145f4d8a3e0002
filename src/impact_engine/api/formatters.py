"""Rendering of analysis results for the command line.

Each analysis has a ``format_*`` function taking the result objects and a
format name.  Result tables support json, csv and a human-readable summary;
the system report supports json, markdown and plain text.
"""

from __future__ import annotations

import csv
import io
import json
from dataclasses import asdict
from datetime import datetime
from typing import Any

from impact_engine.application.queries.analyze_impact import ImpactEdge, summarize_impact
from impact_engine.application.queries.critical_fields import (
    CriticalFieldsSummary,
    FieldImpact,
)
from impact_engine.application.queries.find_paths import DependencyPath, PathSummary
from impact_engine.application.queries.impact_summary import SystemReport
from impact_engine.domain.exceptions import InvalidParameterError

RESULT_FORMATS = ("json", "csv", "summary")
REPORT_FORMATS = ("json", "markdown", "text")

_PATH_LISTING_LIMIT = 20


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, default=_json_default)


def _csv(headers: list[str], rows: list[list[Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return buffer.getvalue().rstrip("\n")


def _unknown(fmt: str, allowed: tuple[str, ...]) -> InvalidParameterError:
    return InvalidParameterError(
        f"Unknown format: {fmt} (expected one of {', '.join(allowed)})",
        {"format": fmt},
    )


# ---------------------------------------------------------------------------
# Impact / dependencies
# ---------------------------------------------------------------------------


def format_impact(edges: list[ImpactEdge], fmt: str = "summary") -> str:
    if fmt == "json":
        return _dumps([asdict(e) for e in edges])

    if fmt == "csv":
        return _csv(
            [
                "Source Unit",
                "Source Output Field",
                "Affected Unit",
                "Affected Output Field",
                "Impact Depth",
                "Path Fields",
            ],
            [
                [
                    e.source_unit or "",
                    e.source_output_field or "",
                    e.affected_unit,
                    e.affected_output_field or "",
                    e.depth,
                    " -> ".join(e.path_fields),
                ]
                for e in edges
            ],
        )

    if fmt == "summary":
        summary = summarize_impact(edges)
        lines = [
            "Impact Analysis Summary",
            "=======================",
            "",
            f"Total Affected Units: {summary.total_affected_units}",
            f"Maximum Impact Depth: {summary.max_depth}",
            "",
            "Top Field Impact Counts:",
        ]
        lines += [f"  {name}: {count} impacts" for name, count in summary.field_impact_counts]
        lines += ["", "Critical Paths (Max Depth):"]
        lines += [
            "  " + " -> ".join(
                [e.source_output_field or e.source_unit or "?"]
                + e.path_fields
                + [e.affected_output_field or e.affected_unit]
            )
            for e in summary.critical_paths
        ]
        return "\n".join(lines)

    raise _unknown(fmt, RESULT_FORMATS)


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------


def _path_dict(path: DependencyPath) -> dict[str, Any]:
    return {**asdict(path), "description": path.description}


def format_paths(paths: list[DependencyPath], summary: PathSummary, fmt: str = "summary") -> str:
    if fmt == "json":
        summary_dict = asdict(summary)
        for key in ("shortest_path", "longest_path"):
            chosen = getattr(summary, key)
            summary_dict[key] = _path_dict(chosen) if chosen is not None else None
        return _dumps({"paths": [_path_dict(p) for p in paths], "summary": summary_dict})

    if fmt == "csv":
        return _csv(
            ["Source Unit", "Target Unit", "Path Length", "Path Description"],
            [[p.source, p.target, p.length, p.description] for p in paths],
        )

    if fmt == "summary":
        lines = [
            "Dependency Path Analysis",
            "========================",
            "",
            f"Total Paths Found: {summary.total_paths}",
        ]
        if summary.shortest_path is None:
            lines.append("No paths found")
        else:
            lines.append(f"Shortest Path Length: {summary.shortest_path.length}")
            lines.append(f"Longest Path Length: {summary.longest_path.length}")
        lines.append(f"Average Path Length: {summary.average_length:.1f}")

        if summary.shortest_path is not None:
            lines += ["", "Shortest Path:", summary.shortest_path.description]
            if summary.longest_path is not summary.shortest_path:
                lines += ["", "Longest Path:", summary.longest_path.description]

        lines += ["", "Most Common Intermediate Fields:"]
        lines += [
            f"  {name} (appears in {count} paths)"
            for name, count in summary.common_intermediate_fields
        ]
        lines += ["", "Critical Intermediate Units:"]
        lines += [
            f"  {name} (appears in {count} paths)"
            for name, count in summary.critical_intermediate_units
        ]
        lines += ["", "All Paths:"]
        lines += [
            f"{i}. Length {p.length}: {p.description}"
            for i, p in enumerate(paths[:_PATH_LISTING_LIMIT], start=1)
        ]
        if len(paths) > _PATH_LISTING_LIMIT:
            lines.append(f"... and {len(paths) - _PATH_LISTING_LIMIT} more paths")
        return "\n".join(lines)

    raise _unknown(fmt, RESULT_FORMATS)


# ---------------------------------------------------------------------------
# Critical fields
# ---------------------------------------------------------------------------


def _field_dict(item: FieldImpact) -> dict[str, Any]:
    return {**asdict(item), "risk": item.risk.level.value}


def format_critical_fields(
    fields: list[FieldImpact],
    summary: CriticalFieldsSummary,
    fmt: str = "summary",
) -> str:
    if fmt == "json":
        summary_dict = asdict(summary)
        summary_dict["top_fields"] = [_field_dict(f) for f in summary.top_fields]
        summary_dict["risk_counts"] = {
            level.value: count for level, count in summary.risk_counts.items()
        }
        return _dumps({"fields": [_field_dict(f) for f in fields], "summary": summary_dict})

    if fmt == "csv":
        return _csv(
            ["Field Name", "Producer Count", "Consumer Count", "Impact Ratio", "Total Connections"],
            [
                [f.field, f.producer_count, f.consumer_count, f"{f.impact_ratio:.2f}", f.total_connections]
                for f in fields
            ],
        )

    if fmt == "summary":
        lines = [
            "Critical Fields Analysis",
            "========================",
            "",
            f"Total Analyzed Fields: {summary.total_fields}",
            f"Average Consumer Count: {summary.average_consumers:.1f}",
            f"Maximum Consumer Count: {summary.max_consumers}",
        ]
        if summary.distribution is not None:
            lines += ["", "Impact Distribution:"]
            lines += [
                f"  {band.label} consumers: {band.count} fields ({band.percentage}%)"
                for band in summary.distribution.consumer_bands
            ]
        lines += ["", "Top Critical Fields:"]
        for i, f in enumerate(summary.top_fields, start=1):
            lines += [
                f"{i}. {f.field}",
                f"     Consumers: {f.consumer_count}, Producers: {f.producer_count}",
                f"     Impact Ratio: {f.impact_ratio:.2f} (consumers per producer)",
            ]
        lines += ["", "Risk Assessment:"]
        lines += [
            f"  {f.field}: {f.risk.level.value} RISK ({f.consumer_count} affected units)"
            for f in summary.top_fields[:5]
        ]
        return "\n".join(lines)

    raise _unknown(fmt, RESULT_FORMATS)


# ---------------------------------------------------------------------------
# System report
# ---------------------------------------------------------------------------


def format_report(report: SystemReport, fmt: str = "markdown") -> str:
    if fmt == "json":
        payload = asdict(report)
        if report.distribution is not None:
            for key in ("top_consumer_fields", "top_producer_fields"):
                payload["distribution"][key] = [
                    _field_dict(f) for f in getattr(report.distribution, key)
                ]
        return _dumps(payload)
    if fmt == "markdown":
        return _report_markdown(report)
    if fmt == "text":
        return _report_text(report)
    raise _unknown(fmt, REPORT_FORMATS)


def _report_markdown(report: SystemReport) -> str:
    stats, risk = report.stats, report.risk
    lines = [
        "# System Impact Analysis Report",
        "",
        f"**Generated:** {report.generated_at.isoformat()}",
        "",
        "## Executive Summary",
        "",
        f"The system has **{stats.total_units:,}** units managing "
        f"**{stats.total_fields:,}** fields through **{stats.total_edges:,}** relationships.",
        "",
        f"**System Fragility: {risk.fragility.value}**",
        "",
        "## System Statistics",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Total Units | {stats.total_units:,} |",
        f"| Total Fields | {stats.total_fields:,} |",
        f"| Total Relationships | {stats.total_edges:,} |",
        f"| Average Input Fields per Unit | {stats.avg_input_fields:.1f} |",
        f"| Average Output Fields per Unit | {stats.avg_output_fields:.1f} |",
        f"| Maximum Input Fields | {stats.max_input_fields} |",
        f"| Maximum Output Fields | {stats.max_output_fields} |",
    ]

    if report.distribution is not None:
        dist = report.distribution
        lines += ["", "## Field Distribution Analysis", "", "### By Consumer Count"]
        lines += [
            f"- **{b.label} consumers**: {b.count:,} fields ({b.percentage}%)"
            for b in dist.consumer_bands
        ]
        lines += ["", "### By Producer Count"]
        lines += [
            f"- **{b.label} producers**: {b.count:,} fields ({b.percentage}%)"
            for b in dist.producer_bands
        ]
        lines += ["", "### Critical Fields (Top Consumers)"]
        lines += [
            f"{i}. **{f.field}**: {f.consumer_count:,} consumers, {f.producer_count} producers"
            for i, f in enumerate(dist.top_consumer_fields, start=1)
        ]
        lines += ["", "### Top Producer Fields"]
        lines += [
            f"{i}. **{f.field}**: {f.producer_count:,} producers, {f.consumer_count} consumers"
            for i, f in enumerate(dist.top_producer_fields, start=1)
        ]

    if report.connectivity is not None:
        conn = report.connectivity
        lines += [
            "",
            "## Connectivity Analysis",
            "",
            f"- **Connected Components**: {conn.connected_components}",
            f"- **Largest Component Size**: {conn.largest_component_size:,}",
            f"- **Isolated Units**: {conn.isolated_units}",
            "",
            "### Highly Connected Units",
        ]
        lines += [
            f"{i}. **{name}**: {count:,} connections"
            for i, (name, count) in enumerate(conn.highly_connected_units, start=1)
        ]

    lines += ["", "## Risk Assessment", "", "### Critical Fields Analysis"]
    for f in risk.critical_fields[:10]:
        lines += [
            "",
            f"#### {f.field} - {f.level.value} RISK",
            f"**Impact**: {f.impact}  ",
            f"**Recommendation**: {f.recommendation}",
        ]
    lines += ["", "### Recommended Actions"]
    lines += [f"- {action}" for action in risk.recommended_actions]
    return "\n".join(lines)


def _section(title: str) -> list[str]:
    return ["", title, "-" * len(title)]


def _report_text(report: SystemReport) -> str:
    stats, risk = report.stats, report.risk
    lines = [
        "SYSTEM IMPACT ANALYSIS REPORT",
        "=============================",
        "",
        f"Generated: {report.generated_at.isoformat()}",
    ]
    lines += _section("EXECUTIVE SUMMARY")
    lines += [
        f"System Fragility: {risk.fragility.value}",
        f"Total Units: {stats.total_units:,}",
        f"Total Fields: {stats.total_fields:,}",
        f"Total Relationships: {stats.total_edges:,}",
    ]
    lines += _section("SYSTEM STATISTICS")
    lines += [
        f"Average Input Fields per Unit: {stats.avg_input_fields:.1f}",
        f"Average Output Fields per Unit: {stats.avg_output_fields:.1f}",
        f"Maximum Input Fields: {stats.max_input_fields}",
        f"Maximum Output Fields: {stats.max_output_fields}",
    ]

    if report.distribution is not None:
        lines += _section("FIELD DISTRIBUTION")
        lines.append("Consumer Count Distribution:")
        lines += [
            f"  {b.label} consumers: {b.count:,} fields ({b.percentage}%)"
            for b in report.distribution.consumer_bands
        ]
        lines += ["", "Critical Fields (Top Consumers):"]
        lines += [
            f"  {i}. {f.field}: {f.consumer_count:,} consumers"
            for i, f in enumerate(report.distribution.top_consumer_fields, start=1)
        ]

    if report.connectivity is not None:
        conn = report.connectivity
        lines += _section("CONNECTIVITY ANALYSIS")
        lines += [
            f"Connected Components: {conn.connected_components}",
            f"Largest Component Size: {conn.largest_component_size:,}",
            f"Isolated Units: {conn.isolated_units}",
            "",
            "Highly Connected Units:",
        ]
        lines += [
            f"  {i}. {name}: {count:,} connections"
            for i, (name, count) in enumerate(conn.highly_connected_units, start=1)
        ]

    lines += _section("RISK ASSESSMENT")
    lines += [f"{f.field}: {f.level.value} RISK - {f.impact}" for f in risk.critical_fields[:5]]
    lines += _section("RECOMMENDED ACTIONS")
    lines += [f"{i}. {action}" for i, action in enumerate(risk.recommended_actions, start=1)]
    return "\n".join(lines)
