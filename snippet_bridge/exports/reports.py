from __future__ import annotations
from typing import List

from snippet_bridge.api.pipeline import ApplicationResult, ParseMiss


def parse_miss_md(miss: ParseMiss) -> str:
    lines = ["# Parse Miss", "", f"No {miss.tag_name} component found in the pasted code.", ""]
    lines.append("Make sure your code includes something like:")
    lines.append("")
    lines.append("```")
    lines.append(miss.example)
    lines.append("```")
    return "\n".join(lines) + "\n"


def _result_lines(result: ApplicationResult, depth: int = 2) -> List[str]:
    h = "#" * depth
    lines = [f"{h} {result.kind}", ""]
    strategy = result.strategy_index_used
    lines.append(f"- strategy: {strategy if strategy is not None else 'none'}")
    lines.append(f"- applied: {', '.join(sorted(result.applied_canonical_keys)) or '-'}")
    if result.rejected_keys:
        lines.append(f"- rejected: {', '.join(sorted(result.rejected_keys))}")
    for leaf, text in result.text_assignments.items():
        lines.append(f"- text {leaf}: {text}")
    if result.issues:
        lines.append("")
        lines.append(f"{h}# Warnings")
        for issue in result.issues:
            lines.append(f"- {issue.code}: {issue.message}")
    for child in result.children:
        lines.append("")
        lines.extend(_result_lines(child, depth + 1))
    return lines


def application_report_md(result: ApplicationResult) -> str:
    lines = ["# Application Report", ""]
    lines.extend(_result_lines(result))
    return "\n".join(lines) + "\n"
