"""
Comparison

Handles the ``compare`` prompt: re-collect a reference data source, diff
it against the payload stored from the previous run and report the
difference. The agent is never involved.
"""

import difflib
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from .data_sources.base import DataSource, error_marker, is_error_marker
from .errors import ConfigurationError
from .executor import AGENT_PREFIX, USER_PREFIX
from .plan import AnalysisPlan
from .prompts import COMPARE_COMMAND
from .store import StateStore

logger = logging.getLogger(__name__)


# Lighthouse audit id -> display label. Lower numeric values are better.
KEY_AUDITS: Dict[str, str] = {
    "first-contentful-paint": "First Contentful Paint",
    "largest-contentful-paint": "Largest Contentful Paint",
    "total-blocking-time": "Total Blocking Time",
    "cumulative-layout-shift": "Cumulative Layout Shift",
    "speed-index": "Speed Index",
    "interactive": "Time to Interactive",
}


def resolve_reference_source(plan: AnalysisPlan, name: str) -> Tuple[int, DataSource]:
    """The named source, or the plan's first data source."""
    found = plan.find_data_source(name)
    if found is not None:
        return found
    for index, step in plan.data_source_steps():
        if step.data_source is not None:
            logger.info(f"Reference source '{name}' not in plan, comparing '{step.title}' instead")
            return index, step.data_source
    raise ConfigurationError("The plan has no data source to compare")


def _parse_json(text: str) -> Optional[Any]:
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return None


def lighthouse_metrics(result: Dict[str, Any]) -> Dict[str, float]:
    """
    Pull the performance score and key audit values from one PageSpeed result.

    The score is reported on a 0-100 scale under ``"score"``.
    """
    lighthouse = result.get("lighthouseResult", result) if isinstance(result, dict) else {}
    metrics: Dict[str, float] = {}

    score = ((lighthouse.get("categories") or {}).get("performance") or {}).get("score")
    if isinstance(score, (int, float)):
        metrics["score"] = round(float(score) * 100, 1)

    audits = lighthouse.get("audits") or {}
    for audit_id in KEY_AUDITS:
        value = (audits.get(audit_id) or {}).get("numericValue")
        if isinstance(value, (int, float)):
            metrics[audit_id] = float(value)
    return metrics


def _describe_change(label: str, before: float, after: float, higher_is_better: bool) -> str:
    if abs(after - before) < 1e-9:
        return f"{label}: unchanged ({after:g})"
    improved = (after > before) == higher_is_better
    verdict = "improved" if improved else "regressed"
    return f"{label}: {verdict} from {before:g} to {after:g}"


def compare_lighthouse(previous: Dict[str, Any], current: Dict[str, Any]) -> List[str]:
    """Per-strategy comparison of two Lighthouse payloads."""
    lines: List[str] = []
    for strategy in sorted(set(previous) | set(current)):
        if strategy not in previous or strategy not in current:
            lines.append(f"{strategy}: only present in the {'current' if strategy in current else 'previous'} run")
            continue
        before = lighthouse_metrics(previous[strategy])
        after = lighthouse_metrics(current[strategy])
        lines.append(f"{strategy}:")
        if "score" in before and "score" in after:
            lines.append("  " + _describe_change("Performance score", before["score"], after["score"], True))
        for audit_id, label in KEY_AUDITS.items():
            if audit_id in before and audit_id in after:
                lines.append("  " + _describe_change(label, before[audit_id], after[audit_id], False))
    return lines


def compare_text(previous: str, current: str) -> List[str]:
    """Fallback comparison for payloads without known structure."""
    if previous == current:
        return ["The data is unchanged since the previous run."]
    previous_lines = previous.splitlines()
    current_lines = current.splitlines()
    added = removed = 0
    for line in difflib.ndiff(previous_lines, current_lines):
        if line.startswith("+ "):
            added += 1
        elif line.startswith("- "):
            removed += 1
    ratio = difflib.SequenceMatcher(None, previous, current).ratio()
    return [
        f"Similarity to the previous run: {ratio:.0%}",
        f"Lines added: {added}, lines removed: {removed}",
    ]


def describe_difference(previous: str, current: str) -> List[str]:
    previous_json = _parse_json(previous)
    current_json = _parse_json(current)
    if isinstance(previous_json, dict) and isinstance(current_json, dict):
        lines = compare_lighthouse(previous_json, current_json)
        if any(line.startswith("  ") for line in lines):
            return lines
    return compare_text(previous, current)


def compare(
    plan: AnalysisPlan,
    store: StateStore,
    session_id: str,
    reference_source: str = "Lighthouse",
    debug_mode: bool = False,
) -> List[str]:
    """
    Re-run the reference source and diff it against the stored payload.

    In debug mode nothing is fetched and the stored snapshot is left alone.

    Returns
    -------
    list of str
        Two transcript lines: the ``compare`` request and the report.
    """
    index, source = resolve_reference_source(plan, reference_source)
    header = f"Comparison of {source.get_name()} with the previous run"
    if debug_mode:
        body = [header, "Debug mode: no fresh data was collected."]
        return [USER_PREFIX + COMPARE_COMMAND, AGENT_PREFIX + "\n".join(body)]

    logger.info(f"Comparing '{source.get_name()}' (step {index}) for session '{session_id}'")
    try:
        current = source.get_data()
    except Exception as e:
        logger.exception(f"Data source '{source.get_name()}' raised during comparison")
        current = error_marker(str(e) or type(e).__name__)
    if is_error_marker(current) or not current:
        body = [header, f"Could not collect fresh data: {current or 'empty payload'}"]
        return [USER_PREFIX + COMPARE_COMMAND, AGENT_PREFIX + "\n".join(body)]

    with store.lock(session_id):
        previous = store.load_snapshot(session_id, index)
        store.save_snapshot(session_id, index, current)

    if previous is None:
        body = [header, "No previous data was stored. This run has been saved as the baseline."]
    else:
        body = [header] + describe_difference(previous, current)
    return [USER_PREFIX + COMPARE_COMMAND, AGENT_PREFIX + "\n".join(body)]
