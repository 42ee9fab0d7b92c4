"""Temporal Integrity Enforcer.

The generator cannot be trusted with calendar arithmetic, so every schedule
it returns is clamped into the project envelope ``[start, end]`` and
impossible Finish-to-Start edges are relaxed to Start-to-Start. Dates that do
not parse are replaced with the envelope bounds. ``enforce_envelope`` never
raises for bad input; all corrections are logged. ``check_envelope`` is the
post-repair check and raises InvariantViolation.
"""

import calendar
import copy
import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple

from exceptions import InvariantViolation

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MONTHS = 24

Activities = List[Dict[str, Any]]


def parse_date(value: Any) -> Optional[date]:
    """Parse a YYYY-MM-DD string (trailing time part ignored); None if invalid."""
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or len(value.strip()) < 10:
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def add_months(start: date, months: int) -> date:
    """Calendar-correct month addition; the day is clamped to the target month's length."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def project_end_date(start: date, duration_months: int) -> date:
    """Last day of a project that starts on ``start`` and runs ``duration_months``.

    2026-01-31 + 1 month -> 2026-02-28 (clamped) -> 2026-02-27.
    """
    return add_months(start, duration_months) - timedelta(days=1)


def project_envelope(
    document: Dict[str, Any],
    default_duration: int = DEFAULT_DURATION_MONTHS,
) -> Optional[Tuple[date, date, int]]:
    """(start, end, months) from ``projectIdea``; None when no valid start date is set."""
    idea = (document or {}).get("projectIdea") or {}
    start = parse_date(idea.get("startDate"))
    if start is None:
        return None
    months = idea.get("durationMonths") or default_duration
    try:
        months = int(months)
    except (TypeError, ValueError):
        months = default_duration
    if months < 1:
        months = default_duration
    return start, project_end_date(start, months), months


def _tasks(wp: Any) -> List[Dict[str, Any]]:
    if not isinstance(wp, dict):
        return []
    return [task for task in wp.get("tasks") or [] if isinstance(task, dict)]


def _clamp(value: date, low: date, high: date) -> date:
    return max(low, min(value, high))


def sanitize_dependencies(activities: Activities) -> int:
    """Relax FS edges whose successor does not start strictly after the predecessor ends.

    Mutates ``activities`` in place.

    Returns:
        Number of dependency types changed
    """
    spans: Dict[str, Tuple[date, date]] = {}
    for wp in activities:
        for task in _tasks(wp):
            start, end = parse_date(task.get("startDate")), parse_date(task.get("endDate"))
            if task.get("id") and start and end:
                spans[task["id"]] = (start, end)

    fixes = 0
    for wp in activities:
        for task in _tasks(wp):
            current = spans.get(task.get("id"))
            for dep in task.get("dependencies") or []:
                if not isinstance(dep, dict):
                    continue
                predecessor = spans.get(dep.get("predecessorId"))
                if current and predecessor and dep.get("type") == "FS" and current[0] <= predecessor[1]:
                    logger.debug("Dependency %s -> %s: FS changed to SS", dep.get("predecessorId"), task.get("id"))
                    dep["type"] = "SS"
                    fixes += 1
    return fixes


def _span_whole_project(wp: Dict[str, Any], start: date, end: date) -> int:
    """First task starts on ``start`` and last task ends on ``end``."""
    tasks = _tasks(wp)
    if not tasks:
        return 0
    ordered = sorted(tasks, key=lambda task: parse_date(task.get("startDate")) or date.max)
    fixes = 0
    if ordered[0].get("startDate") != start.isoformat():
        ordered[0]["startDate"] = start.isoformat()
        fixes += 1
    if ordered[-1].get("endDate") != end.isoformat():
        ordered[-1]["endDate"] = end.isoformat()
        fixes += 1
    return fixes


def _repaired(value: Any, fallback: date, low: date, high: date) -> Tuple[date, bool]:
    """``value`` clamped into ``[low, high]``, or ``fallback`` when it does not parse."""
    parsed = parse_date(value)
    if parsed is None:
        return fallback, True
    clamped = _clamp(parsed, low, high)
    return clamped, clamped != parsed or value != clamped.isoformat()


def clamp_schedule(activities: Activities, project_start: date, project_end: date) -> int:
    """Move every task and milestone date into ``[project_start, project_end]``.

    Missing or unparseable task starts become ``project_start``; missing or
    unparseable task ends and milestone dates become ``project_end``. A task
    that starts after it ends is collapsed onto its end date. Mutates
    ``activities`` in place.

    Returns:
        Number of dates changed
    """
    fixes = 0
    for wp in activities:
        if not isinstance(wp, dict):
            continue
        for task in _tasks(wp):
            start, changed = _repaired(task.get("startDate"), project_start, project_start, project_end)
            fixes += changed
            end, changed = _repaired(task.get("endDate"), project_end, project_start, project_end)
            fixes += changed
            if start > end:
                start = end
                fixes += 1
            task["startDate"] = start.isoformat()
            task["endDate"] = end.isoformat()

        for milestone in wp.get("milestones") or []:
            if not isinstance(milestone, dict):
                continue
            when, changed = _repaired(milestone.get("date"), project_end, project_start, project_end)
            fixes += changed
            milestone["date"] = when.isoformat()
    return fixes


def check_envelope(activities: Activities, project_start: date, project_end: date) -> None:
    """Raise InvariantViolation if any task or milestone date is invalid or outside the envelope."""
    for wp in activities:
        if not isinstance(wp, dict):
            continue
        dated = [(task.get("id"), task.get(key)) for task in _tasks(wp) for key in ("startDate", "endDate")]
        dated += [
            (milestone.get("id"), milestone.get("date"))
            for milestone in wp.get("milestones") or []
            if isinstance(milestone, dict)
        ]
        for item_id, value in dated:
            parsed = parse_date(value)
            if parsed is None or not project_start <= parsed <= project_end:
                raise InvariantViolation(
                    f"{wp.get('id')}/{item_id}: date {value!r} outside "
                    f"{project_start.isoformat()} to {project_end.isoformat()}"
                )


def enforce_envelope(
    activities: Optional[Activities],
    project_start: Optional[date],
    project_end: Optional[date],
    span_horizontal: bool = True,
) -> Optional[Activities]:
    """Clamp all task and milestone dates into ``[project_start, project_end]``.

    Args:
        activities: Work packages as plain dicts
        project_start: First project day; None makes this a no-op
        project_end: Last project day
        span_horizontal: Stretch the last two work packages (dissemination and
            management) over the whole project

    Returns:
        A corrected copy; the input itself when empty or no start is known
    """
    if not activities or project_start is None or project_end is None:
        return activities
    if project_end < project_start:
        project_end = project_start

    result = copy.deepcopy(activities)
    fixes = clamp_schedule(result, project_start, project_end)

    work_packages = [wp for wp in result if isinstance(wp, dict)]
    if span_horizontal and len(work_packages) >= 2:
        for wp in work_packages[-2:]:
            fixes += _span_whole_project(wp, project_start, project_end)

    fixes += sanitize_dependencies(work_packages)

    try:
        check_envelope(work_packages, project_start, project_end)
    except InvariantViolation as e:
        logger.error("Schedule still outside the envelope after repair: %s", e)

    if fixes:
        logger.info(
            "Applied %d schedule correction(s) for envelope %s to %s",
            fixes,
            project_start.isoformat(),
            project_end.isoformat(),
        )
    else:
        logger.debug("All dates already within %s to %s", project_start.isoformat(), project_end.isoformat())
    return result
