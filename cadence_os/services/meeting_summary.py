"""Markdown summary assembled when an L10 meeting ends.

Pure data shaping: the meeting service gathers rows into the dataclasses
below and `build_summary` renders them. Nothing here touches the database.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from .scorecard import goal_bucket

OUTCOME_LABELS = {
    "solved": "✓ Solved",
    "todo_created": "→ To-Do",
    "killed": "✗ Killed",
    "pushed": "↻ Pushed",
}

HEADLINE_EMOJI = {
    "customer": "🎉",
    "employee": "⭐",
    "general": "📢",
}

ATTENTION_ROCK_STATUSES = ("off_track", "at_risk")


@dataclass
class AttendeeLine:
    profile_id: str
    full_name: str


@dataclass
class HeadlineLine:
    title: str
    headline_type: str
    author: str | None
    created_at: datetime


@dataclass
class TodoReviewLine:
    title: str
    status: str  # done | not_done | pushed
    owner: str | None


@dataclass
class IssueLine:
    title: str
    outcome: str | None
    decision_notes: str | None = None
    todo_title: str | None = None
    todo_owner: str | None = None
    todo_due_date: date | None = None


@dataclass
class NewTodoLine:
    title: str
    owner: str | None
    due_date: date | None


@dataclass
class SummaryInput:
    """Everything the end-of-meeting summary renders."""
    meeting_date: datetime
    duration_minutes: int
    attendees: list[AttendeeLine] = field(default_factory=list)
    ratings: dict[str, float] | None = None
    scorecard_snapshot: list[dict[str, Any]] = field(default_factory=list)
    current_metric_values: dict[str, float | None] = field(default_factory=dict)
    rocks_snapshot: list[dict[str, Any]] = field(default_factory=list)
    current_rock_statuses: dict[str, str] = field(default_factory=dict)
    headlines: list[HeadlineLine] = field(default_factory=list)
    todos_reviewed: list[TodoReviewLine] = field(default_factory=list)
    issues_discussed: list[IssueLine] = field(default_factory=list)
    new_todos: list[NewTodoLine] = field(default_factory=list)
    cascading_messages: str | None = None


# =============================================================================
# HELPERS
# =============================================================================


def average_rating(ratings: dict[str, float] | None) -> float | None:
    """Mean of all supplied ratings, rounded to one decimal. None when empty."""
    if not ratings:
        return None
    values = [float(v) for v in ratings.values()]
    return round(sum(values) / len(values), 1)


def outcome_label(outcome: str | None) -> str:
    """Display label; missing or unknown outcomes read as pushed."""
    return OUTCOME_LABELS.get(outcome or "", OUTCOME_LABELS["pushed"])


def normalize_outcome(outcome: str | None) -> str:
    return outcome if outcome in OUTCOME_LABELS else "pushed"


def format_long_date(value: datetime | date) -> str:
    """e.g. 'Monday, March 3, 2025'."""
    return f"{value:%A}, {value:%B} {value.day}, {value.year}"


def format_short_date(value: date) -> str:
    return f"{value.month}/{value.day}/{value.year}"


def format_number(value: float | None) -> str:
    if value is None:
        return "—"
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def format_rating(value: float) -> str:
    return format_number(value)


# =============================================================================
# SECTIONS
# =============================================================================


def _attendees_section(data: SummaryInput) -> list[str]:
    if not data.attendees:
        return []
    ratings = data.ratings or {}
    lines = ["## Attendees", ""]
    for attendee in data.attendees:
        rating = ratings.get(attendee.profile_id)
        if rating is not None:
            lines.append(f"- {attendee.full_name} — rated **{format_rating(rating)}/10**")
        else:
            lines.append(f"- {attendee.full_name}")
    average = average_rating(data.ratings)
    if average is not None:
        lines += ["", f"**Team Average: {average:.1f}/10**"]
    lines.append("")
    return lines


def _scorecard_section(data: SummaryInput) -> list[str]:
    if not data.scorecard_snapshot:
        return []

    on_track, off_track = [], []
    for metric in data.scorecard_snapshot:
        metric_id = metric.get("id")
        start_value = metric.get("current_value")
        value = data.current_metric_values.get(metric_id, start_value)
        bucket = goal_bucket(value, metric.get("goal"))
        if bucket == "on_track":
            on_track.append((metric, value, start_value))
        elif bucket == "off_track":
            off_track.append((metric, value, start_value))

    lines = [
        "## Scorecard Review",
        "",
        f"- **On Track:** {len(on_track)}",
        f"- **Off Track:** {len(off_track)}",
        "",
    ]
    if off_track:
        lines.append("**Metrics Needing Attention:**")
        for metric, value, start_value in off_track:
            unit = metric.get("unit") or ""
            line = (
                f"- {metric.get('name')}: {format_number(value)}{unit} "
                f"(goal: {format_number(metric.get('goal'))}{unit})"
            )
            if start_value is not None and start_value != value:
                line += f" — was {format_number(start_value)}{unit} at start"
            lines.append(line)
        lines.append("")
    return lines


def _rocks_section(data: SummaryInput) -> list[str]:
    if not data.rocks_snapshot:
        return []

    rocks = []
    for rock in data.rocks_snapshot:
        start_status = rock.get("status")
        status = data.current_rock_statuses.get(rock.get("id"), start_status)
        rocks.append((rock, status, start_status))

    def count(*statuses: str) -> int:
        return sum(1 for _, status, _ in rocks if status in statuses)

    lines = [
        "## Rock Review",
        "",
        f"- **On Track:** {count('on_track')}",
        f"- **Off Track:** {count('off_track')}",
        f"- **At Risk:** {count('at_risk')}",
        f"- **Complete:** {count('complete', 'done')}",
        "",
    ]

    attention = [
        r for status in ATTENTION_ROCK_STATUSES for r in rocks if r[1] == status
    ]
    if attention:
        lines.append("**Rocks Needing Attention:**")
        for rock, status, start_status in attention:
            owner = (rock.get("owner") or {}).get("full_name") or "Unassigned"
            line = f"- {rock.get('title')} ({status.replace('_', ' ')}) — {owner}"
            if start_status and start_status != status:
                line += f" — was {start_status.replace('_', ' ')} at start"
            lines.append(line)
        lines.append("")
    return lines


def _headlines_section(data: SummaryInput) -> list[str]:
    if not data.headlines:
        return []
    lines = ["## Headlines", ""]
    for headline in sorted(data.headlines, key=lambda h: h.created_at, reverse=True):
        emoji = HEADLINE_EMOJI.get(headline.headline_type, HEADLINE_EMOJI["general"])
        lines.append(f"- {emoji} {headline.title} — *{headline.author or 'Unknown'}*")
    lines.append("")
    return lines


def _todo_review_section(data: SummaryInput) -> list[str]:
    if not data.todos_reviewed:
        return []
    done = [t for t in data.todos_reviewed if t.status == "done"]
    not_done = [t for t in data.todos_reviewed if t.status == "not_done"]
    pushed = [t for t in data.todos_reviewed if t.status == "pushed"]

    lines = [
        "## To-Do Review",
        "",
        f"- **Done:** {len(done)}",
        f"- **Not Done:** {len(not_done)}",
        f"- **Pushed:** {len(pushed)}",
        "",
    ]
    if not_done:
        lines.append("**Incomplete To-Dos:**")
        for todo in not_done:
            lines.append(f"- {todo.title} — {todo.owner or 'Unassigned'}")
        lines.append("")
    return lines


def _ids_section(data: SummaryInput) -> list[str]:
    if not data.issues_discussed:
        return []
    outcomes = [normalize_outcome(i.outcome) for i in data.issues_discussed]

    lines = [
        "## IDS - Issues Discussed",
        "",
        f"- **Solved:** {outcomes.count('solved')}",
        f"- **To-Do Created:** {outcomes.count('todo_created')}",
        f"- **Pushed to Next Week:** {outcomes.count('pushed')}",
        f"- **Killed:** {outcomes.count('killed')}",
        "",
    ]
    for issue in data.issues_discussed:
        lines += [f"### {issue.title}", "", f"**Outcome:** {outcome_label(issue.outcome)}", ""]
        if issue.decision_notes:
            lines += [f"**Decision:** {issue.decision_notes}", ""]
        if issue.outcome == "todo_created" and issue.todo_title:
            lines.append(f"**Action Item:** {issue.todo_title}")
            if issue.todo_owner:
                lines.append(f"**Owner:** {issue.todo_owner}")
            if issue.todo_due_date:
                lines.append(f"**Due:** {format_short_date(issue.todo_due_date)}")
            lines.append("")
    return lines


def _new_todos_section(data: SummaryInput) -> list[str]:
    if not data.new_todos:
        return []
    lines = ["## New To-Dos Created", ""]
    for todo in data.new_todos:
        due = format_short_date(todo.due_date) if todo.due_date else "No due date"
        lines.append(f"- {todo.title} — {todo.owner or 'Unassigned'} (due: {due})")
    lines.append("")
    return lines


def _cascading_section(data: SummaryInput) -> list[str]:
    if not data.cascading_messages:
        return []
    return ["## Cascading Messages", "", data.cascading_messages, ""]


SECTIONS = (
    _attendees_section,
    _scorecard_section,
    _rocks_section,
    _headlines_section,
    _todo_review_section,
    _ids_section,
    _new_todos_section,
    _cascading_section,
)


def build_summary(data: SummaryInput) -> str:
    """Render the end-of-meeting markdown summary."""
    lines = [
        "# L10 Meeting Summary",
        "",
        f"**Date:** {format_long_date(data.meeting_date)}",
        "",
        f"**Duration:** {data.duration_minutes} minutes",
        "",
    ]
    for section in SECTIONS:
        lines += section(data)
    return "\n".join(lines).rstrip() + "\n"
