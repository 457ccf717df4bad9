"""
Tests for the end-of-meeting markdown summary.

These cover the rendering rules only; the meeting service tests check
that the right rows are gathered into the summary input.
"""

from datetime import date, datetime, timezone

from cadence_os.services.meeting_summary import (
    AttendeeLine,
    HeadlineLine,
    IssueLine,
    NewTodoLine,
    SummaryInput,
    TodoReviewLine,
    average_rating,
    build_summary,
    format_long_date,
    outcome_label,
)

MEETING_DATE = datetime(2025, 3, 3, 15, 0, tzinfo=timezone.utc)


def summary_input(**overrides) -> SummaryInput:
    return SummaryInput(meeting_date=MEETING_DATE, duration_minutes=90, **overrides)


class TestHelpers:
    def test_long_date(self):
        assert format_long_date(MEETING_DATE) == "Monday, March 3, 2025"

    def test_average_rating_rounds_to_one_decimal(self):
        assert average_rating({"a": 8, "b": 9, "c": 9}) == 8.7

    def test_average_rating_empty(self):
        assert average_rating(None) is None
        assert average_rating({}) is None

    def test_unknown_outcome_reads_as_pushed(self):
        assert outcome_label(None) == "↻ Pushed"
        assert outcome_label("escalated") == "↻ Pushed"
        assert outcome_label("killed") == "✗ Killed"


class TestBuildSummary:
    def test_header_only_when_nothing_happened(self):
        text = build_summary(summary_input())

        assert text.startswith("# L10 Meeting Summary\n")
        assert "**Date:** Monday, March 3, 2025" in text
        assert "**Duration:** 90 minutes" in text
        assert "## Attendees" not in text
        assert "## Scorecard Review" not in text
        assert "## IDS - Issues Discussed" not in text

    def test_attendees_with_ratings_and_team_average(self):
        text = build_summary(
            summary_input(
                attendees=[AttendeeLine("p1", "Alice"), AttendeeLine("p2", "Bob")],
                ratings={"p1": 8, "p2": 9},
            )
        )

        assert "- Alice — rated **8/10**" in text
        assert "- Bob — rated **9/10**" in text
        assert "**Team Average: 8.5/10**" in text

    def test_attendee_without_rating(self):
        text = build_summary(summary_input(attendees=[AttendeeLine("p1", "Alice")]))

        assert "- Alice\n" in text
        assert "Team Average" not in text

    def test_scorecard_uses_end_values_and_notes_change(self):
        snapshot = [
            {"id": "m1", "name": "Revenue", "goal": 100, "unit": "k", "current_value": 120},
            {"id": "m2", "name": "Signups", "goal": 5, "unit": "%", "current_value": 4},
            {"id": "m3", "name": "NPS", "goal": None, "unit": None, "current_value": 40},
        ]
        text = build_summary(
            summary_input(
                scorecard_snapshot=snapshot,
                current_metric_values={"m1": 90, "m2": 4},
            )
        )

        # Metrics without a goal are counted in neither bucket
        assert "- **On Track:** 0" in text
        assert "- **Off Track:** 2" in text
        assert "- Revenue: 90k (goal: 100k) — was 120k at start" in text
        assert "- Signups: 4% (goal: 5%)\n" in text

    def test_rock_review_counts_and_attention_order(self):
        snapshot = [
            {"id": "r1", "title": "Launch v2", "status": "on_track",
             "owner": {"id": "p1", "full_name": "Alice"}},
            {"id": "r2", "title": "Hire CFO", "status": "on_track", "owner": None},
            {"id": "r3", "title": "SOC 2", "status": "off_track",
             "owner": {"id": "p2", "full_name": "Bob"}},
        ]
        text = build_summary(
            summary_input(
                rocks_snapshot=snapshot,
                current_rock_statuses={"r1": "complete", "r2": "at_risk"},
            )
        )

        assert "- **On Track:** 0" in text
        assert "- **Off Track:** 1" in text
        assert "- **At Risk:** 1" in text
        assert "- **Complete:** 1" in text
        off_track = text.index("- SOC 2 (off track) — Bob")
        at_risk = text.index("- Hire CFO (at risk) — Unassigned — was on track at start")
        assert off_track < at_risk

    def test_headlines_newest_first_with_emoji(self):
        text = build_summary(
            summary_input(
                headlines=[
                    HeadlineLine("Closed Acme", "customer", "Alice",
                                 datetime(2025, 3, 3, 9, tzinfo=timezone.utc)),
                    HeadlineLine("Jo is back", "employee", None,
                                 datetime(2025, 3, 3, 10, tzinfo=timezone.utc)),
                ]
            )
        )

        assert text.index("- ⭐ Jo is back — *Unknown*") < text.index("- 🎉 Closed Acme — *Alice*")

    def test_todo_review_lists_incomplete(self):
        text = build_summary(
            summary_input(
                todos_reviewed=[
                    TodoReviewLine("Send deck", "done", "Alice"),
                    TodoReviewLine("Call bank", "not_done", None),
                    TodoReviewLine("Fix CI", "pushed", "Bob"),
                ]
            )
        )

        assert "- **Done:** 1" in text
        assert "- **Not Done:** 1" in text
        assert "- **Pushed:** 1" in text
        assert "**Incomplete To-Dos:**\n- Call bank — Unassigned" in text

    def test_ids_section_with_action_item(self):
        text = build_summary(
            summary_input(
                issues_discussed=[
                    IssueLine(
                        title="Pricing confusion",
                        outcome="todo_created",
                        decision_notes="Simplify tiers",
                        todo_title="Draft new pricing page",
                        todo_owner="Alice",
                        todo_due_date=date(2025, 3, 10),
                    ),
                    IssueLine(title="Old CRM", outcome=None),
                ]
            )
        )

        assert "- **To-Do Created:** 1" in text
        assert "- **Pushed to Next Week:** 1" in text
        assert "### Pricing confusion" in text
        assert "**Outcome:** → To-Do" in text
        assert "**Decision:** Simplify tiers" in text
        assert "**Action Item:** Draft new pricing page" in text
        assert "**Owner:** Alice" in text
        assert "**Due:** 3/10/2025" in text
        assert "### Old CRM\n\n**Outcome:** ↻ Pushed" in text

    def test_new_todos_and_cascading_messages_close_the_summary(self):
        text = build_summary(
            summary_input(
                new_todos=[NewTodoLine("Book offsite", None, None)],
                cascading_messages="Office closed Friday.",
            )
        )

        assert "- Book offsite — Unassigned (due: No due date)" in text
        assert text.endswith("## Cascading Messages\n\nOffice closed Friday.\n")
