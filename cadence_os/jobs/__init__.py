"""
Background jobs for Cadence OS.

This module contains scheduled jobs:
- briefing_cron: daily pre-generation of AI briefings
"""

from .briefing_cron import run_briefing_job

__all__ = ["run_briefing_job"]
