"""Engagement Engine - lifecycle and gating for student/partner project engagements."""

__version__ = "0.1.0"
