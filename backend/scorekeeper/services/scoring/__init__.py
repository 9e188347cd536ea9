"""Scoring engine: templates, round play, standings and session ranking.

These modules are pure Python with no database or request access, so the
HTTP layer and the tests can drive them directly.
"""
