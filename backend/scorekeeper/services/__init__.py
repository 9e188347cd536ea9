"""Scorekeeper domain services: scoring engine and data access.

Routes import from here so that HTTP concerns stay out of the scoring
rules and the storage queries.
"""
