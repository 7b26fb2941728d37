"""
Coachie social pipelines.

Business logic orchestration functions.
"""
