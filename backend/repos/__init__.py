"""
Repository layer for myPip.

All SQL lives here and ONLY here. No database access outside this module.
"""

from backend.repos.project_repo import ProjectRepo

__all__ = [
    "ProjectRepo",
]
