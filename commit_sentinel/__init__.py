"""
Commit Sentinel

Watches pushes to a protected branch and files an issue, assigned to the
author, whenever the head commit does not follow the Conventional Commits format.
"""

__version__ = "1.0.0"
__author__ = "Commit Sentinel Team"
