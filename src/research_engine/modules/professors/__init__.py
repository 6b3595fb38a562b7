"""
Professors module - owner records for projects.

Account management lives outside this service; the table is read for
populating project responses and addressing professor alerts.
"""

from .models import Professor

__all__ = ["Professor"]
