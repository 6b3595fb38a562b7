"""
Notifications Module

Lifecycle notifications: event types, email templates and the queue-backed
dispatcher that delivers them with bounded retry.

Messages:
- Application confirmation (student) and new-application alert (professor)
- Application status update (student)
- Project closed (each applicant who was still pending)
"""

from .dispatcher import NotificationDispatcher
from .events import ApplicationStatusChanged, ApplicationSubmitted, ProjectClosed

__all__ = [
    "NotificationDispatcher",
    "ApplicationSubmitted",
    "ApplicationStatusChanged",
    "ProjectClosed",
]
