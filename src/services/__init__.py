"""
Services package for shared business logic.

This package contains service classes that encapsulate business logic
shared across multiple API endpoints.
"""

from .notification_service import NotificationService
from .schedule_service import ScheduleService
from .payment_service import PaymentService
from .payos_service import PayOSService
from .dashboard_service import DashboardService
from .email_service import EmailService
from .reminder_service import ReminderService

__all__ = [
    "NotificationService",
    "ScheduleService",
    "PaymentService",
    "PayOSService",
    "DashboardService",
    "EmailService",
    "ReminderService",
]
