"""
Appointment reminder service.

Once a day at 10:00 clinic time, every patient with a confirmed appointment
tomorrow receives a reminder email. Scheduling uses APScheduler's cron
trigger, so each run is computed from the calendar rather than from the end
of the previous run.
"""

import asyncio
import logging
from datetime import timedelta
from typing import List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore
from apscheduler.triggers.cron import CronTrigger  # type: ignore
from sqlalchemy.orm import Session, joinedload

from core.constants import (
    APPOINTMENT_CONFIRMED,
    APPOINTMENT_REMINDER_TEMPLATE,
    REMINDER_HOUR,
    REMINDER_MINUTE,
    REMINDER_MISFIRE_GRACE_SECONDS,
    REMINDER_SCHEDULER_MAX_INSTANCES,
)
from core.database import get_db_context
from models import Appointment, Doctor, Patient
from services.email_service import EmailService
from utils.datetime_utils import CLINIC_TZ, clinic_today, day_bounds, format_date
from utils.email_templates import load_template, render_template

logger = logging.getLogger(__name__)

REMINDER_SUBJECT = "Appointment reminder from Clinic Care"
DEFAULT_DOCTOR_NAME = "your doctor"


def build_reminder_trigger() -> CronTrigger:
    """Daily trigger at the reminder time in clinic timezone."""
    return CronTrigger(hour=REMINDER_HOUR, minute=REMINDER_MINUTE, timezone=CLINIC_TZ)


class ReminderService:
    """
    Service for sending appointment reminder emails.

    The scheduler runs once daily. Database sessions are created fresh for
    each run, and the blocking database and SMTP work runs in a worker thread.
    """

    def __init__(self):
        self.scheduler = AsyncIOScheduler(timezone=CLINIC_TZ)
        self._is_started = False

    async def start_scheduler(self) -> None:
        """
        Start the background scheduler for appointment reminders.

        This should be called during application startup.
        """
        if self._is_started:
            logger.warning("Reminder scheduler is already started")
            return

        self.scheduler.add_job(  # type: ignore
            self._run_reminders,
            build_reminder_trigger(),
            id="send_appointment_reminders",
            name="Send appointment reminders for tomorrow",
            max_instances=REMINDER_SCHEDULER_MAX_INSTANCES,  # Prevent overlapping runs
            coalesce=True,
            replace_existing=True,
            misfire_grace_time=REMINDER_MISFIRE_GRACE_SECONDS,
        )

        self.scheduler.start()
        self._is_started = True
        logger.info(f"Reminder scheduler started (runs daily at {REMINDER_HOUR:02d}:{REMINDER_MINUTE:02d})")

    async def stop_scheduler(self) -> None:
        """
        Stop the background scheduler.

        This should be called during application shutdown.
        """
        if self._is_started:
            self.scheduler.shutdown(wait=True)
            self._is_started = False
            logger.info("Reminder scheduler stopped")

    async def _run_reminders(self) -> None:
        """Scheduled entry point; offloads the blocking work to a thread."""
        logger.info("Starting scheduled appointment reminders...")
        try:
            sent = await asyncio.to_thread(self.send_reminders_now)
            logger.info(f"Scheduled appointment reminders finished, {sent} email(s) sent")
        except Exception as e:
            logger.exception(f"Error sending appointment reminders: {e}")

    def send_reminders_now(self) -> int:
        """Send tomorrow's reminders using a fresh database session. Returns emails sent."""
        with get_db_context() as db:
            return ReminderService.send_appointment_reminders(db)

    @staticmethod
    def get_tomorrow_appointments(db: Session) -> List[Appointment]:
        """Confirmed appointments on the next calendar day (clinic time)."""
        start, end = day_bounds(clinic_today() + timedelta(days=1))
        return db.query(Appointment).options(
            joinedload(Appointment.patient).joinedload(Patient.user),
            joinedload(Appointment.doctor).joinedload(Doctor.user),
        ).filter(
            Appointment.status == APPOINTMENT_CONFIRMED,
            Appointment.appointment_date >= start,
            Appointment.appointment_date <= end,
        ).order_by(Appointment.appointment_date).all()

    @staticmethod
    def send_appointment_reminders(db: Session) -> int:
        """
        Email every patient with a confirmed appointment tomorrow.

        Patients without an email address are skipped. A failed email is
        logged and does not stop the remaining reminders.

        Args:
            db: Database session

        Returns:
            Number of reminder emails sent
        """
        appointments = ReminderService.get_tomorrow_appointments(db)
        if not appointments:
            logger.debug("No confirmed appointments tomorrow, no reminders to send")
            return 0

        template = load_template(APPOINTMENT_REMINDER_TEMPLATE)

        sent = 0
        for appointment in appointments:
            patient_user = appointment.patient.user if appointment.patient else None
            if patient_user is None or not (patient_user.email or "").strip():
                continue

            doctor_user = appointment.doctor.user if appointment.doctor else None
            body = render_template(template, {
                "PatientName": patient_user.full_name,
                "DoctorName": doctor_user.full_name if doctor_user else DEFAULT_DOCTOR_NAME,
                "Date": format_date(appointment.appointment_date.date()),
                "Time": appointment.appointment_date.strftime("%H:%M"),
            })
            try:
                if EmailService.send_email(patient_user.email, REMINDER_SUBJECT, body):
                    sent += 1
            except Exception as e:
                logger.warning(f"Failed to send reminder for appointment {appointment.id}: {e}")

        logger.info(f"Sent {sent} appointment reminder(s) for {len(appointments)} appointment(s)")
        return sent


# Global service instance
_reminder_service: Optional[ReminderService] = None


def get_reminder_service() -> ReminderService:
    """
    Get the global reminder service instance.

    Returns:
        The global service instance
    """
    global _reminder_service
    if _reminder_service is None:
        _reminder_service = ReminderService()
    return _reminder_service


async def start_reminder_scheduler() -> None:
    """
    Start the global reminder scheduler.

    This should be called during application startup.
    """
    service = get_reminder_service()
    await service.start_scheduler()


async def stop_reminder_scheduler() -> None:
    """
    Stop the global reminder scheduler.

    This should be called during application shutdown.
    """
    global _reminder_service
    if _reminder_service:
        await _reminder_service.stop_scheduler()
