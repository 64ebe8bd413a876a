"""Application constants and configuration values."""

from core.config import FRONTEND_URL

# Database connection settings
DB_POOL_RECYCLE_SECONDS = 300  # 5 minutes

# CORS origins for development and production
_CORS_ORIGINS_RAW = [
    "http://localhost:5173",      # React dev server (Vite)
    FRONTEND_URL,
]

# Filter out None values and empty strings to avoid CORS errors
CORS_ORIGINS = [origin for origin in _CORS_ORIGINS_RAW if origin and origin.strip()]

# Pagination
DEFAULT_PAGE_SIZE = 10

# Work schedule rules
MAX_SHIFTS_PER_DOCTOR_PER_DAY = 2
SCHEDULE_CONFLICT_POLICIES = ("skip", "reject")

# Role names
ROLE_DOCTOR = "Doctor"
ROLE_PATIENT = "Patient"
ROLE_RECEPTIONIST = "Receptionist"

# Notification types
NOTIFICATION_TYPE_GENERAL = "General"
NOTIFICATION_TYPE_SCHEDULE = "Schedule"

# Payments
PAYMENT_DESCRIPTION_MAX_LENGTH = 25  # PayOS rejects longer descriptions
ORDER_CODE_MAX_ATTEMPTS = 5  # Regenerate order code on collision at most this many times
ORDER_CODE_RANDOM_DIGITS = 6
PAYMENT_LINK_ACTIVE_STATUSES = ("INIT", "PENDING")
PAYMENT_GATEWAY_TIMEOUT_SECONDS = 15.0

# Appointment reminders (clinic local time)
REMINDER_HOUR = 10
REMINDER_MINUTE = 0
REMINDER_SCHEDULER_MAX_INSTANCES = 1  # Prevent overlapping scheduler runs
REMINDER_MISFIRE_GRACE_SECONDS = 3600  # Allow 1 hour grace time if server was down

# Email templates
APPOINTMENT_REMINDER_TEMPLATE = "AppointmentReminder.html"
GENERIC_NOTIFICATION_TEMPLATE = "GenericNotification.html"
FALLBACK_NOTIFICATION_TEMPLATE = "<html><body><h3>Hello {{UserName}},</h3><p>{{Content}}</p></body></html>"

# Work schedule (doctor shift) statuses
DOCTOR_SHIFT_ACTIVE = "Active"
DOCTOR_SHIFT_CANCELLED = "Cancelled"
DOCTOR_SHIFT_COMPLETED = "Completed"
DOCTOR_SHIFT_STATUSES = (DOCTOR_SHIFT_ACTIVE, DOCTOR_SHIFT_CANCELLED, DOCTOR_SHIFT_COMPLETED)

# Appointment statuses
APPOINTMENT_PENDING = "Pending"
APPOINTMENT_CONFIRMED = "Confirmed"
APPOINTMENT_COMPLETED = "Completed"
APPOINTMENT_CANCELLED = "Cancelled"

# Payment statuses
PAYMENT_PENDING = "Pending"
PAYMENT_PAID = "Paid"
PAYMENT_CANCELLED = "Cancelled"
PAYMENT_STATUS_NONE = "None"  # Reported when a record has no payment yet

# PayOS webhook codes
PAYOS_CODE_PAID = "00"
PAYOS_CODE_PENDING = "01"
PAYOS_CODE_FAILED = "09"
