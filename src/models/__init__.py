# Package initialization
# Import all models to ensure relationships are properly established
from .role import Role
from .user import User
from .room import Room
from .doctor import Doctor
from .patient import Patient
from .shift import Shift
from .doctor_shift import DoctorShift
from .appointment import Appointment
from .medical_record import MedicalRecord
from .service import Service
from .medical_service import MedicalService
from .payment import Payment
from .notification import Notification
from .notification_receiver import NotificationReceiver

__all__ = [
    "Role",
    "User",
    "Room",
    "Doctor",
    "Patient",
    "Shift",
    "DoctorShift",
    "Appointment",
    "MedicalRecord",
    "Service",
    "MedicalService",
    "Payment",
    "Notification",
    "NotificationReceiver",
]
