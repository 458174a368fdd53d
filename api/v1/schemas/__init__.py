"""Re-export individual schema modules for easy imports."""

from .reminder import ReminderIn, ReminderEdit
from .device import DeviceTokenIn

__all__ = [
    "ReminderIn",
    "ReminderEdit",
    "DeviceTokenIn",
]
