"""OS interface module - platform-specific implementations

Since we build separate executables for each platform,
import the appropriate implementation directly in the main entry points:
- device_config/main_linux.py will import from os_interfaces.linux
- device_config/main_android.py will import from os_interfaces.android
"""

from .base import (
  AlarmManager,
  AlarmType,
  BroadcastDispatcher,
  Notification,
  NotificationAction,
  NotificationChannel,
  NotificationImportance,
  NotificationManager,
  OSImplementations,
  PowerManager,
)

__all__ = [
  "AlarmManager",
  "AlarmType",
  "BroadcastDispatcher",
  "Notification",
  "NotificationAction",
  "NotificationChannel",
  "NotificationImportance",
  "NotificationManager",
  "OSImplementations",
  "PowerManager",
]
