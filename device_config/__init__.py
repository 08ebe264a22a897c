"""Staged flag reboot reminders"""

from .boot_notification import BootNotificationCreator
from .config import BootNotificationSettings, DeviceConfigSettings, parse_device_config
from .flags import FlagKey, StagedFlagSet, contains_staged_changes
from .reboot_injector import UnattendedRebootInjector

__all__ = [
  "BootNotificationCreator",
  "BootNotificationSettings",
  "DeviceConfigSettings",
  "FlagKey",
  "StagedFlagSet",
  "UnattendedRebootInjector",
  "contains_staged_changes",
  "parse_device_config",
]
