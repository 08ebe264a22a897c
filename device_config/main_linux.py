"""Linux entrypoint for `device-config-boot-notifier`."""

from device_config.config import AppConfig
from device_config.main import main
from os_interfaces.base import BroadcastDispatcher, OSImplementations
from os_interfaces.linux import (
  LinuxAlarmManager,
  LinuxNotificationManager,
  LinuxPowerManager,
)


def linux_os_implementations(dispatcher: BroadcastDispatcher) -> OSImplementations:
  """Desktop notifications, event-loop alarms and systemd reboots.

  Must be called from inside the running event loop.
  """
  alarm_manager = LinuxAlarmManager(dispatcher)
  return OSImplementations(
    notification_manager_cls=lambda: LinuxNotificationManager(AppConfig.APP_NAME, dispatcher),
    alarm_manager_cls=lambda: alarm_manager,
    power_manager_cls=LinuxPowerManager,
  )


def run() -> None:
  main(os_impl_factory=linux_os_implementations)


if __name__ == "__main__":
  run()
