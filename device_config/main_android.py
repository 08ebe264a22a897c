"""Android entrypoint for the boot notification service.

Alarms and notification actions arrive as Android broadcasts and are
forwarded into the dispatcher.
"""

from device_config.boot_notification import (
  ACTION_POST_NOTIFICATION,
  ACTION_TRIGGER_HARD_REBOOT,
)
from device_config.main import main
from os_interfaces.base import BroadcastDispatcher, OSImplementations
from os_interfaces.android import (
  AndroidAlarmManager,
  AndroidNotificationManager,
  AndroidPowerManager,
  register_dispatch_receiver,
)

_receivers = []


def android_os_implementations(dispatcher: BroadcastDispatcher) -> OSImplementations:
  _receivers.append(
    register_dispatch_receiver(
      dispatcher, [ACTION_POST_NOTIFICATION, ACTION_TRIGGER_HARD_REBOOT]
    )
  )
  return OSImplementations(
    notification_manager_cls=AndroidNotificationManager,
    alarm_manager_cls=AndroidAlarmManager,
    power_manager_cls=AndroidPowerManager,
  )


def run() -> None:
  main(os_impl_factory=android_os_implementations)


if __name__ == "__main__":
  run()
