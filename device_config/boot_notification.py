"""
Creates notifications when staged flags are written on the device.

The notification asks the user to reboot so the staged flags take effect.
Scheduling goes through two private broadcast actions:

- POST_NOTIFICATION: sent by an alarm at the next reboot_time (10:00 local)
  after a staged flag changes. Posts the reminder, or pushes the alarm back
  one day while the device has been up for less than a day.
- TRIGGER_HARD_REBOOT: sent by the notification's "restart" action.
"""

import logging
from datetime import datetime, time, timedelta
from typing import Callable, Mapping, Optional

from device_config.config import BootNotificationSettings, DEFAULT_RESOURCES_PACKAGE
from device_config.exceptions import ResourcesNotFoundError, ServiceUnavailableError
from device_config.flags import StagedFlagSet, contains_staged_changes
from device_config.resource_bundle import (
  ResourceBundle,
  ServiceResourcesHelper,
  load_resource_bundle,
)
from os_interfaces.base import (
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

logger = logging.getLogger(__name__)

REBOOT_REASON = "DeviceConfig"

ACTION_TRIGGER_HARD_REBOOT = "com.android.server.deviceconfig.TRIGGER_HARD_REBOOT"
ACTION_POST_NOTIFICATION = "com.android.server.deviceconfig.POST_NOTIFICATION"

CHANNEL_ID = "trunk-stable-flags"
CHANNEL_NAME = "Trunkfood flags"
NOTIFICATION_ID = 111555


def _millis(dt: datetime) -> int:
  return int(dt.timestamp() * 1000)


def next_post_time(now: datetime, at: time) -> datetime:
  """Today at `at` if that is still ahead of `now`, otherwise tomorrow at `at`"""
  post_time = datetime.combine(now.date(), at)
  return post_time if now < post_time else post_time + timedelta(days=1)


def retry_post_time(now: datetime, at: time) -> datetime:
  """Tomorrow at `at`"""
  return datetime.combine(now.date(), at) + timedelta(days=1)


class BootNotificationCreator:
  """Watches staged flag changes and reminds the user to reboot."""

  def __init__(
    self,
    dispatcher: BroadcastDispatcher,
    os_impl: OSImplementations,
    staged_flags: StagedFlagSet,
    settings: Optional[BootNotificationSettings] = None,
    resources_helper: Optional[ServiceResourcesHelper] = None,
    clock: Callable[[], datetime] = datetime.now,
  ):
    self.dispatcher = dispatcher
    self.os_impl = os_impl
    self.staged_flags = staged_flags
    self.settings = settings or BootNotificationSettings()
    self.resources_helper = resources_helper or ServiceResourcesHelper()
    self.clock = clock

    self.notification_manager: Optional[NotificationManager] = None
    self.alarm_manager: Optional[AlarmManager] = None
    self.power_manager: Optional[PowerManager] = None

    self.dispatcher.register_receiver(ACTION_TRIGGER_HARD_REBOOT, self.on_trigger_hard_reboot)
    self.dispatcher.register_receiver(ACTION_POST_NOTIFICATION, self.on_post_notification)

    # The service starts with the device, so this stands in for boot time.
    self.last_reboot: datetime = self.clock()
    self.scheduled_post_time: Optional[datetime] = None

  def on_properties_changed(self, properties: Mapping[str, str]) -> None:
    """Schedule the reminder if any changed property is a staged flag"""
    if not contains_staged_changes(properties, self.staged_flags):
      return

    if not self._try_initialize_dependencies_if_needed():
      logger.info("not posting notif; service dependencies not ready")
      return

    self._schedule_post(next_post_time(self.clock(), self.settings.reboot_time))

  async def on_post_notification(self) -> None:
    now = self.clock()

    if not self._try_initialize_dependencies_if_needed():
      logger.info("not posting notif; service dependencies not ready")
      return

    uptime = int((now - self.last_reboot).total_seconds())
    if uptime < self.settings.min_seconds_to_show_notification:
      logger.warning("not enough time passed, punting")
      self._try_again_in_24_hours(now)
      return

    resources_package = self._resources_package_name()
    if resources_package is None:
      logger.warning("Unable to find resources package.")
      return

    try:
      notification = self._build_notification(load_resource_bundle(resources_package))
    except (ResourcesNotFoundError, KeyError):
      logger.exception("failed to post boot notification")
      return

    await self.notification_manager.notify(NOTIFICATION_ID, notification)

  def on_trigger_hard_reboot(self) -> None:
    if self.power_manager is None:
      self.power_manager = self._acquire("power", self.os_impl.power_manager)
    if self.power_manager is None:
      logger.error("cannot reboot; power service not available")
      return
    self.power_manager.reboot(REBOOT_REASON)

  def _resources_package_name(self) -> Optional[str]:
    if not self.settings.fix_resource_fetching:
      return self.settings.resources_package or DEFAULT_RESOURCES_PACKAGE
    return self.resources_helper.get_resources_package_name()

  def _build_notification(self, bundle: ResourceBundle) -> Notification:
    action = NotificationAction(
      icon=bundle.get_drawable("ic_restart"),
      title=bundle.get_string("boot_notification_action_text"),
      action=ACTION_TRIGGER_HARD_REBOOT,
    )
    return Notification(
      channel_id=CHANNEL_ID,
      title=bundle.get_string("boot_notification_title"),
      content=bundle.get_string("boot_notification_content"),
      small_icon=bundle.get_drawable("ic_flag"),
      actions=[action],
    )

  def _schedule_post(self, post_time: datetime) -> None:
    self.scheduled_post_time = post_time
    self.alarm_manager.set_exact(
      AlarmType.RTC_WAKEUP, _millis(post_time), ACTION_POST_NOTIFICATION
    )
    logger.info(f"Boot notification scheduled for {post_time.isoformat()}")

  def _try_again_in_24_hours(self, current_time: datetime) -> None:
    self._schedule_post(retry_post_time(current_time, self.settings.reboot_time))

  def _acquire(self, service: str, factory: Callable[[], object]):
    try:
      return factory()
    except ServiceUnavailableError as e:
      logger.debug(f"{service} service not ready: {e}")
      return None

  def _try_initialize_dependencies_if_needed(self) -> bool:
    """
    If deps are not initialized yet, try to initialize them.

    Returns:
      True if the dependencies are newly or already initialized,
      False if they are not ready yet
    """
    if self.notification_manager is None:
      self.notification_manager = self._acquire(
        "notification", self.os_impl.notification_manager
      )
      if self.notification_manager is not None:
        self.notification_manager.create_notification_channel(
          NotificationChannel(CHANNEL_ID, CHANNEL_NAME, NotificationImportance.HIGH)
        )

    if self.alarm_manager is None:
      self.alarm_manager = self._acquire("alarm", self.os_impl.alarm_manager)

    if self.power_manager is None:
      self.power_manager = self._acquire("power", self.os_impl.power_manager)

    return (
      self.notification_manager is not None
      and self.alarm_manager is not None
      and self.power_manager is not None
    )
