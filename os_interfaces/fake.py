"""
In-memory OS interfaces for testing and dry runs
"""

import logging
from typing import Dict, List, Optional, Tuple

from .base import (
  AlarmManager,
  AlarmType,
  BroadcastDispatcher,
  Notification,
  NotificationChannel,
  NotificationManager,
  OSImplementations,
  PowerManager,
)

logger = logging.getLogger(__name__)


class FakeNotificationManager(NotificationManager):
  """Keeps posted notifications in a dict keyed by notification id"""

  def __init__(self, *args, **kwargs):
    self.channels: Dict[str, NotificationChannel] = {}
    self.posted: Dict[int, Notification] = {}
    self.notify_count = 0

  def create_notification_channel(self, channel: NotificationChannel) -> None:
    self.channels.setdefault(channel.id, channel)

  async def notify(self, notification_id: int, notification: Notification) -> None:
    self.notify_count += 1
    self.posted[notification_id] = notification
    logger.info("[fake] notification %s: %s", notification_id, notification.title)


class FakeAlarmManager(AlarmManager):
  """Records alarms; `fire` delivers one through the dispatcher"""

  def __init__(self, dispatcher: Optional[BroadcastDispatcher] = None, *args, **kwargs):
    self.dispatcher = dispatcher
    self.alarms: Dict[str, Tuple[AlarmType, int]] = {}
    self.history: List[Tuple[AlarmType, int, str]] = []

  def set_exact(self, alarm_type: AlarmType, trigger_at_millis: int, action: str) -> None:
    self.alarms[action] = (alarm_type, trigger_at_millis)
    self.history.append((alarm_type, trigger_at_millis, action))
    logger.info("[fake] alarm %s at %s", action, trigger_at_millis)

  def cancel(self, action: str) -> None:
    self.alarms.pop(action, None)

  def fire(self, action: str):
    if action not in self.alarms:
      raise KeyError(f"No alarm pending for {action}")
    if self.dispatcher is None:
      raise RuntimeError("FakeAlarmManager has no dispatcher to fire into")
    del self.alarms[action]
    return self.dispatcher.send_broadcast(action)


class FakePowerManager(PowerManager):
  def __init__(self, *args, **kwargs):
    self.reboot_reasons: List[str] = []

  def reboot(self, reason: str) -> None:
    logger.info("[fake] reboot requested: %s", reason)
    self.reboot_reasons.append(reason)


def fake_os_implementations(dispatcher: BroadcastDispatcher) -> OSImplementations:
  """Bundle one instance of each fake; the factories always return the same one"""
  notification_manager = FakeNotificationManager()
  alarm_manager = FakeAlarmManager(dispatcher)
  power_manager = FakePowerManager()
  return OSImplementations(
    notification_manager_cls=lambda *a, **k: notification_manager,
    alarm_manager_cls=lambda *a, **k: alarm_manager,
    power_manager_cls=lambda *a, **k: power_manager,
  )
