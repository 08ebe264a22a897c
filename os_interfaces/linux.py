"""Linux-specific implementations of OS interfaces"""

import asyncio
import logging
import time
from contextlib import contextmanager
from typing import Optional

from desktop_notifier import Button, DesktopNotifier, Icon, Urgency
from pystemd.dbuslib import DBus
from pystemd.systemd1 import Manager

from .base import (
  AlarmManager,
  AlarmType,
  BroadcastDispatcher,
  Notification,
  NotificationChannel,
  NotificationImportance,
  NotificationManager,
  PowerManager,
)

logger = logging.getLogger(__name__)

REBOOT_TARGET = "reboot.target"


def _urgency(importance: NotificationImportance) -> Urgency:
  if importance >= NotificationImportance.HIGH:
    return Urgency.Critical
  if importance <= NotificationImportance.LOW:
    return Urgency.Low
  return Urgency.Normal


class LinuxNotificationManager(NotificationManager):
  """Linux notification manager using desktop-notifier"""

  def __init__(self, app_name: str, dispatcher: BroadcastDispatcher):
    self.notifier = DesktopNotifier(app_name=app_name)
    self.dispatcher = dispatcher
    self.channels: dict[str, NotificationChannel] = {}
    # notification id -> desktop-notifier identifier of the shown notification
    self._shown: dict[int, str] = {}

  def create_notification_channel(self, channel: NotificationChannel) -> None:
    if channel.id not in self.channels:
      self.channels[channel.id] = channel
      logger.info(f"Created notification channel {channel.id}")

  def _button(self, action_name: str, title: str) -> Button:
    return Button(
      title=title, on_pressed=lambda: self.dispatcher.send_broadcast(action_name)
    )

  async def notify(self, notification_id: int, notification: Notification) -> None:
    """Send the notification, clearing any previous one with the same id"""
    channel = self.channels.get(notification.channel_id)
    importance = channel.importance if channel else NotificationImportance.DEFAULT

    previous = self._shown.pop(notification_id, None)
    if previous is not None:
      await self.notifier.clear(previous)

    try:
      identifier = await self.notifier.send(
        title=notification.title,
        message=notification.content,
        urgency=_urgency(importance),
        icon=Icon(name=notification.small_icon),
        buttons=[self._button(a.action, a.title) for a in notification.actions],
      )
      self._shown[notification_id] = identifier
      logger.info(f"Notification {notification_id} sent: {notification.title}")
    except Exception as e:
      logger.error(f"Failed to send notification {notification_id}: {e}")


class LinuxAlarmManager(AlarmManager):
  """Alarm manager backed by timers on the running asyncio loop.

  One handle is kept per action, so setting an alarm for an action that is
  already pending replaces it. Alarms do not survive the process or wake a
  suspended machine.
  """

  def __init__(self, dispatcher: BroadcastDispatcher, loop: Optional[asyncio.AbstractEventLoop] = None):
    self.dispatcher = dispatcher
    self.loop = loop or asyncio.get_running_loop()
    self._handles: dict[str, asyncio.TimerHandle] = {}

  def _fire(self, action: str) -> None:
    self._handles.pop(action, None)
    logger.info("Alarm fired for %s", action)
    self.dispatcher.send_broadcast(action)

  def set_exact(self, alarm_type: AlarmType, trigger_at_millis: int, action: str) -> None:
    self.cancel(action)
    delay = max(trigger_at_millis / 1000 - time.time(), 0)
    self._handles[action] = self.loop.call_later(delay, self._fire, action)
    logger.info("Scheduled %s alarm for %s in %.0fs", alarm_type.value, action, delay)

  def cancel(self, action: str) -> None:
    handle = self._handles.pop(action, None)
    if handle is not None:
      handle.cancel()
      logger.debug("Cancelled alarm for %s", action)


class LinuxPowerManager(PowerManager):
  """Power manager that asks systemd (system bus) to start reboot.target"""

  @contextmanager
  def _connect_systemd(self):
    with DBus() as bus:
      manager = Manager(bus=bus)
      manager.load()
      yield manager

  def reboot(self, reason: str) -> None:
    logger.warning(f"Rebooting system, reason: {reason}")
    with self._connect_systemd() as m:
      m.Manager.StartUnit(REBOOT_TARGET.encode(), b"replace-irreversibly")
