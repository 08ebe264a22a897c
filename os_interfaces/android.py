"""Android-specific implementations of OS interfaces."""

from __future__ import annotations

import logging

from jnius import PythonJavaClass, autoclass, java_method  # type: ignore

from .base import (
  AlarmManager,
  AlarmType,
  BroadcastDispatcher,
  Notification,
  NotificationChannel,
  NotificationManager,
  PowerManager,
)

logger = logging.getLogger(__name__)


# --- PyJNIus handles ---
PythonActivity = autoclass("org.kivy.android.PythonActivity")
Intent = autoclass("android.content.Intent")
IntentFilter = autoclass("android.content.IntentFilter")
PendingIntent = autoclass("android.app.PendingIntent")
NotificationChannelJava = autoclass("android.app.NotificationChannel")
NotificationBuilder = autoclass("android.app.Notification$Builder")
NotificationActionBuilder = autoclass("android.app.Notification$Action$Builder")
AlarmManagerJava = autoclass("android.app.AlarmManager")
AndroidRDrawable = autoclass("android.R$drawable")
IconJava = autoclass("android.graphics.drawable.Icon")
Context = autoclass("android.content.Context")

# One request code per action: FLAG_UPDATE_CURRENT then makes a new alarm
# for the same action replace the pending one.
REQUEST_CODE = 1

_ALARM_TYPES = {
  AlarmType.RTC: "RTC",
  AlarmType.RTC_WAKEUP: "RTC_WAKEUP",
}


def _context():
  return PythonActivity.mActivity.getApplicationContext()


def _flags(base: int | None = None) -> int:
  flag_immutable = PendingIntent.FLAG_IMMUTABLE
  flag_update = PendingIntent.FLAG_UPDATE_CURRENT
  return (base or 0) | flag_immutable | flag_update


def _broadcast(ctx, action: str):
  intent = Intent(action)
  intent.setPackage(ctx.getPackageName())
  return PendingIntent.getBroadcast(ctx, REQUEST_CODE, intent, _flags())


def _icon(ctx, name: str):
  res_id = ctx.getResources().getIdentifier(name, "drawable", ctx.getPackageName())
  return IconJava.createWithResource(ctx, res_id or AndroidRDrawable.ic_dialog_info)


class _DispatchReceiver(PythonJavaClass):
  """Forwards received intents to the in-process dispatcher"""

  __javainterfaces__ = ["android/content/BroadcastReceiver"]
  __javacontext__ = "app"

  def __init__(self, dispatcher: BroadcastDispatcher):
    super().__init__()
    self.dispatcher = dispatcher

  @java_method("(Landroid/content/Context;Landroid/content/Intent;)V")
  def onReceive(self, _context, intent):
    try:
      self.dispatcher.send_broadcast(intent.getAction())
    except Exception:  # pragma: no cover - runs on the Java callback thread
      logger.exception("Broadcast dispatch failed")


def register_dispatch_receiver(dispatcher: BroadcastDispatcher, actions: list[str]) -> _DispatchReceiver:
  """Route the given intent actions from Android into `dispatcher`"""
  ctx = _context()
  receiver = _DispatchReceiver(dispatcher)
  intent_filter = IntentFilter()
  for action in actions:
    intent_filter.addAction(action)
  ctx.registerReceiver(receiver, intent_filter, Context.RECEIVER_NOT_EXPORTED)
  return receiver


class AndroidNotificationManager(NotificationManager):
  """Android notification manager using Notification.Builder."""

  def __init__(self):
    self.ctx = _context()
    self.manager = self.ctx.getSystemService(Context.NOTIFICATION_SERVICE)

  def create_notification_channel(self, channel: NotificationChannel) -> None:
    self.manager.createNotificationChannel(
      NotificationChannelJava(channel.id, channel.name, int(channel.importance))
    )

  async def notify(self, notification_id: int, notification: Notification) -> None:
    builder = (
      NotificationBuilder(self.ctx, notification.channel_id)
      .setContentTitle(notification.title)
      .setContentText(notification.content)
      .setSmallIcon(_icon(self.ctx, notification.small_icon))
    )
    for action in notification.actions:
      builder.addAction(
        NotificationActionBuilder(
          _icon(self.ctx, action.icon), action.title, _broadcast(self.ctx, action.action)
        ).build()
      )

    self.manager.notify(notification_id, builder.build())
    logger.info("Notification %s posted", notification_id)


class AndroidAlarmManager(AlarmManager):
  """Android alarm manager using AlarmManager.setExact."""

  def __init__(self):
    self.ctx = _context()
    self.alarm_manager = self.ctx.getSystemService(Context.ALARM_SERVICE)

  def set_exact(self, alarm_type: AlarmType, trigger_at_millis: int, action: str) -> None:
    self.alarm_manager.setExact(
      getattr(AlarmManagerJava, _ALARM_TYPES[alarm_type]),
      trigger_at_millis,
      _broadcast(self.ctx, action),
    )
    logger.info("Scheduled alarm %s at %s", action, trigger_at_millis)

  def cancel(self, action: str) -> None:
    self.alarm_manager.cancel(_broadcast(self.ctx, action))


class AndroidPowerManager(PowerManager):
  def __init__(self):
    self.ctx = _context()
    self.power_manager = self.ctx.getSystemService(Context.POWER_SERVICE)

  def reboot(self, reason: str) -> None:
    logger.warning("Rebooting device, reason: %s", reason)
    self.power_manager.reboot(reason)
