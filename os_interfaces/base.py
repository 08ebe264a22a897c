"""Abstract base classes for OS-specific interfaces"""

from __future__ import annotations

import asyncio
import inspect
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class NotificationImportance(IntEnum):
  """Channel importance levels, matching the Android constants"""

  MIN = 1
  LOW = 2
  DEFAULT = 3
  HIGH = 4


class AlarmType(str, Enum):
  RTC = "rtc"
  RTC_WAKEUP = "rtc_wakeup"


@dataclass(frozen=True)
class NotificationChannel:
  id: str
  name: str
  importance: NotificationImportance = NotificationImportance.DEFAULT


@dataclass(frozen=True)
class NotificationAction:
  """A button on a notification; activating it sends `action` as a broadcast"""

  icon: str
  title: str
  action: str


@dataclass
class Notification:
  channel_id: str
  title: str
  content: str
  small_icon: str
  actions: list[NotificationAction] = field(default_factory=list)


class NotificationManager(ABC):
  """Abstract base class for notification management"""

  @abstractmethod
  def create_notification_channel(self, channel: NotificationChannel) -> None:
    """Register a channel; creating an existing channel again is a no-op"""
    raise NotImplementedError

  @abstractmethod
  async def notify(self, notification_id: int, notification: Notification) -> None:
    """Show a notification

    Posting again with the same `notification_id` replaces the previous
    notification instead of adding a second one.

    Args:
      notification_id: Stable identifier of the notification
      notification: Content to display
    """
    raise NotImplementedError


class AlarmManager(ABC):
  """Abstract base class for one-shot alarms keyed by broadcast action"""

  @abstractmethod
  def set_exact(self, alarm_type: AlarmType, trigger_at_millis: int, action: str) -> None:
    """Schedule `action` to be broadcast at an absolute wall-clock time.

    Any alarm already pending for the same action is replaced.

    Args:
      alarm_type: Clock and wake behaviour of the alarm
      trigger_at_millis: Milliseconds since the epoch
      action: Broadcast action sent when the alarm fires
    """
    raise NotImplementedError

  @abstractmethod
  def cancel(self, action: str) -> None:
    """Cancel the pending alarm for `action`, if any"""
    raise NotImplementedError


class PowerManager(ABC):
  @abstractmethod
  def reboot(self, reason: str) -> None:
    """Reboot the device immediately, recording `reason` as the boot reason"""
    raise NotImplementedError


Receiver = Callable[[], Any]


@dataclass
class _Registration:
  receiver: Receiver
  exported: bool


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
  try:
    return asyncio.get_running_loop()
  except RuntimeError:
    return None


class BroadcastDispatcher:
  """In-process table of broadcast receivers keyed by action.

  Receivers may be plain callables or coroutine functions. The dispatcher is
  bound to the event loop it is created on (or, failing that, the first loop
  it delivers on). Broadcasts sent from other threads, such as platform
  callback threads, are handed over to that loop. Tasks created for coroutine
  receivers are held until they finish and their failures are logged.
  """

  def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
    self._receivers: dict[str, list[_Registration]] = {}
    self._loop = loop or _running_loop()
    self._tasks: set[asyncio.Task] = set()

  def register_receiver(self, action: str, receiver: Receiver, exported: bool = False) -> None:
    self._receivers.setdefault(action, []).append(_Registration(receiver, exported))
    logger.debug("Registered receiver for %s (exported=%s)", action, exported)

  def send_broadcast(self, action: str, external: bool = False) -> list[asyncio.Task]:
    """Deliver `action` to every matching receiver.

    Broadcasts marked `external` only reach exported receivers.

    Returns:
      Tasks started for coroutine receivers. Empty when the broadcast was
      handed over to the dispatcher's loop from another thread.
    """
    running = _running_loop()
    if self._loop is None:
      self._loop = running
    if self._loop is not None and running is not self._loop:
      self._loop.call_soon_threadsafe(self._deliver, action, external)
      return []
    return self._deliver(action, external)

  def _deliver(self, action: str, external: bool) -> list[asyncio.Task]:
    pending: list[asyncio.Task] = []
    registrations = self._receivers.get(action, [])
    if not registrations:
      logger.warning("No receiver registered for %s", action)
    for registration in registrations:
      if external and not registration.exported:
        logger.warning("Dropping external broadcast %s for private receiver", action)
        continue
      try:
        result = registration.receiver()
      except Exception:
        logger.exception("Receiver for %s failed", action)
        continue
      if inspect.isawaitable(result):
        if self._loop is None:
          logger.error("No event loop to run the receiver for %s", action)
          if inspect.iscoroutine(result):
            result.close()
          continue
        pending.append(self._start(result))
    return pending

  def _start(self, awaitable) -> asyncio.Task:
    task = asyncio.ensure_future(awaitable, loop=self._loop)
    self._tasks.add(task)
    task.add_done_callback(self._task_done)
    return task

  def _task_done(self, task: asyncio.Task) -> None:
    self._tasks.discard(task)
    if task.cancelled():
      return
    exc = task.exception()
    if exc is not None:
      logger.error("Receiver task failed", exc_info=exc)


@dataclass
class OSImplementations:
  """Factories for the platform services a component depends on.

  A factory may return None or raise `ServiceUnavailableError` when the
  service is not ready yet; callers retry on their next event.
  """

  notification_manager_cls: Callable[..., Optional[NotificationManager]]
  alarm_manager_cls: Callable[..., Optional[AlarmManager]]
  power_manager_cls: Callable[..., Optional[PowerManager]]

  def notification_manager(self, *args, **kwargs) -> Optional[NotificationManager]:
    return self.notification_manager_cls(*args, **kwargs)

  def alarm_manager(self, *args, **kwargs) -> Optional[AlarmManager]:
    return self.alarm_manager_cls(*args, **kwargs)

  def power_manager(self, *args, **kwargs) -> Optional[PowerManager]:
    return self.power_manager_cls(*args, **kwargs)
