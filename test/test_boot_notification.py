"""
Test staged flag watcher, reminder poster and hard reboot trigger
Run with: uv run pytest test/test_boot_notification.py
"""

import asyncio
import logging
import threading
from datetime import datetime, time, timedelta
from unittest.mock import MagicMock

import pytest

from device_config.boot_notification import (
  ACTION_POST_NOTIFICATION,
  ACTION_TRIGGER_HARD_REBOOT,
  CHANNEL_ID,
  NOTIFICATION_ID,
  REBOOT_REASON,
  BootNotificationCreator,
  _millis,
  next_post_time,
  retry_post_time,
)
from device_config.config import BootNotificationSettings
from device_config.exceptions import ServiceUnavailableError
from device_config.flags import staged_flag_set
from os_interfaces.base import (
  AlarmType,
  BroadcastDispatcher,
  NotificationImportance,
  OSImplementations,
)
from os_interfaces.fake import (
  FakeAlarmManager,
  FakeNotificationManager,
  FakePowerManager,
  fake_os_implementations,
)


class Clock:
  def __init__(self, now: datetime):
    self.now = now

  def __call__(self) -> datetime:
    return self.now


BOOT_TIME = datetime(2026, 3, 2, 8, 0)


@pytest.fixture
def clock():
  return Clock(BOOT_TIME)


@pytest.fixture
def dispatcher():
  return BroadcastDispatcher()


@pytest.fixture
def os_impl(dispatcher):
  return fake_os_implementations(dispatcher)


@pytest.fixture
def resources_helper():
  helper = MagicMock()
  helper.get_resources_package_name.return_value = "device_config.resources"
  return helper


@pytest.fixture
def creator(dispatcher, os_impl, resources_helper, clock):
  return BootNotificationCreator(
    dispatcher,
    os_impl,
    staged_flag_set({"sys": ["feature_x"]}),
    resources_helper=resources_helper,
    clock=clock,
  )


async def fire_post_alarm(alarms: FakeAlarmManager) -> None:
  await asyncio.gather(*alarms.fire(ACTION_POST_NOTIFICATION))


class TestPostTime:
  def test_before_post_time_is_today(self):
    assert next_post_time(datetime(2026, 3, 2, 9, 59), time(10, 0)) == datetime(
      2026, 3, 2, 10, 0
    )

  def test_at_post_time_is_tomorrow(self):
    assert next_post_time(datetime(2026, 3, 2, 10, 0), time(10, 0)) == datetime(
      2026, 3, 3, 10, 0
    )

  def test_after_post_time_is_tomorrow(self):
    assert next_post_time(datetime(2026, 3, 2, 23, 30), time(10, 0)) == datetime(
      2026, 3, 3, 10, 0
    )

  def test_end_of_month(self):
    assert next_post_time(datetime(2026, 2, 28, 11, 0), time(10, 0)) == datetime(
      2026, 3, 1, 10, 0
    )

  def test_retry_is_next_day(self):
    assert retry_post_time(datetime(2026, 3, 2, 10, 0), time(10, 0)) == datetime(
      2026, 3, 3, 10, 0
    )


class TestPropertiesChanged:
  def test_match_schedules_one_alarm(self, creator, os_impl):
    creator.on_properties_changed({"sys*feature_x": "true", "bogus_key": "1"})

    alarms = os_impl.alarm_manager()
    assert alarms.history == [
      (AlarmType.RTC_WAKEUP, _millis(datetime(2026, 3, 2, 10, 0)), ACTION_POST_NOTIFICATION)
    ]
    assert creator.scheduled_post_time == datetime(2026, 3, 2, 10, 0)
    assert os_impl.notification_manager().posted == {}

  def test_after_post_time_schedules_tomorrow(self, creator, os_impl, clock):
    clock.now = datetime(2026, 3, 2, 12, 0)
    creator.on_properties_changed({"sys*feature_x": "true"})

    _, trigger_at, _ = os_impl.alarm_manager().history[0]
    assert trigger_at == _millis(datetime(2026, 3, 3, 10, 0))

  @pytest.mark.parametrize("key", ["bogus_key", "*feature_x", "sys*", "other*feature_x"])
  def test_no_match_schedules_nothing(self, creator, os_impl, key):
    creator.on_properties_changed({key: "true"})

    assert os_impl.alarm_manager().history == []

  def test_no_match_does_not_touch_services(self, dispatcher, clock):
    os_impl = MagicMock()
    creator = BootNotificationCreator(
      dispatcher, os_impl, staged_flag_set({"sys": ["feature_x"]}), clock=clock
    )
    creator.on_properties_changed({"sys*feature_y": "true"})

    os_impl.alarm_manager.assert_not_called()

  def test_reschedule_replaces_pending_alarm(self, creator, os_impl, clock):
    creator.on_properties_changed({"sys*feature_x": "true"})
    clock.now = datetime(2026, 3, 2, 11, 0)
    creator.on_properties_changed({"sys*feature_x": "false"})

    alarms = os_impl.alarm_manager()
    assert len(alarms.history) == 2
    assert alarms.alarms == {
      ACTION_POST_NOTIFICATION: (
        AlarmType.RTC_WAKEUP,
        _millis(datetime(2026, 3, 3, 10, 0)),
      )
    }

  def test_creates_high_importance_channel_once(self, creator, os_impl):
    creator.on_properties_changed({"sys*feature_x": "true"})
    creator.on_properties_changed({"sys*feature_x": "true"})

    channels = os_impl.notification_manager().channels
    assert list(channels) == [CHANNEL_ID]
    assert channels[CHANNEL_ID].importance == NotificationImportance.HIGH

  def test_services_unavailable_drops_event(self, dispatcher, clock, caplog):
    alarms = FakeAlarmManager(dispatcher)
    notification_factory = MagicMock(side_effect=ServiceUnavailableError("notification"))
    os_impl = OSImplementations(
      notification_manager_cls=notification_factory,
      alarm_manager_cls=lambda: alarms,
      power_manager_cls=FakePowerManager,
    )
    creator = BootNotificationCreator(
      dispatcher, os_impl, staged_flag_set({"sys": ["feature_x"]}), clock=clock
    )

    with caplog.at_level(logging.INFO):
      creator.on_properties_changed({"sys*feature_x": "true"})
    assert alarms.history == []
    assert "service dependencies not ready" in caplog.text

    # The next event retries acquisition; the dropped one is not replayed.
    notification_factory.side_effect = None
    notification_factory.return_value = FakeNotificationManager()
    creator.on_properties_changed({"sys*feature_x": "true"})
    assert len(alarms.history) == 1

  def test_factory_returning_none_counts_as_unavailable(self, dispatcher, clock):
    alarms = FakeAlarmManager(dispatcher)
    os_impl = OSImplementations(
      notification_manager_cls=FakeNotificationManager,
      alarm_manager_cls=lambda: alarms,
      power_manager_cls=lambda: None,
    )
    creator = BootNotificationCreator(
      dispatcher, os_impl, staged_flag_set({"sys": ["feature_x"]}), clock=clock
    )
    creator.on_properties_changed({"sys*feature_x": "true"})

    assert alarms.history == []


class TestPostNotification:
  @pytest.mark.asyncio
  async def test_posts_after_dwell(self, creator, os_impl, clock):
    creator.on_properties_changed({"sys*feature_x": "true"})
    clock.now = BOOT_TIME + timedelta(seconds=90000)

    await fire_post_alarm(os_impl.alarm_manager())

    posted = os_impl.notification_manager().posted
    assert list(posted) == [NOTIFICATION_ID]
    notification = posted[NOTIFICATION_ID]
    assert notification.channel_id == CHANNEL_ID
    assert notification.title == "Restart to apply flag changes"
    assert "Restart your device" in notification.content
    assert notification.small_icon == "dialog-information"
    assert len(notification.actions) == 1
    assert notification.actions[0].title == "Restart now"
    assert notification.actions[0].icon == "system-reboot"
    assert notification.actions[0].action == ACTION_TRIGGER_HARD_REBOOT
    assert os_impl.alarm_manager().alarms == {}

  @pytest.mark.asyncio
  async def test_exactly_at_dwell_threshold_posts(self, creator, os_impl, clock):
    creator.on_properties_changed({"sys*feature_x": "true"})
    clock.now = BOOT_TIME + timedelta(seconds=86400)

    await fire_post_alarm(os_impl.alarm_manager())

    assert NOTIFICATION_ID in os_impl.notification_manager().posted

  @pytest.mark.asyncio
  async def test_dwell_not_met_reschedules_next_day(self, creator, os_impl, clock):
    creator.on_properties_changed({"sys*feature_x": "true"})
    clock.now = datetime(2026, 3, 2, 10, 0)

    alarms = os_impl.alarm_manager()
    await fire_post_alarm(alarms)

    assert os_impl.notification_manager().posted == {}
    assert len(alarms.history) == 2
    assert alarms.alarms == {
      ACTION_POST_NOTIFICATION: (
        AlarmType.RTC_WAKEUP,
        _millis(datetime(2026, 3, 3, 10, 0)),
      )
    }

  @pytest.mark.asyncio
  async def test_dwell_loop_keeps_deferring_until_met(self, creator, os_impl, clock):
    creator.on_properties_changed({"sys*feature_x": "true"})
    alarms = os_impl.alarm_manager()
    notifications = os_impl.notification_manager()

    clock.now = datetime(2026, 3, 2, 10, 0)
    await fire_post_alarm(alarms)
    assert notifications.posted == {}

    clock.now = datetime(2026, 3, 3, 10, 0)
    await fire_post_alarm(alarms)

    assert NOTIFICATION_ID in notifications.posted
    assert len(alarms.history) == 2

  @pytest.mark.asyncio
  async def test_posting_twice_replaces(self, creator, os_impl, clock):
    clock.now = BOOT_TIME + timedelta(days=2)

    await creator.on_post_notification()
    await creator.on_post_notification()

    notifications = os_impl.notification_manager()
    assert notifications.notify_count == 2
    assert len(notifications.posted) == 1

  @pytest.mark.asyncio
  async def test_missing_resources_package_aborts(
    self, creator, os_impl, clock, resources_helper, caplog
  ):
    resources_helper.get_resources_package_name.return_value = None
    creator.on_properties_changed({"sys*feature_x": "true"})
    clock.now = BOOT_TIME + timedelta(days=2)

    with caplog.at_level(logging.WARNING):
      await fire_post_alarm(os_impl.alarm_manager())

    assert os_impl.notification_manager().posted == {}
    assert os_impl.alarm_manager().alarms == {}
    assert "Unable to find resources package." in caplog.text

  @pytest.mark.asyncio
  async def test_unresolvable_bundle_aborts(self, dispatcher, os_impl, clock, caplog):
    settings = BootNotificationSettings(
      resources_package="no_such_resources_pkg", fix_resource_fetching=False
    )
    creator = BootNotificationCreator(
      dispatcher,
      os_impl,
      staged_flag_set({"sys": ["feature_x"]}),
      settings=settings,
      clock=clock,
    )
    clock.now = BOOT_TIME + timedelta(days=2)

    with caplog.at_level(logging.ERROR):
      await creator.on_post_notification()

    assert os_impl.notification_manager().posted == {}
    assert os_impl.alarm_manager().alarms == {}
    assert "failed to post boot notification" in caplog.text

  @pytest.mark.asyncio
  async def test_constant_package_used_without_lookup(
    self, dispatcher, os_impl, clock, resources_helper
  ):
    creator = BootNotificationCreator(
      dispatcher,
      os_impl,
      staged_flag_set({}),
      settings=BootNotificationSettings(fix_resource_fetching=False),
      resources_helper=resources_helper,
      clock=clock,
    )
    clock.now = BOOT_TIME + timedelta(days=2)

    await creator.on_post_notification()

    resources_helper.get_resources_package_name.assert_not_called()
    assert NOTIFICATION_ID in os_impl.notification_manager().posted

  @pytest.mark.asyncio
  async def test_post_action_from_platform_thread(self, resources_helper, clock):
    dispatcher = BroadcastDispatcher(loop=asyncio.get_running_loop())
    os_impl = fake_os_implementations(dispatcher)
    BootNotificationCreator(
      dispatcher,
      os_impl,
      staged_flag_set({"sys": ["feature_x"]}),
      resources_helper=resources_helper,
      clock=clock,
    )
    clock.now = BOOT_TIME + timedelta(days=2)

    sender = threading.Thread(
      target=dispatcher.send_broadcast, args=(ACTION_POST_NOTIFICATION,)
    )
    sender.start()
    sender.join()
    posted = os_impl.notification_manager().posted
    for _ in range(100):
      if posted:
        break
      await asyncio.sleep(0.01)

    assert list(posted) == [NOTIFICATION_ID]

  def test_last_reboot_fixed_at_construction(self, creator, clock):
    clock.now = BOOT_TIME + timedelta(days=5)
    creator.on_properties_changed({"sys*feature_x": "true"})

    assert creator.last_reboot == BOOT_TIME


class TestHardReboot:
  def test_action_reboots_with_reason(self, creator, os_impl, dispatcher):
    dispatcher.send_broadcast(ACTION_TRIGGER_HARD_REBOOT)

    assert os_impl.power_manager().reboot_reasons == [REBOOT_REASON]

  def test_reboot_ignores_dwell_guard(self, creator, os_impl, dispatcher, clock):
    clock.now = BOOT_TIME + timedelta(seconds=1)
    dispatcher.send_broadcast(ACTION_TRIGGER_HARD_REBOOT)

    assert os_impl.power_manager().reboot_reasons == ["DeviceConfig"]

  def test_external_broadcast_rejected(self, creator, os_impl, dispatcher):
    dispatcher.send_broadcast(ACTION_TRIGGER_HARD_REBOOT, external=True)

    assert os_impl.power_manager().reboot_reasons == []

  def test_power_unavailable_logs(self, dispatcher, clock, caplog):
    os_impl = OSImplementations(
      notification_manager_cls=FakeNotificationManager,
      alarm_manager_cls=FakeAlarmManager,
      power_manager_cls=MagicMock(side_effect=ServiceUnavailableError("power")),
    )
    creator = BootNotificationCreator(dispatcher, os_impl, staged_flag_set({}), clock=clock)

    with caplog.at_level(logging.ERROR):
      creator.on_trigger_hard_reboot()

    assert "power service not available" in caplog.text


@pytest.mark.asyncio
async def test_staged_flag_to_reboot_scenario(creator, os_impl, dispatcher, clock):
  creator.on_properties_changed({"sys*feature_x": "true", "bogus_key": "1"})
  alarms = os_impl.alarm_manager()
  notifications = os_impl.notification_manager()
  power = os_impl.power_manager()

  assert len(alarms.history) == 1
  assert notifications.posted == {}

  clock.now = BOOT_TIME + timedelta(seconds=90000)
  await fire_post_alarm(alarms)
  notification = notifications.posted[111555]

  dispatcher.send_broadcast(notification.actions[0].action)

  assert power.reboot_reasons == ["DeviceConfig"]
