"""
Mock reboot injector for testing and development
"""

from datetime import timezone, tzinfo
from typing import List, Optional, Tuple

from device_config.reboot_injector import UnattendedRebootInjector


class MockUnattendedRebootInjector(UnattendedRebootInjector):
  """Mock injector that records every call instead of touching the device"""

  def __init__(
    self,
    now_millis: int = 0,
    elapsed_realtime_millis: int = 0,
    zone: tzinfo = timezone.utc,
    reboot_start_hour: int = 1,
    reboot_end_hour: int = 5,
    reboot_frequency_days: int = 2,
  ):
    self.now_millis = now_millis
    self.elapsed_realtime_millis = elapsed_realtime_millis
    self.zone = zone
    self.reboot_start_hour = reboot_start_hour
    self.reboot_end_hour = reboot_end_hour
    self.reboot_frequency_days = reboot_frequency_days

    self.reboot_alarm_millis: Optional[int] = None
    self.fallback_alarm_delay_millis: Optional[int] = None
    self.waiting_for_network = False
    self.prepared = False
    self.requires_charging = False
    self.fail_recovery_calls = False

    self.prepare_calls: List[Tuple[str, Optional[str]]] = []
    self.reboot_and_apply_calls: List[Tuple[str, bool]] = []
    self.regular_reboots = 0

  def now(self) -> int:
    return self.now_millis

  def zone_id(self) -> tzinfo:
    return self.zone

  def elapsed_realtime(self) -> int:
    return self.elapsed_realtime_millis

  def get_reboot_start_time(self) -> int:
    return self.reboot_start_hour

  def get_reboot_end_time(self) -> int:
    return self.reboot_end_hour

  def get_reboot_frequency(self) -> int:
    return self.reboot_frequency_days

  def set_reboot_alarm(self, reboot_time_millis: int) -> None:
    self.reboot_alarm_millis = reboot_time_millis

  def set_prepare_for_unattended_reboot_fallback_alarm(self, delay_millis: int) -> None:
    self.fallback_alarm_delay_millis = delay_millis

  def cancel_prepare_for_unattended_reboot_fallback_alarm(self) -> None:
    self.fallback_alarm_delay_millis = None

  def trigger_reboot_on_network_available(self) -> None:
    self.waiting_for_network = True

  def _check_recovery(self, call: str) -> None:
    if self.fail_recovery_calls:
      raise OSError(f"{call} failed")

  def reboot_and_apply(self, reason: str, slot_switch: bool) -> int:
    self._check_recovery("reboot_and_apply")
    self.reboot_and_apply_calls.append((reason, slot_switch))
    return 0

  def prepare_for_unattended_update(
    self, update_token: str, intent_sender: Optional[str] = None
  ) -> None:
    self._check_recovery("prepare_for_unattended_update")
    self.prepare_calls.append((update_token, intent_sender))
    self.prepared = True

  def is_prepared_for_unattended_update(self) -> bool:
    self._check_recovery("is_prepared_for_unattended_update")
    return self.prepared

  def requires_charging_for_reboot(self) -> bool:
    return self.requires_charging

  def regular_reboot(self) -> None:
    self.regular_reboots += 1
