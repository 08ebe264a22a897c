"""
Abstract base class for the reboot primitives used by unattended reboots

Every externally visible effect an unattended reboot orchestrator has (clocks,
alarms, connectivity, recovery system calls, reboots) goes through this
interface so the orchestrator can be tested against a fake.
"""

from abc import ABC, abstractmethod
from datetime import tzinfo
from typing import Optional


class UnattendedRebootInjector(ABC):
  """Abstract base class for reboot primitives"""

  # Time injectors.
  @abstractmethod
  def now(self) -> int:
    """Wall-clock time in milliseconds since the epoch"""
    pass

  @abstractmethod
  def zone_id(self) -> tzinfo:
    """Local time zone"""
    pass

  @abstractmethod
  def elapsed_realtime(self) -> int:
    """Milliseconds since boot, including time spent asleep"""
    pass

  # Reboot time injectors.
  @abstractmethod
  def get_reboot_start_time(self) -> int:
    """Hour of day at which the reboot window opens"""
    pass

  @abstractmethod
  def get_reboot_end_time(self) -> int:
    """Hour of day at which the reboot window closes"""
    pass

  @abstractmethod
  def get_reboot_frequency(self) -> int:
    """Minimum number of days between unattended reboots"""
    pass

  # Alarm injectors.
  @abstractmethod
  def set_reboot_alarm(self, reboot_time_millis: int) -> None:
    """Schedule an exact alarm for the reboot at an absolute time"""
    pass

  @abstractmethod
  def set_prepare_for_unattended_reboot_fallback_alarm(self, delay_millis: int) -> None:
    """Schedule the fallback alarm for the prepare step, `delay_millis` from now"""
    pass

  @abstractmethod
  def cancel_prepare_for_unattended_reboot_fallback_alarm(self) -> None:
    pass

  # Connectivity injector.
  @abstractmethod
  def trigger_reboot_on_network_available(self) -> None:
    """Reboot once network connectivity becomes available"""
    pass

  # Recovery system injectors.
  @abstractmethod
  def reboot_and_apply(self, reason: str, slot_switch: bool) -> int:
    """Reboot now and apply the prepared update.

    Args:
      reason: Boot reason recorded by the platform
      slot_switch: Switch to the other slot on A/B devices

    Returns:
      Platform result code

    Raises:
      OSError: If the reboot could not be requested
    """
    pass

  @abstractmethod
  def prepare_for_unattended_update(
    self, update_token: str, intent_sender: Optional[str] = None
  ) -> None:
    """Prepare the device for an unattended update.

    Args:
      update_token: Opaque token identifying the update
      intent_sender: Optional broadcast action sent when preparation finishes

    Raises:
      OSError: If preparation could not be started
    """
    pass

  @abstractmethod
  def is_prepared_for_unattended_update(self) -> bool:
    """
    Raises:
      OSError: If the recovery system could not be queried
    """
    pass

  @abstractmethod
  def requires_charging_for_reboot(self) -> bool:
    pass

  # Regular reboot injector.
  @abstractmethod
  def regular_reboot(self) -> None:
    """Reboot without preparing for an unattended update"""
    pass
