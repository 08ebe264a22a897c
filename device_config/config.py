"""
Configuration for the device config boot notification service

Settings come from a YAML file (staged flags + notification policy) and from
environment variables (paths, logging).
"""

import logging
import os
from datetime import time
from pathlib import Path

import yaml
from dotenv import load_dotenv
from platformdirs import user_config_dir
from pydantic import BaseModel, Field, field_validator

from device_config.flags import StagedFlagSet

logger = logging.getLogger(__name__)

# Load environment variables from .env file
load_dotenv()

APP_NAME = "device-config"
CONFIG_FILE_NAME = "device_config.yaml"
DEFAULT_RESOURCES_PACKAGE = "device_config.resources"


class BootNotificationSettings(BaseModel):
  """When and how the reboot reminder is shown"""

  reboot_time: time = time(10, 0)
  min_seconds_to_show_notification: int = 86400
  resources_package: str = DEFAULT_RESOURCES_PACKAGE
  fix_resource_fetching: bool = True

  @field_validator("reboot_time", mode="before")
  @classmethod
  def parse_time(cls, v):
    """Parse time string in HH:MM format"""
    if isinstance(v, time):
      return v
    try:
      hours, minutes = v.split(":")
      return time(int(hours), int(minutes))
    except (ValueError, AttributeError) as e:
      raise ValueError(f"Time must be in HH:MM format, got: {v}") from e

  @field_validator("min_seconds_to_show_notification")
  @classmethod
  def validate_min_seconds(cls, v: int) -> int:
    if v < 0:
      raise ValueError(f"min_seconds_to_show_notification must be non-negative, got: {v}")
    return v


class DeviceConfigSettings(BaseModel):
  """Complete service configuration"""

  staged_flags: StagedFlagSet = Field(default_factory=StagedFlagSet)
  boot_notification: BootNotificationSettings = Field(default_factory=BootNotificationSettings)

  @field_validator("staged_flags", mode="before")
  @classmethod
  def parse_staged_flags(cls, v):
    """The YAML file lists namespaces directly under `staged_flags`.

    Every key is a namespace, including one named `flags`.
    """
    if v is None or isinstance(v, dict):
      return {"flags": v}
    return v


def parse_device_config(config_path: Path | str) -> DeviceConfigSettings:
  """
  Parse service configuration from YAML file

  Args:
      config_path: Path to the YAML configuration file

  Returns:
      DeviceConfigSettings with staged flags and notification policy

  Raises:
      FileNotFoundError: If config file doesn't exist
      yaml.YAMLError: If YAML is malformed
      pydantic.ValidationError: If config doesn't match schema
  """
  config_path = Path(config_path)

  if not config_path.exists():
    raise FileNotFoundError(f"Configuration file not found: {config_path}")

  with open(config_path, "r") as f:
    raw_config = yaml.safe_load(f) or {}

  settings = DeviceConfigSettings(**raw_config)
  logger.debug(
    f"Loaded {sum(len(f) for f in settings.staged_flags.flags.values())} staged flags "
    f"from {config_path}"
  )
  return settings


def default_config_path() -> Path:
  return Path(user_config_dir(APP_NAME, ensure_exists=True)) / CONFIG_FILE_NAME


class AppConfig:
  """Process-level settings read from the environment"""

  CONFIG_PATH = os.getenv("DEVICE_CONFIG_PATH")
  APP_NAME = os.getenv("DEVICE_CONFIG_APP_NAME", "Device Config")

  # Logging
  LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
