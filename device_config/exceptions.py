"""
Custom exceptions for the device config service
"""

from typing import Literal, Optional


# All possible error sources in the service
ErrorSource = Literal[
  "config",  # Configuration loading
  "resources",  # Resource package lookup and bundle loading
  "services",  # Platform service acquisition
  "unknown",  # Uncategorized errors
]


class DeviceConfigError(Exception):
  """
  Base exception for device config service errors.
  """

  def __init__(
    self,
    description: str,
    name: str,
    source: ErrorSource,
    caused_by: Optional[str] = None,
  ):
    """
    Initialize a device config error

    Args:
        description: Human-readable error message
        name: Unique error identifier (e.g., "RESOURCES_NOT_FOUND")
        source: Where the error originated from
        caused_by: Original error details if this wraps another error
    """
    self.description: str = description
    self.name: str = name
    self.source: ErrorSource = source
    self.caused_by: Optional[str] = caused_by
    super().__init__(description)

  @classmethod
  def from_exception(
    cls,
    e: Exception,
    name: str,
    source: ErrorSource,
    context: Optional[str] = None,
  ) -> "DeviceConfigError":
    """
    Create a DeviceConfigError from an existing exception

    Args:
        e: The original exception
        name: Error identifier for this error
        source: Where this error originated
        context: Additional context to prepend to the description

    Returns:
        Error with original exception details preserved
    """
    original_msg = str(e)
    description = f"{context}: {original_msg}" if context else original_msg

    return cls(
      description=description,
      name=name,
      source=source,
      caused_by=f"{e.__class__.__name__}: {original_msg}",
    )


class ServiceUnavailableError(DeviceConfigError):
  """A platform service (notification, alarm, power) is not ready yet"""

  def __init__(self, service: str, caused_by: Optional[str] = None):
    super().__init__(
      description=f"System service '{service}' is not available",
      name="SERVICE_UNAVAILABLE",
      source="services",
      caused_by=caused_by,
    )
    self.service = service


class ResourcesNotFoundError(DeviceConfigError):
  """The resources package or its bundle could not be resolved"""

  def __init__(self, package: str, caused_by: Optional[str] = None):
    super().__init__(
      description=f"Resources not found in package '{package}'",
      name="RESOURCES_NOT_FOUND",
      source="resources",
      caused_by=caused_by,
    )
    self.package = package
