"""
Resource bundles for the boot notification

Strings and icon names live in a `strings.yaml` inside a Python package, so a
distribution can ship its own translations by registering a package under the
`device_config.resources` entry-point group.
"""

import logging
from importlib import metadata
from importlib.resources import files
from typing import Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from device_config.exceptions import ResourcesNotFoundError

logger = logging.getLogger(__name__)

RESOURCES_ENTRY_POINT_GROUP = "device_config.resources"
BUNDLE_FILE = "strings.yaml"


class ResourceBundle(BaseModel):
  """Strings and drawables resolved from a resources package"""

  strings: Dict[str, str]
  drawables: Dict[str, str] = Field(default_factory=dict)

  def get_string(self, name: str) -> str:
    try:
      return self.strings[name]
    except KeyError as e:
      raise KeyError(f"String resource not found: {name}") from e

  def get_drawable(self, name: str) -> str:
    return self.drawables.get(name, name)


class ServiceResourcesHelper:
  """Locates the package holding the service's resources"""

  def __init__(self, group: str = RESOURCES_ENTRY_POINT_GROUP):
    self.group = group

  def get_resources_package_name(self) -> Optional[str]:
    """Return the module of the first registered resources package, if any"""
    candidates = sorted(metadata.entry_points(group=self.group), key=lambda ep: ep.name)
    if not candidates:
      logger.debug(f"No entry points registered in group {self.group}")
      return None
    if len(candidates) > 1:
      logger.info(
        f"Multiple resources packages registered, using '{candidates[0].name}'"
      )
    return candidates[0].value.split(":", 1)[0]


def load_resource_bundle(package: str) -> ResourceBundle:
  """Load `strings.yaml` from `package`.

  Raises:
      ResourcesNotFoundError: If the package or its bundle is missing or invalid
  """
  try:
    bundle_path = files(package).joinpath(BUNDLE_FILE)
    raw = yaml.safe_load(bundle_path.read_text())
  except (ModuleNotFoundError, FileNotFoundError, yaml.YAMLError) as e:
    raise ResourcesNotFoundError(package, caused_by=f"{e.__class__.__name__}: {e}") from e

  try:
    return ResourceBundle(**(raw or {}))
  except ValidationError as e:
    raise ResourcesNotFoundError(package, caused_by=str(e)) from e
