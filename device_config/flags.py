"""
Staged flag keys and the set of flags that need a reboot to apply

Property change events name staged flags as `namespace*flag`.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Set

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

SEPARATOR = "*"


@dataclass(frozen=True)
class FlagKey:
  namespace: str
  flag: str

  @classmethod
  def parse(cls, key: str) -> Optional["FlagKey"]:
    """Split `key` on the first separator.

    Returns None when the separator is missing or is the first or last
    character of the key.
    """
    index = key.find(SEPARATOR)
    if index <= 0 or index == len(key) - 1:
      return None
    return cls(namespace=key[:index], flag=key[index + 1 :])

  def __str__(self) -> str:
    return f"{self.namespace}{SEPARATOR}{self.flag}"


class StagedFlagSet(BaseModel):
  """Flags, grouped by namespace, that only take effect after a reboot"""

  flags: Dict[str, Set[str]] = Field(default_factory=dict)

  @field_validator("flags", mode="before")
  @classmethod
  def parse_flags(cls, v):
    """Accept `None` for a namespace with no flags listed"""
    if v is None:
      return {}
    if not isinstance(v, dict):
      return v
    return {namespace: set(names or []) for namespace, names in v.items()}

  def contains(self, key: FlagKey) -> bool:
    return key.flag in self.flags.get(key.namespace, ())


def contains_staged_changes(properties: Mapping[str, str], staged: StagedFlagSet) -> bool:
  """Return True if any changed key names a staged flag.

  Malformed keys are logged and skipped.
  """
  for namespace_and_flag in properties.keys():
    key = FlagKey.parse(namespace_and_flag)
    if key is None:
      logger.warning(f"detected malformed staged flag: {namespace_and_flag}")
      continue

    if staged.contains(key):
      return True
  return False


def staged_flag_set(flags: Mapping[str, Iterable[str]]) -> StagedFlagSet:
  return StagedFlagSet(flags={ns: set(names) for ns, names in flags.items()})
