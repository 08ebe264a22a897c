"""
Boot notification service.

Reads staged flag changes as JSON objects, one batch per line on stdin, e.g.

    {"sys*feature_x": "true"}

and reminds the user to reboot when a batch touches a staged flag. Runs until
interrupted so that pending alarms can fire.
"""

import argparse
import asyncio
import json
import logging
import os
import signal
import stat
import sys
from pathlib import Path
from typing import Callable, Mapping, Optional, TextIO

from device_config.boot_notification import BootNotificationCreator
from device_config.config import (
  AppConfig,
  DeviceConfigSettings,
  default_config_path,
  parse_device_config,
)
from device_config.exceptions import DeviceConfigError
from os_interfaces.base import BroadcastDispatcher, OSImplementations
from os_interfaces.fake import fake_os_implementations

logger = logging.getLogger(__name__)

OSImplementationsFactory = Callable[[BroadcastDispatcher], OSImplementations]


async def open_stdin_reader(stdin: Optional[TextIO] = None) -> asyncio.StreamReader:
  """Wrap `stdin` in a StreamReader fed by the running loop.

  Pipes, sockets and terminals are read without blocking a worker thread.
  A regular file redirected to stdin cannot be watched by the loop, so its
  content is fed up front.
  """
  stdin = stdin or sys.stdin
  loop = asyncio.get_running_loop()
  reader = asyncio.StreamReader()
  if stat.S_ISREG(os.fstat(stdin.fileno()).st_mode):
    reader.feed_data(stdin.buffer.read())
    reader.feed_eof()
    return reader

  await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), stdin)
  return reader


async def read_property_batches(
  reader: asyncio.StreamReader, on_batch: Callable[[Mapping[str, str]], None]
) -> int:
  """Feed every JSON object read from `reader` to `on_batch`.

  Lines that are not JSON objects are logged and skipped.

  Returns:
      Number of batches delivered
  """
  delivered = 0
  while True:
    try:
      raw = await reader.readline()
    except ValueError as e:
      logger.warning(f"Skipping oversized property batch: {e}")
      continue
    if not raw:
      return delivered
    line = raw.decode("utf-8", errors="replace").strip()
    if not line:
      continue

    try:
      batch = json.loads(line)
    except json.JSONDecodeError as e:
      logger.warning(f"Skipping malformed property batch: {e}")
      continue
    if not isinstance(batch, dict):
      logger.warning(f"Skipping property batch that is not an object: {line[:100]}")
      continue

    on_batch({str(k): str(v) for k, v in batch.items()})
    delivered += 1


async def serve(
  settings: DeviceConfigSettings,
  os_impl_factory: OSImplementationsFactory,
  reader: Optional[asyncio.StreamReader] = None,
  exit_on_eof: bool = False,
) -> BootNotificationCreator:
  """Run the boot notification service until stopped.

  Args:
      settings: Loaded service configuration
      os_impl_factory: Builds the platform services bound to the dispatcher
      reader: Source of property change batches (default: stdin)
      exit_on_eof: Return once `reader` is exhausted instead of waiting for
        SIGINT/SIGTERM
  """
  dispatcher = BroadcastDispatcher()
  creator = BootNotificationCreator(
    dispatcher,
    os_impl_factory(dispatcher),
    settings.staged_flags,
    settings.boot_notification,
  )
  logger.info(
    f"Watching {len(settings.staged_flags.flags)} namespaces for staged flag changes"
  )

  if reader is None:
    reader = await open_stdin_reader()
  count = await read_property_batches(reader, creator.on_properties_changed)
  logger.info(f"Property stream closed after {count} batches")
  if exit_on_eof:
    return creator

  stop = asyncio.Event()
  loop = asyncio.get_running_loop()
  for sig in (signal.SIGINT, signal.SIGTERM):
    loop.add_signal_handler(sig, stop.set)
  await stop.wait()
  logger.info("Shutting down boot notification service")
  return creator


def main(
  os_impl_factory: Optional[OSImplementationsFactory] = None,
  argv: Optional[list[str]] = None,
) -> None:
  """Main entrypoint for the boot notification service."""
  parser = argparse.ArgumentParser(
    description="Remind the user to reboot after staged flags change."
  )
  parser.add_argument(
    "--config",
    type=Path,
    help="Path to config file (default: ~/.config/device-config/device_config.yaml)",
  )
  parser.add_argument(
    "--log-level",
    default=AppConfig.LOG_LEVEL,
    help="Logging level (default: $LOG_LEVEL or INFO)",
  )
  parser.add_argument(
    "--dry-run",
    action="store_true",
    help="Use in-memory services: log what would be scheduled, posted and rebooted",
  )
  parser.add_argument(
    "--exit-on-eof",
    action="store_true",
    help="Exit when stdin closes instead of waiting for pending alarms",
  )
  args = parser.parse_args(argv)

  logging.basicConfig(
    level=args.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
  )

  config_path = args.config or AppConfig.CONFIG_PATH or default_config_path()

  try:
    settings = parse_device_config(config_path)
    logger.info(f"Loaded configuration from {config_path}")
  except Exception as e:
    error = DeviceConfigError.from_exception(
      e, name="CONFIG_LOAD_FAILED", source="config", context=str(config_path)
    )
    logger.error(f"Failed to load configuration: {error.description}")
    sys.exit(1)

  if args.dry_run:
    os_impl_factory = fake_os_implementations
  elif os_impl_factory is None:
    from device_config.main_linux import linux_os_implementations

    os_impl_factory = linux_os_implementations

  asyncio.run(serve(settings, os_impl_factory, exit_on_eof=args.exit_on_eof))


if __name__ == "__main__":
  main()
