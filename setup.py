from setuptools import find_packages, setup

package_list = find_packages(
  include=[
    "device_config",
    "device_config.*",
    "os_interfaces",
    "os_interfaces.*",
  ]
)

setup(
  name="device-config-boot-notifier",
  version="0.1.0",
  description="Reminds the user to reboot after staged configuration flags change",
  python_requires=">=3.11",
  packages=package_list,
  package_data={"device_config.resources": ["*.yaml"]},
  include_package_data=True,
  install_requires=[
    "pyyaml",
    "pydantic",
    "python-dotenv",
    "platformdirs",
    "desktop-notifier",
    "pystemd",
  ],
  extras_require={
    "android": ["pyjnius", "cython==3.0.12", "buildozer"],
    "dev": ["pytest", "pytest-asyncio", "pytest-cov"],
    "test": ["pytest", "pytest-asyncio"],
  },
  entry_points={
    "console_scripts": [
      "device-config-boot-notifier = device_config.main_linux:run",
    ],
    "device_config.resources": [
      "default = device_config.resources",
    ],
  },
)
