"""Shared NuGet.Config fixtures."""

import pytest


FULL_CONFIG = b"""<?xml version="1.0" encoding="utf-8"?>
<configuration>
  <packageSources>
    <clear />
    <add key="nuget.org" value="https://api.nuget.org/v3/index.json" protocolVersion="3" />
    <add key="local" value="./packages" />
  </packageSources>
  <packageSourceCredentials>
    <My_x0020_Feed>
      <add key="Username" value="alice" />
      <add key="ClearTextPassword" value="s3cret" />
    </My_x0020_Feed>
  </packageSourceCredentials>
  <config>
    <add key="globalPackagesFolder" value="/tmp/packages" />
  </config>
  <disabledPackageSources>
    <add key="local" value="true" />
  </disabledPackageSources>
  <activePackageSource>
    <add key="nuget.org" value="https://api.nuget.org/v3/index.json" />
  </activePackageSource>
</configuration>
"""

MINIMAL_CONFIG = b"""<?xml version="1.0" encoding="utf-8"?>
<configuration>
  <packageSources>
    <add key="local" value="./packages" />
  </packageSources>
</configuration>
"""

SINGLE_LINE_SOURCES = (
    b'<packageSources><add key="nuget.org" '
    b'value="https://api.nuget.org/v3/index.json" protocolVersion="3" /></packageSources>'
)


@pytest.fixture
def full_config() -> bytes:
    return FULL_CONFIG


@pytest.fixture
def minimal_config() -> bytes:
    return MINIMAL_CONFIG


@pytest.fixture
def single_line_sources() -> bytes:
    return SINGLE_LINE_SOURCES


@pytest.fixture
def config_file(tmp_path, full_config):
    path = tmp_path / "NuGet.Config"
    path.write_bytes(full_config)
    return path
