"""
Constants shared across the parser, editor and path discovery.
"""

DEFAULT_CONFIG_FILENAME = "NuGet.Config"
GLOBAL_FOLDER_NAME = "NuGet"

DEFAULT_SOURCE_KEY = "nuget.org"
DEFAULT_PACKAGE_SOURCE = "https://api.nuget.org/v3/index.json"

PROTOCOL_VERSION_V3 = "3"
PROTOCOL_VERSION_V2 = "2"

CONFIG_FILE_ENV_VAR = "NUGET_CONFIG_FILE"

# Element names
ROOT_ELEMENT = "configuration"
PACKAGE_SOURCES = "packageSources"
PACKAGE_SOURCE_CREDENTIALS = "packageSourceCredentials"
CONFIG_SECTION = "config"
DISABLED_PACKAGE_SOURCES = "disabledPackageSources"
ACTIVE_PACKAGE_SOURCE = "activePackageSource"
ADD_ELEMENT = "add"
CLEAR_ELEMENT = "clear"

KNOWN_SECTIONS = (
    PACKAGE_SOURCES,
    PACKAGE_SOURCE_CREDENTIALS,
    CONFIG_SECTION,
    DISABLED_PACKAGE_SOURCES,
    ACTIVE_PACKAGE_SOURCE,
)

# Attribute names
KEY_ATTR = "key"
VALUE_ATTR = "value"
PROTOCOL_VERSION_ATTR = "protocolVersion"

# Credential keys
USERNAME_KEY = "Username"
PASSWORD_KEY = "Password"
CLEAR_TEXT_PASSWORD_KEY = "ClearTextPassword"
