"""Constants used in the project."""

import os
from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    EXIT_WARNINGS = 3
    CYCLE_ERROR = 4


class RepositoryType(Enum):
    """Repository layouts supported by the program.

    Args:
        Enum (string): Repository layout name.
    """

    PLY = "ply"
    MAVEN = "maven"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    DEFAULT_PACKAGING = "jar"
    POM_PACKAGING = "pom"
    TRANSIENT_MARKER = "transient"
    DEPENDENCIES_FILE = "dependencies.properties"
    RESOLVED_DEPS_FILE = "resolved-deps.properties"
    MAVEN_METADATA_FILES = ["maven-metadata.xml", "metadata.xml"]
    SUPPORTED_REPO_TYPES = [RepositoryType.PLY.value, RepositoryType.MAVEN.value]
    DEFAULT_CONFIG_FILES = ["plydep.yml", "plydep.yaml", "plydep.json"]
    DEFAULT_LOCAL_REPO = os.path.join("~", ".plydep", "repo")
    ENV_LOCAL_REPO = "PLYDEP_LOCAL_REPO"
    ENV_LOG_LEVEL = "PLYDEP_LOG_LEVEL"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    USER_AGENT = "plydep/1.0"
