"""Constants shared by the builder, the config loader and the CLI."""

# Platform-recognized clusterIP value for headless services (not an address)
HEADLESS_CLUSTER_IP = "None"

SERVICE_API_VERSION = "v1"
SERVICE_KIND = "Service"

DEFAULT_CONFIG_FILE = "svcgen.yaml"
DEFAULT_MANIFEST_FILE = "services.yml"
DEFAULT_REMOTE = "origin"
DEFAULT_COMMIT_MESSAGE = "Update generated Service manifests"

# Environment variable consulted when git.password is not in the config file
PASSWORD_ENV_VAR = "SVCGEN_GIT_PASSWORD"

GITKEEP_NAME = ".gitkeep"
GITKEEP_TEXT = (
    "This file is only here to avoid git removing empty folders\n"
    "Once there are files in this folder feel free to delete this file!"
)
