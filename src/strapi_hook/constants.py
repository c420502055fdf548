"""Shared constants for the strapi-hook gateway."""

SERVICE_NAME = "strapi-hook"
CORRELATION_HEADER = "X-Correlation-Id"
ENV_PREFIX = "STRAPI_HOOK_"
CONFIG_FILE_NAME = ".strapi-hook.toml"
DEFAULT_PORT = 8080
DEFAULT_TARGET = "http://localhost:10080/api"
DEFAULT_PATH = "/strapi"
