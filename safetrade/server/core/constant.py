"""Application-wide constants."""

PROJECT_NAME = "SafeTrade"
API_STR = "/api"
API_VERSION = "1.0.0"
SCHEMA_VERSION = "v1"
