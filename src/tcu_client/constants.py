"""Stable constants shared across the TCU client layers."""

from __future__ import annotations

from typing import Final

# Remote API defaults.
DEFAULT_BASE_URL: Final[str] = "https://api.tcu.go.tz"
DEFAULT_TIMEOUT_SECONDS: Final[float] = 30.0
DEFAULT_RETRY_ATTEMPTS: Final[int] = 3
DEFAULT_RETRY_DELAY_SECONDS: Final[float] = 1.0
DEFAULT_USER_AGENT: Final[str] = "TCU-API-Client/1.0"
DEFAULT_HTTP_METHOD: Final[str] = "POST"
XML_CONTENT_TYPE: Final[str] = "application/xml"
XML_ENCODING: Final[str] = "UTF-8"

# Env var that carries the session token unless config names another.
DEFAULT_SECURITY_TOKEN_ENV: Final[str] = "TCU_SECURITY_TOKEN"

# Schema versions for persisted contracts.
CONFIG_SCHEMA_VERSION: Final[int] = 1
CALL_LOG_SCHEMA_VERSION: Final[int] = 1

# Wire element names.
REQUEST_ROOT_TAG: Final[str] = "Request"
IDENTITY_TAG: Final[str] = "UsernameToken"
USERNAME_TAG: Final[str] = "Username"
SESSION_TOKEN_TAG: Final[str] = "SessionToken"
PARAMETER_BLOCK_TAG: Final[str] = "RequestParameters"
RESPONSE_ROOT_TAG: Final[str] = "Response"
RESPONSE_BLOCK_TAG: Final[str] = "ResponseParameters"
STATUS_CODE_TAG: Final[str] = "StatusCode"
STATUS_DESCRIPTION_TAG: Final[str] = "StatusDescription"
RESPONSE_DATA_TAG: Final[str] = "Data"

__all__ = [
    "CALL_LOG_SCHEMA_VERSION",
    "CONFIG_SCHEMA_VERSION",
    "DEFAULT_BASE_URL",
    "DEFAULT_HTTP_METHOD",
    "DEFAULT_RETRY_ATTEMPTS",
    "DEFAULT_RETRY_DELAY_SECONDS",
    "DEFAULT_SECURITY_TOKEN_ENV",
    "DEFAULT_TIMEOUT_SECONDS",
    "DEFAULT_USER_AGENT",
    "IDENTITY_TAG",
    "PARAMETER_BLOCK_TAG",
    "REQUEST_ROOT_TAG",
    "RESPONSE_BLOCK_TAG",
    "RESPONSE_DATA_TAG",
    "RESPONSE_ROOT_TAG",
    "SESSION_TOKEN_TAG",
    "STATUS_CODE_TAG",
    "STATUS_DESCRIPTION_TAG",
    "USERNAME_TAG",
    "XML_CONTENT_TYPE",
    "XML_ENCODING",
]
