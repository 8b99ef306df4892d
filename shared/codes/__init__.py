"""
Business codes shared by domain exceptions and the HTTP response envelope.

Numbering: 1xxxx request errors, 2xxxx offload business errors,
3xxxx authorization, 4xxxx system, 5xxxx rate limiting.
"""
from enum import IntEnum


class BusinessCode(IntEnum):
    SUCCESS = 0

    PARAM_VALIDATION_ERROR = 10003

    NOT_FOUND = 20006
    RECORD_NOT_FOUND = 20101
    RECORD_ALREADY_EXISTS = 20102
    OFFLOAD_NOT_CONFIGURED = 20103

    UNAUTHORIZED = 30001
    FORBIDDEN = 30002

    SYSTEM_ERROR = 40000
    SERVICE_UNAVAILABLE = 40003

    TOO_MANY_REQUESTS = 50001


__all__ = ["BusinessCode"]
