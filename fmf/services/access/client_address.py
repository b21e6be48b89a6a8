"""
Client address derivation for the location gate.

The address is an opaque comparison key, not a parsed IP: no validation,
no CIDR matching. Precedence:
  1. first comma-separated entry of X-Forwarded-For (trimmed, if non-empty)
  2. X-Real-IP
  3. "unknown"
"""

from typing import Mapping, Optional

UNKNOWN_ADDRESS = "unknown"


def client_address(headers: Mapping[str, str]) -> str:
    forwarded: Optional[str] = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return UNKNOWN_ADDRESS
