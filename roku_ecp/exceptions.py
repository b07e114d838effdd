#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Exceptions defined by this package"""

from __future__ import annotations

from enum import IntEnum
from typing import Optional

class EcpErrorKind(IntEnum):
  """A small distinct negative code for each cause of failure, suitable for
     rendering specific guidance in a UI ("enable ECP in settings" vs. "device offline")."""
  CAPABILITY_DENIED = -1
  INVALID_INPUT = -2
  ACCESS_DENIED = -3
  TRANSPORT = -4
  HTTP_STATUS = -5
  MALFORMED_RESPONSE = -6
  EMPTY_RESPONSE = -7
  DISCOVERY = -8

class RokuEcpError(Exception):
  """Base class for all error exceptions defined by this package."""
  kind: EcpErrorKind = EcpErrorKind.TRANSPORT

class EcpCapabilityError(RokuEcpError):
  """The operation is not applicable to the device (not a TV, Limited mode, or no search support).
     Raised before any network I/O."""
  kind = EcpErrorKind.CAPABILITY_DENIED

class EcpInputError(RokuEcpError):
  """A caller-supplied parameter is invalid (e.g., empty search keyword). Raised before any network I/O."""
  kind = EcpErrorKind.INVALID_INPUT

class EcpTransportError(RokuEcpError):
  """The HTTP request could not be completed (DNS failure, connection refused, timeout, ...)."""
  kind = EcpErrorKind.TRANSPORT

class EcpHttpError(RokuEcpError):
  """The device answered with a status other than 200 OK."""
  kind = EcpErrorKind.HTTP_STATUS

  status_code: int
  url: Optional[str]

  def __init__(self, status_code: int, url: Optional[str]=None, msg: Optional[str]=None):
    if msg is None:
      msg = f"ECP request failed with HTTP status {status_code}"
      if url is not None:
        msg += f": {url}"
    super().__init__(msg)
    self.status_code = status_code
    self.url = url

class EcpAccessDeniedError(EcpHttpError):
  """The device answered 401 Unauthorized; ECP access is disabled in the device's settings."""
  kind = EcpErrorKind.ACCESS_DENIED

  def __init__(self, url: Optional[str]=None, msg: Optional[str]=None):
    if msg is None:
      msg = "ECP access denied (enable \"Control by mobile apps\" in the device's network settings)"
      if url is not None:
        msg += f": {url}"
    super().__init__(401, url=url, msg=msg)

class EcpMalformedResponseError(RokuEcpError):
  """The response body could not be parsed as XML."""
  kind = EcpErrorKind.MALFORMED_RESPONSE

class EcpEmptyResponseError(RokuEcpError):
  """The response parsed, but the expected root or child element is absent or empty."""
  kind = EcpErrorKind.EMPTY_RESPONSE

class DiscoveryError(RokuEcpError):
  """SSDP discovery could not be started (e.g., a multicast socket could not be created)."""
  kind = EcpErrorKind.DISCOVERY
