# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Package roku_ecp is a client for the Roku External Control Protocol (ECP).

ECP is a plain HTTP interface (port 8060) exposed by Roku streaming players and Roku TVs
on the local network. It allows a controller to:

  - discover devices, using SSDP M-SEARCH for the "roku:ecp" service type
  - read device identity and capabilities (/query/device-info)
  - emulate remote control keypresses, including typing text as literal keys
  - list, launch and deep-link into apps, and fetch app icons
  - list and tune TV channels on Roku TVs
  - run searches, and send custom input to the active app

Devices may restrict ECP: when "Control by mobile apps" is disabled the device answers 401,
raised as EcpAccessDeniedError; in "Limited" mode most input and some queries are refused
locally with EcpCapabilityError before any request is sent.

See https://developer.roku.com/docs/developer-program/dev-tools/external-control-api.md
"""

from .version import __version__

from .internal_types import Jsonable, JsonableDict

from .exceptions import (
    EcpErrorKind,
    RokuEcpError,
    EcpCapabilityError,
    EcpInputError,
    EcpTransportError,
    EcpHttpError,
    EcpAccessDeniedError,
    EcpMalformedResponseError,
    EcpEmptyResponseError,
    DiscoveryError,
  )
from .models import (
    RokuDevice,
    RokuTVChannel,
    RokuTVProgram,
    RokuExtTVChannel,
    RokuApp,
    RokuAppIcon,
    RokuSearchType,
    RokuSearchParams,
    RokuMediaType,
    RokuAppLaunchParams,
  )
from .ssdp_datagram import SsdpDatagram
from .ssdp_socket import SsdpSocket, SsdpSocketBinding, SsdpDatagramSubscriber
from .client import SsdpClient, SsdpSearchRequest, SsdpResponseInfo
from .discovery import discover_roku_devices, async_discover_roku_devices
from .transport import EcpTransport, EcpResponse
from .ecp import (
    get_roku_device,
    send_key,
    type_string,
    send_custom_input,
    search,
    get_tv_channels,
    get_active_tv_channel,
    launch_tv_channel,
    get_apps,
    get_active_app,
    get_app_icon,
    launch_app,
  )
from .util import CaseInsensitiveDict
from .constants import SSDP_MULTICAST_ADDRESS, SSDP_PORT, ROKU_ECP_SERVICE_TYPE, ECP_PORT, DISCOVERY_TIME_BUDGET

__all__ = [
    '__version__',
    'Jsonable', 'JsonableDict',
    'EcpErrorKind', 'RokuEcpError', 'EcpCapabilityError', 'EcpInputError', 'EcpTransportError',
    'EcpHttpError', 'EcpAccessDeniedError', 'EcpMalformedResponseError', 'EcpEmptyResponseError',
    'DiscoveryError',
    'RokuDevice', 'RokuTVChannel', 'RokuTVProgram', 'RokuExtTVChannel', 'RokuApp', 'RokuAppIcon',
    'RokuSearchType', 'RokuSearchParams', 'RokuMediaType', 'RokuAppLaunchParams',
    'SsdpDatagram',
    'SsdpSocket', 'SsdpSocketBinding', 'SsdpDatagramSubscriber',
    'SsdpClient', 'SsdpSearchRequest', 'SsdpResponseInfo',
    'discover_roku_devices', 'async_discover_roku_devices',
    'EcpTransport', 'EcpResponse',
    'get_roku_device', 'send_key', 'type_string', 'send_custom_input', 'search',
    'get_tv_channels', 'get_active_tv_channel', 'launch_tv_channel',
    'get_apps', 'get_active_app', 'get_app_icon', 'launch_app',
    'CaseInsensitiveDict',
    'SSDP_MULTICAST_ADDRESS', 'SSDP_PORT', 'ROKU_ECP_SERVICE_TYPE', 'ECP_PORT', 'DISCOVERY_TIME_BUDGET',
]
