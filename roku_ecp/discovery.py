# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Discovery of Roku devices on the local network.

Discovery sends a single SSDP M-SEARCH for the "roku:ecp" service type and collects the
advertised LOCATION URLs (the ECP base URLs) of the devices that answer. Collection ends
when max_devices distinct devices have answered or the time budget elapses, whichever
comes first.
"""

from __future__ import annotations

import asyncio

from .internal_types import *
from .pkg_logging import logger
from .constants import ROKU_ECP_SERVICE_TYPE, DISCOVERY_TIME_BUDGET, DEFAULT_SEARCH_MX
from .exceptions import DiscoveryError
from .client import SsdpClient, SsdpResponseInfo

async def collect_device_locations(
        responses: AsyncIterable[SsdpResponseInfo],
        max_devices: int,
      ) -> List[str]:
    """Collects device LOCATION URLs from a stream of search responses, in arrival order.

       A device that answers more than once (same USN, or same LOCATION if it sends no USN)
       occupies only one slot. Responses without a LOCATION header are ignored. Stops
       consuming the stream as soon as max_devices locations have been collected.
    """
    locations: List[str] = []
    seen: Set[str] = set()
    if max_devices <= 0:
        return locations
    async for info in responses:
        location = info.location
        if location is None:
            logger.debug(f"Ignoring SSDP response without LOCATION from {info.src_addr}")
            continue
        identity = info.usn or location
        if identity in seen:
            logger.debug(f"Ignoring duplicate SSDP response from {identity}")
            continue
        seen.add(identity)
        locations.append(location)
        logger.debug(f"Discovered Roku device at {location} (usn={info.usn})")
        if len(locations) >= max_devices:
            break
    return locations

async def async_discover_roku_devices(
        max_devices: int,
        time_budget: float=DISCOVERY_TIME_BUDGET,
        bind_addresses: Optional[Iterable[str]]=None,
        mx: int=DEFAULT_SEARCH_MX,
      ) -> List[str]:
    """Find Roku devices on the local network using SSDP.

    Parameters:
        max_devices:     The maximum number of devices to return. Discovery ends early once this many
                           devices have answered. If <= 0, an empty list is returned without any network I/O.
        time_budget:     The maximum time (in seconds) to wait for responses. Defaults to 5 seconds.
        bind_addresses:  The local IP addresses (i.e., network interfaces) to search from. Defaults to all
                           local non-loopback IPv4 addresses.
        mx:              The MX value to request in the M-SEARCH.

    Returns:
        The ECP base URLs (e.g., "http://192.168.1.162:8060/") of the discovered devices, in
        the order their responses arrived. An empty list if no device answered.

    Raises:
        DiscoveryError: The discovery sockets could not be created or failed.
    """
    if max_devices <= 0:
        return []

    try:
        client = SsdpClient(response_wait_time=time_budget, bind_addresses=bind_addresses)
        await client.start()
    except DiscoveryError:
        raise
    except OSError as e:
        raise DiscoveryError(f"Unable to start SSDP discovery: {e}") from e

    try:
        async with client.search(
                ROKU_ECP_SERVICE_TYPE,
                response_wait_time=time_budget,
                mx=mx,
              ) as search_request:
            result = await collect_device_locations(search_request, max_devices)
    except OSError as e:
        raise DiscoveryError(f"SSDP discovery failed: {e}") from e
    finally:
        await client.__aexit__(None, None, None)
    logger.debug(f"Discovery found {len(result)} Roku device(s): {result}")
    return result

def discover_roku_devices(
        max_devices: int,
        time_budget: float=DISCOVERY_TIME_BUDGET,
        bind_addresses: Optional[Iterable[str]]=None,
        mx: int=DEFAULT_SEARCH_MX,
      ) -> List[str]:
    """Synchronous version of async_discover_roku_devices(). Blocks for at most time_budget seconds
       (plus socket setup time) using a private event loop.

       Must not be called from a thread that is already running an asyncio event loop."""
    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        result = loop.run_until_complete(
            async_discover_roku_devices(
                max_devices,
                time_budget=time_budget,
                bind_addresses=bind_addresses,
                mx=mx,
              )
          )
    finally:
        asyncio.set_event_loop(None)
        loop.close()
    return result
