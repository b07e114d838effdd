# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
ECP operations on a single Roku device.

Every operation has the same shape:

  1. Capability gate. Operations that cannot apply to the device (TV-only operations on a
     non-TV device, input on a device in Limited mode, search on a device without search
     support) raise EcpCapabilityError without any network I/O.
  2. One HTTP request (or, for type_string(), one per character) through an EcpTransport.
  3. For queries, the XML response is parsed and fields are extracted with the declarative
     tables below. Missing fields take their zero value; only a body that is not XML or a
     missing root element is an error.

Each operation accepts an optional `transport`; a fresh EcpTransport is used if none is given.
"""

from __future__ import annotations

import codecs
import xml.etree.ElementTree as ET
from urllib.parse import quote

from .internal_types import *
from .pkg_logging import logger
from .constants import (
    TV_ONLY_KEYS,
    LITERAL_KEY_PREFIX,
    MAX_DEVICE_NAME_LEN,
    MAX_DEVICE_LOCATION_LEN,
    MAX_DEVICE_MODEL_LEN,
    MAX_DEVICE_SERIAL_LEN,
    MAX_RESOLUTION_LEN,
    MAX_MAC_ADDRESS_LEN,
    MAX_SOFTWARE_VERSION_LEN,
    MAX_CHANNEL_ID_LEN,
    MAX_CHANNEL_NAME_LEN,
    MAX_CHANNEL_TYPE_LEN,
    MAX_CHANNEL_NETWORK_LEN,
    MAX_PROGRAM_TITLE_LEN,
    MAX_PROGRAM_DESCRIPTION_LEN,
    MAX_PROGRAM_RATING_LEN,
    MAX_APP_ID_LEN,
    MAX_APP_NAME_LEN,
    MAX_APP_TYPE_LEN,
    MAX_APP_VERSION_LEN,
  )
from .exceptions import RokuEcpError, EcpCapabilityError, EcpInputError, EcpAccessDeniedError, EcpEmptyResponseError
from .models import (
    RokuDevice,
    RokuTVChannel,
    RokuTVProgram,
    RokuExtTVChannel,
    RokuApp,
    RokuAppIcon,
    RokuSearchParams,
    RokuAppLaunchParams,
  )
from .transport import EcpTransport
from .xml_fields import (
    FieldKind,
    FieldSpec,
    extract_fields,
    parse_int,
    parse_bool,
    parse_xml_root,
    child_elements,
    first_child_element,
    element_text,
    find_child_element,
  )
from . import query

KHZ_TO_HZ = 1000
"""Channel frequencies are reported in kHz and stored in Hz."""

DEVICE_INFO_FIELDS: List[FieldSpec] = [
    FieldSpec("user-device-name", "name", MAX_DEVICE_NAME_LEN),
    FieldSpec("user-device-location", "location", MAX_DEVICE_LOCATION_LEN),
    FieldSpec("friendly-model-name", "model", MAX_DEVICE_MODEL_LEN),
    FieldSpec("serial-number", "serial", MAX_DEVICE_SERIAL_LEN),
    FieldSpec("ui-resolution", "resolution", MAX_RESOLUTION_LEN),
    FieldSpec("wifi-mac", "mac_address", MAX_MAC_ADDRESS_LEN),
    FieldSpec("software-version", "software_version", MAX_SOFTWARE_VERSION_LEN),
    FieldSpec("power-mode", "power_mode"),
    FieldSpec("is-tv", "is_tv"),
    FieldSpec("ecp-setting-mode", "ecp_setting_mode"),
    FieldSpec("developer-enabled", "developer_mode"),
    FieldSpec("search-enabled", "has_search_support"),
    FieldSpec("supports-private-listening", "has_headphone_support"),
    FieldSpec("headphones-connected", "headphones_connected"),
  ]

TV_CHANNEL_FIELDS: List[FieldSpec] = [
    FieldSpec("channel-id", "id", MAX_CHANNEL_ID_LEN),
    FieldSpec("broadcast-network-label", "network", MAX_CHANNEL_NETWORK_LEN),
    FieldSpec("name", "name", MAX_CHANNEL_NAME_LEN),
    FieldSpec("type", "type", MAX_CHANNEL_TYPE_LEN),
    FieldSpec("physical-channel", "physical_channel"),
    FieldSpec("physical-frequency", "frequency"),
  ]

ACTIVE_TV_CHANNEL_FIELDS: List[FieldSpec] = [
    FieldSpec("active-input", "is_active"),
    FieldSpec("program-title", "title", MAX_PROGRAM_TITLE_LEN),
    FieldSpec("program-description", "description", MAX_PROGRAM_DESCRIPTION_LEN),
    FieldSpec("program-ratings", "rating", MAX_PROGRAM_RATING_LEN),
    FieldSpec("program-has-cc", "has_cc"),
    FieldSpec("signal-mode", "resolution", MAX_RESOLUTION_LEN),
    FieldSpec("signal-state", "signal_state"),
    FieldSpec("signal-quality", "signal_quality"),
    FieldSpec("signal-strength", "signal_strength"),
  ]

APP_FIELDS: List[FieldSpec] = [
    FieldSpec("id", "id", MAX_APP_ID_LEN, FieldKind.ATTRIBUTE),
    FieldSpec("type", "type", MAX_APP_TYPE_LEN, FieldKind.ATTRIBUTE),
    FieldSpec("version", "version", MAX_APP_VERSION_LEN, FieldKind.ATTRIBUTE),
  ]

def _transport_or_default(transport: Optional[EcpTransport]) -> EcpTransport:
    return EcpTransport() if transport is None else transport

def _require_tv(device: RokuDevice, operation: str) -> None:
    if not device.is_tv:
        raise EcpCapabilityError(f"{operation} is only supported on Roku TVs; {device.url} is not a TV")

def _require_not_limited(device: RokuDevice, operation: str) -> None:
    if device.is_limited:
        raise EcpCapabilityError(f"{operation} is not allowed while ECP on {device.url} is in Limited mode")

def _query(device_url: str, path: str, transport: Optional[EcpTransport], expected_tag: str) -> ET.Element:
    url = query.ecp_url(device_url, path)
    payload = _transport_or_default(transport).get(url)
    return parse_xml_root(payload, expected_tag=expected_tag, source=path)

# ---------------------------------------------------------------------------- device info

def parse_device_info(url: str, root: ET.Element) -> RokuDevice:
    """Builds a RokuDevice from a <device-info> element."""
    f = extract_fields(root, DEVICE_INFO_FIELDS)
    return RokuDevice(
        url=query.normalize_base_url(url),
        name=f["name"],
        location=f["location"],
        model=f["model"],
        serial=f["serial"],
        mac_address=f["mac_address"],
        software_version=f["software_version"],
        resolution=f["resolution"],
        is_tv=parse_bool(f["is_tv"]),
        is_on=parse_bool(f["power_mode"], "PowerOn"),
        is_limited=parse_bool(f["ecp_setting_mode"], "limited"),
        developer_mode=parse_bool(f["developer_mode"]),
        has_search_support=parse_bool(f["has_search_support"]),
        has_headphone_support=parse_bool(f["has_headphone_support"]),
        headphones_connected=parse_bool(f["headphones_connected"]),
      )

def get_roku_device(url: str, transport: Optional[EcpTransport]=None) -> RokuDevice:
    """Reads a device's identity and capabilities from its ECP base URL (e.g., "http://192.168.1.162:8060/")."""
    root = _query(url, query.PATH_DEVICE_INFO, transport, "device-info")
    device = parse_device_info(url, root)
    logger.debug(f"Device info for {device.url}: {device}")
    return device

# ---------------------------------------------------------------------------- keys and input

def send_key(device: RokuDevice, key: str, transport: Optional[EcpTransport]=None) -> None:
    """Sends a keypress, emulating a button on a Roku remote. See
       https://developer.roku.com/docs/developer-program/dev-tools/external-control-api.md#keypress-key-values

    Raises:
        EcpCapabilityError: key is a TV-only key and the device is not a TV, or the device is in Limited mode.
    """
    if not device.is_tv and key in TV_ONLY_KEYS:
        raise EcpCapabilityError(f"Key {key!r} is only supported on Roku TVs; {device.url} is not a TV")
    _require_not_limited(device, "Keypress")
    url = query.keypress_url(device.url, key)
    _transport_or_default(transport).post(url)

def literal_key(char: str, encoding: str="utf-8") -> Optional[str]:
    """Returns the "Lit_" keypress key that types a single character, or None if the character
       cannot be represented in encoding."""
    try:
        encoded = char.encode(encoding)
    except UnicodeEncodeError:
        return None
    return LITERAL_KEY_PREFIX + quote(encoded, safe='')

def type_string(
        device: RokuDevice,
        text: str,
        encoding: str="utf-8",
        transport: Optional[EcpTransport]=None
      ) -> List[str]:
    """Types a string on the device as a series of literal keypresses, one per character.

    Each character is encoded with `encoding` and percent-escaped. Characters that cannot be
    represented in `encoding` are skipped; the rest of the string is still sent.

    A keypress that fails is logged and typing continues with the next character; the first
    such error is raised once the whole string has been sent. A 401 (EcpAccessDeniedError)
    is raised at once, since no further keypress can succeed.

    Returns:
        The keys that were sent, in order.

    Raises:
        EcpCapabilityError: The device is in Limited mode.
        EcpInputError:      encoding is not a known codec.
        EcpAccessDeniedError: ECP access is disabled on the device.
        RokuEcpError:       The first keypress that failed.
    """
    _require_not_limited(device, "Text input")
    try:
        codecs.lookup(encoding)
    except LookupError as e:
        raise EcpInputError(f"Unknown text encoding: {encoding!r}") from e
    transport = _transport_or_default(transport)
    sent: List[str] = []
    first_error: Optional[RokuEcpError] = None
    for char in text:
        key = literal_key(char, encoding)
        if key is None:
            logger.warning(f"Skipping character {char!r} (U+{ord(char):04X}) that cannot be encoded in {encoding}")
            continue
        try:
            send_key(device, key, transport=transport)
        except EcpAccessDeniedError:
            raise
        except RokuEcpError as e:
            logger.warning(f"Keypress {key} failed, continuing: {e}")
            if first_error is None:
                first_error = e
            continue
        sent.append(key)
    if first_error is not None:
        raise first_error
    return sent

def send_custom_input(
        device: RokuDevice,
        params: Union[Mapping[str, str], Iterable[Tuple[str, str]]],
        transport: Optional[EcpTransport]=None
      ) -> None:
    """Sends custom name/value input to the active app (/input)."""
    _require_not_limited(device, "Custom input")
    pairs = list(params.items()) if isinstance(params, Mapping) else list(params)
    url = query.input_url(device.url, pairs)
    _transport_or_default(transport).post(url)

def search(
        device: RokuDevice,
        keyword: str,
        params: Optional[RokuSearchParams]=None,
        transport: Optional[EcpTransport]=None
      ) -> None:
    """Runs a search for a movie, TV show, person, app or other keyword, and either displays the results
       or launches the first one, depending on params.

    Raises:
        EcpCapabilityError: The device does not support search, or is in Limited mode.
        EcpInputError:      keyword is empty, or params are out of range.
    """
    if not device.has_search_support:
        raise EcpCapabilityError(f"{device.url} does not support search")
    _require_not_limited(device, "Search")
    url = query.search_url(device.url, keyword, params)
    _transport_or_default(transport).post(url)

# ---------------------------------------------------------------------------- TV channels

def parse_tv_channel(node: Optional[ET.Element]) -> RokuTVChannel:
    """Builds a RokuTVChannel from a <channel> element. Frequency is converted from kHz to Hz."""
    f = extract_fields(node, TV_CHANNEL_FIELDS)
    return RokuTVChannel(
        id=f["id"],
        name=f["name"],
        type=f["type"],
        network=f["network"],
        physical_channel=parse_int(f["physical_channel"]),
        frequency=parse_int(f["frequency"]) * KHZ_TO_HZ,
      )

def parse_tv_channels(root: ET.Element, max_channels: Optional[int]=None) -> List[RokuTVChannel]:
    channels: List[RokuTVChannel] = []
    for node in child_elements(root):
        if max_channels is not None and len(channels) >= max_channels:
            break
        channels.append(parse_tv_channel(node))
    return channels

def get_tv_channels(
        device: RokuDevice,
        max_channels: Optional[int]=None,
        transport: Optional[EcpTransport]=None
      ) -> List[RokuTVChannel]:
    """Lists the TV channels available on a Roku TV (at most max_channels, if given).

    Raises:
        EcpCapabilityError: The device is not a TV, or is in Limited mode.
    """
    _require_tv(device, "Listing TV channels")
    _require_not_limited(device, "Listing TV channels")
    root = _query(device.url, query.PATH_TV_CHANNELS, transport, "tv-channels")
    return parse_tv_channels(root, max_channels)

def parse_active_tv_channel(root: ET.Element) -> RokuExtTVChannel:
    """Builds a RokuExtTVChannel from a <tv-channel> element.

    Raises:
        EcpEmptyResponseError: root has no <channel> child element.
    """
    node = first_child_element(root)
    if node is None:
        raise EcpEmptyResponseError("Active TV channel response has no channel element")
    channel = parse_tv_channel(node)
    f = extract_fields(node, ACTIVE_TV_CHANNEL_FIELDS)
    if not parse_bool(f["is_active"]):
        # Inactive channels only describe the channel itself.
        return RokuExtTVChannel(channel=channel, is_active=False)
    signal_state = f["signal_state"]
    return RokuExtTVChannel(
        channel=channel,
        is_active=True,
        program=RokuTVProgram(
            title=f["title"],
            description=f["description"],
            rating=f["rating"],
            has_cc=parse_bool(f["has_cc"]),
          ),
        signal_received=signal_state not in ("", "none"),
        resolution=f["resolution"],
        signal_quality=parse_int(f["signal_quality"]),
        signal_strength=parse_int(f["signal_strength"]),
      )

def get_active_tv_channel(device: RokuDevice, transport: Optional[EcpTransport]=None) -> RokuExtTVChannel:
    """Returns the current (or last) active TV channel on a Roku TV.

    Raises:
        EcpCapabilityError:    The device is not a TV, or is in Limited mode.
        EcpEmptyResponseError: The response does not describe a channel.
    """
    _require_tv(device, "Querying the active TV channel")
    _require_not_limited(device, "Querying the active TV channel")
    root = _query(device.url, query.PATH_TV_ACTIVE_CHANNEL, transport, "tv-channel")
    return parse_active_tv_channel(root)

def launch_tv_channel(
        device: RokuDevice,
        channel: Union[RokuTVChannel, str],
        transport: Optional[EcpTransport]=None
      ) -> None:
    """Tunes a Roku TV to a channel (a RokuTVChannel or a channel ID like "3.1")."""
    _require_tv(device, "Launching a TV channel")
    channel_id = channel.id if isinstance(channel, RokuTVChannel) else channel
    launch_app(device, query.tv_channel_launch_params(channel_id), transport=transport)

# ---------------------------------------------------------------------------- apps

def parse_app(node: Optional[ET.Element]) -> RokuApp:
    """Builds a RokuApp from an <app> element; the name is the element text, everything else is attributes."""
    f = extract_fields(node, APP_FIELDS)
    return RokuApp(
        id=f["id"],
        name=element_text(node).strip()[:MAX_APP_NAME_LEN],
        type=f["type"],
        version=f["version"],
      )

def parse_apps(root: ET.Element, max_apps: Optional[int]=None) -> List[RokuApp]:
    apps: List[RokuApp] = []
    for node in child_elements(root):
        if max_apps is not None and len(apps) >= max_apps:
            break
        apps.append(parse_app(node))
    return apps

def get_apps(
        device: RokuDevice,
        max_apps: Optional[int]=None,
        transport: Optional[EcpTransport]=None
      ) -> List[RokuApp]:
    """Lists the apps installed on the device (at most max_apps, if given).

    Raises:
        EcpCapabilityError: The device is in Limited mode.
    """
    _require_not_limited(device, "Listing apps")
    root = _query(device.url, query.PATH_APPS, transport, "apps")
    return parse_apps(root, max_apps)

def get_active_app(device: RokuDevice, transport: Optional[EcpTransport]=None) -> RokuApp:
    """Returns the app currently in the foreground. On the home screen this is an app named "Roku"
       with no ID.

    Raises:
        EcpEmptyResponseError: The response has no <app> element.
    """
    root = _query(device.url, query.PATH_ACTIVE_APP, transport, "active-app")
    node = find_child_element(root, "app")
    if node is None:
        node = first_child_element(root)
    if node is None:
        raise EcpEmptyResponseError("Active app response has no app element")
    return parse_app(node)

def get_app_icon(
        device: RokuDevice,
        app: Union[RokuApp, str],
        transport: Optional[EcpTransport]=None
      ) -> RokuAppIcon:
    """Downloads an app's icon (a RokuApp or an app ID).

    Raises:
        EcpCapabilityError: The device is in Limited mode.
    """
    _require_not_limited(device, "Fetching app icons")
    app_id = app.id if isinstance(app, RokuApp) else app
    url = query.icon_url(device.url, app_id)
    response = _transport_or_default(transport).fetch(url, "GET")
    return RokuAppIcon(data=bytes(response.payload), content_type=response.content_type)

def launch_app(device: RokuDevice, params: Union[RokuAppLaunchParams, str], transport: Optional[EcpTransport]=None) -> None:
    """Launches an app, optionally deep-linking to content (a RokuAppLaunchParams or an app ID)."""
    if isinstance(params, str):
        params = RokuAppLaunchParams(params)
    url = query.launch_url(device.url, params)
    _transport_or_default(transport).post(url)
