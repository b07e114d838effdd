# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Data records exchanged with Roku devices over ECP.

Records returned by queries are frozen; a device snapshot does not change after it has been
read. Call get_roku_device() again to refresh it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .internal_types import *

@dataclass(frozen=True)
class RokuDevice:
    """Identity and capability snapshot of a Roku device, as reported by /query/device-info."""

    url: str
    """The ECP base URL of the device, without a trailing slash (e.g., "http://192.168.1.162:8060")"""

    name: str = ""
    """User-assigned device name, up to 120 characters"""

    location: str = ""
    """User-assigned location (like "Bedroom"), up to 15 characters"""

    model: str = ""
    """Friendly model name, up to 31 characters"""

    serial: str = ""
    """Serial number, 13 characters"""

    mac_address: str = ""
    """Wi-Fi MAC address, 17 characters"""

    software_version: str = ""
    """Software version, up to 9 characters"""

    resolution: str = ""
    """UI resolution (like "1080p"), up to 7 characters"""

    is_tv: bool = False
    """True if the device is a Roku TV"""

    is_on: bool = False
    """True if the device is currently powered on"""

    is_limited: bool = False
    """True if ECP is in "Limited" mode, which disallows most input and some queries"""

    developer_mode: bool = False
    """True if developer mode is enabled"""

    has_search_support: bool = False
    """True if the device supports /search/browse"""

    has_headphone_support: bool = False
    """True if the device supports Private Listening"""

    headphones_connected: bool = False
    """True if the device is currently in Private Listening mode"""


@dataclass(frozen=True)
class RokuTVChannel:
    """A TV channel on a Roku TV."""

    id: str = ""
    """Channel ID, usually the channel number (like "3.1"), up to 7 characters"""

    name: str = ""
    """Channel short name, up to 7 characters"""

    type: str = ""
    """Channel type (like "air-digital"), up to 13 characters"""

    network: str = ""
    """Broadcast network label"""

    physical_channel: int = 0
    """Physical RF channel number (nominally 2-69)"""

    frequency: int = 0
    """Channel frequency in Hz"""


@dataclass(frozen=True)
class RokuTVProgram:
    """A TV program playing on the active TV channel."""

    title: str = ""
    description: str = ""
    rating: str = ""
    has_cc: bool = False
    """True if closed captions are available"""


@dataclass(frozen=True)
class RokuExtTVChannel:
    """Extended information about the current or last active TV channel.

       If is_active is False, only `channel` is populated and every other field has its zero value."""

    channel: RokuTVChannel = field(default_factory=RokuTVChannel)

    is_active: bool = False
    """True if the channel is currently playing on the TV"""

    program: RokuTVProgram = field(default_factory=RokuTVProgram)

    signal_received: bool = False
    """False if there is currently no signal"""

    resolution: str = ""
    """Resolution at which the channel is received (like "1080i")"""

    signal_quality: int = 0
    """Signal quality, 0-100"""

    signal_strength: int = 0
    """Signal strength in dB"""


@dataclass(frozen=True)
class RokuApp:
    """A Roku channel (app)."""

    id: str = ""
    """App ID, up to 13 characters"""

    name: str = ""
    """App name, up to 30 characters"""

    type: str = ""
    """App type, usually "appl" """

    version: str = ""
    """App version, up to 21 characters"""


@dataclass(frozen=True)
class RokuAppIcon:
    """An app icon image. The data belongs to the caller; nothing is cached."""

    data: bytes = b''
    content_type: str = ""
    """The MIME type reported by the device (e.g., "image/png"), or "" if not reported"""

    @property
    def size(self) -> int:
        """The number of bytes in data"""
        return len(self.data)


class RokuSearchType(Enum):
    """Roku search filter"""
    MOVIE = "movie"
    SHOW = "tv-show"
    PERSON = "person"
    APP = "channel"
    GAME = "game"
    NONE = None


@dataclass
class RokuSearchParams:
    """Parameters of a search. All fields are optional."""

    type: RokuSearchType = RokuSearchType.NONE
    """Filter for the kind of result to look for"""

    include_unavailable: bool = False
    """Include results that are unavailable in your region"""

    auto_select: bool = False
    """Automatically select the first result"""

    auto_launch: bool = False
    """Automatically launch the first provider in provider_ids that has a result"""

    season: int = 0
    """Season of the show to search for; 0 for none"""

    tms_id: str = ""
    """TMS ID of the movie or show to search for, 14 characters"""

    provider_ids: List[str] = field(default_factory=list)
    """Up to 8 app IDs of providers to look for results from (like "12" for Netflix)"""


class RokuMediaType(Enum):
    """Media type of the content passed to an app launch"""
    NO_TYPE = None
    FILM = "movie"
    SERIES = "series"
    SEASON = "season"
    EPISODE = "episode"
    SHORT_FORM_VIDEO = "shortFormVideo"
    TV_SPECIAL = "tvSpecial"


@dataclass
class RokuAppLaunchParams:
    """Parameters of an app launch (deep link)."""

    app_id: str
    content_id: str = ""
    media_type: RokuMediaType = RokuMediaType.NO_TYPE
    other_params: List[Tuple[str, str]] = field(default_factory=list)
    """Additional name/value pairs passed to the app, in order"""
