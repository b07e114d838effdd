"""
Shared fixtures for unit tests.

Provides a recording fake ECP transport and canned device XML so that protocol operations
can be tested without a Roku device on the network.
"""

from typing import Dict, List, Optional, Tuple, Union
from urllib.parse import urlsplit

import pytest

from roku_ecp import EcpTransport, EcpResponse, RokuDevice

DEVICE_URL = "http://192.168.1.162:8060"


class FakeTransport(EcpTransport):
    """An EcpTransport that records requests and answers from a table keyed by URL path."""

    def __init__(self, responses: Optional[Dict[str, Union[bytes, EcpResponse, Exception]]] = None):
        super().__init__(timeout=1.0)
        self.responses = {} if responses is None else dict(responses)
        self.requests: List[Tuple[str, str]] = []

    def fetch(self, url: str, method: str = "GET") -> EcpResponse:
        self.requests.append((method, url))
        path = urlsplit(url).path
        response = self.responses.get(path, b"")
        if isinstance(response, Exception):
            raise response
        if isinstance(response, EcpResponse):
            return response
        return EcpResponse(response, "text/xml; charset=\"utf-8\"")

    @property
    def urls(self) -> List[str]:
        return [url for _, url in self.requests]

    @property
    def methods(self) -> List[str]:
        return [method for method, _ in self.requests]


@pytest.fixture
def fake_transport():
    """A FakeTransport with no canned responses"""
    return FakeTransport()


@pytest.fixture
def player():
    """A Roku streaming player (not a TV) with full ECP access and search support"""
    return RokuDevice(url=DEVICE_URL, name="Living Room", is_on=True, has_search_support=True)


@pytest.fixture
def tv():
    """A Roku TV with full ECP access and search support"""
    return RokuDevice(url=DEVICE_URL, name="Bedroom TV", is_tv=True, is_on=True, has_search_support=True)


@pytest.fixture
def limited_tv():
    """A Roku TV with ECP in Limited mode"""
    return RokuDevice(url=DEVICE_URL, name="Kitchen TV", is_tv=True, is_limited=True, has_search_support=True)


DEVICE_INFO_XML = b"""<?xml version="1.0" encoding="UTF-8" ?>
<device-info>
    <udn>29380007-0800-1025-80a4-d83154332d7e</udn>
    <serial-number>X00400XXXXXX</serial-number>
    <device-id>S0000XXXXXXX</device-id>
    <vendor-name>TCL</vendor-name>
    <model-name>7105X</model-name>
    <friendly-model-name>TCL\xc2\xb7Roku TV</friendly-model-name>
    <user-device-name>Bedroom TV</user-device-name>
    <user-device-location>Bedroom</user-device-location>
    <is-tv>true</is-tv>
    <is-stick>false</is-stick>
    <ui-resolution>1080p</ui-resolution>
    <wifi-mac>d8:31:34:33:2d:7e</wifi-mac>
    <software-version>11.5.0</software-version>
    <software-build>4312</software-build>
    <power-mode>PowerOn</power-mode>
    <supports-private-listening>true</supports-private-listening>
    <headphones-connected>false</headphones-connected>
    <developer-enabled>true</developer-enabled>
    <search-enabled>true</search-enabled>
    <ecp-setting-mode>enabled</ecp-setting-mode>
</device-info>
"""

TV_CHANNELS_XML = b"""<?xml version="1.0" encoding="UTF-8" ?>
<tv-channels>
    <channel>
        <number>2.1</number>
        <channel-id>2.1</channel-id>
        <name>WGBH-HD</name>
        <type>air-digital</type>
        <user-hidden>false</user-hidden>
        <physical-channel>19</physical-channel>
        <physical-frequency>503000</physical-frequency>
        <broadcast-network-label>PBS</broadcast-network-label>
    </channel>
    <channel>
        <channel-id>4.1</channel-id>
        <name>WBZ-DT</name>
        <type>air-digital</type>
        <physical-channel>30</physical-channel>
        <physical-frequency>569000</physical-frequency>
    </channel>
    <!-- hidden channels follow -->
    <channel>
        <channel-id>5.1</channel-id>
        <name>WCVB-HD</name>
    </channel>
</tv-channels>
"""

ACTIVE_TV_CHANNEL_XML = b"""<?xml version="1.0" encoding="UTF-8" ?>
<tv-channel>
    <channel>
        <number>2.1</number>
        <channel-id>2.1</channel-id>
        <name>WGBH-HD</name>
        <type>air-digital</type>
        <physical-channel>19</physical-channel>
        <physical-frequency>503000</physical-frequency>
        <active-input>true</active-input>
        <signal-state>valid</signal-state>
        <signal-mode>1080i</signal-mode>
        <signal-quality>87</signal-quality>
        <signal-strength>-52</signal-strength>
        <program-title>Antiques Roadshow</program-title>
        <program-description>Appraisals in Boston.</program-description>
        <program-ratings>TV-G</program-ratings>
        <program-analog-audio>none</program-analog-audio>
        <program-digital-audio>stereo</program-digital-audio>
        <program-audio-languages>eng</program-audio-languages>
        <program-audio-format>AC3</program-audio-format>
        <program-audio-language>eng</program-audio-language>
        <program-has-cc>true</program-has-cc>
    </channel>
</tv-channel>
"""

APPS_XML = b"""<?xml version="1.0" encoding="UTF-8" ?>
<apps>
    <app id="tvinput.hdmi1" type="tvin" version="1.0.0">Blu-ray player</app>
    <app id="12" subtype="ndka" type="appl" version="5.1.120079020">Netflix</app>
    <app id="837" subtype="ndka" type="appl" version="2.21.105005107">YouTube</app>
</apps>
"""

ACTIVE_APP_XML = b"""<?xml version="1.0" encoding="UTF-8" ?>
<active-app>
    <app id="12" subtype="ndka" type="appl" version="5.1.120079020">Netflix</app>
</active-app>
"""
