"""Unit tests for the ECP protocol operations in roku_ecp.ecp.

Operations run against a FakeTransport; the tests check the exact URLs sent, the parsed
records, capability gating (no request is sent when an operation is refused), and the
error raised for each kind of bad response.
"""

import pytest

from conftest import (
    DEVICE_URL,
    DEVICE_INFO_XML,
    TV_CHANNELS_XML,
    ACTIVE_TV_CHANNEL_XML,
    APPS_XML,
    ACTIVE_APP_XML,
    FakeTransport,
)
from roku_ecp import (
    EcpAccessDeniedError,
    EcpCapabilityError,
    EcpEmptyResponseError,
    EcpErrorKind,
    EcpHttpError,
    EcpInputError,
    EcpMalformedResponseError,
    EcpResponse,
    EcpTransportError,
    RokuApp,
    RokuAppLaunchParams,
    RokuDevice,
    RokuMediaType,
    RokuSearchParams,
    RokuSearchType,
    RokuTVChannel,
    get_active_app,
    get_active_tv_channel,
    get_app_icon,
    get_apps,
    get_roku_device,
    get_tv_channels,
    launch_app,
    launch_tv_channel,
    search,
    send_custom_input,
    send_key,
    type_string,
)


class TestGetRokuDevice:
    """Tests for get_roku_device"""

    def test_parses_device_info(self):
        """Test that all device-info fields and flags are populated"""
        transport = FakeTransport({"/query/device-info": DEVICE_INFO_XML})

        device = get_roku_device(DEVICE_URL + "/", transport=transport)

        assert transport.requests == [("GET", DEVICE_URL + "/query/device-info")]
        assert device.url == DEVICE_URL
        assert device.name == "Bedroom TV"
        assert device.location == "Bedroom"
        assert device.model == "TCL·Roku TV"
        assert device.serial == "X00400XXXXXX"
        assert device.mac_address == "d8:31:34:33:2d:7e"
        assert device.software_version == "11.5.0"
        assert device.resolution == "1080p"
        assert device.is_tv is True
        assert device.is_on is True
        assert device.is_limited is False
        assert device.developer_mode is True
        assert device.has_search_support is True
        assert device.has_headphone_support is True
        assert device.headphones_connected is False

    def test_limited_mode(self):
        """Test that ecp-setting-mode "limited" sets is_limited"""
        xml = DEVICE_INFO_XML.replace(b"<ecp-setting-mode>enabled", b"<ecp-setting-mode>limited")
        transport = FakeTransport({"/query/device-info": xml})

        device = get_roku_device(DEVICE_URL, transport=transport)

        assert device.is_limited is True

    def test_missing_fields_default(self):
        """Test that a sparse device-info yields empty strings and False flags"""
        transport = FakeTransport({"/query/device-info": b"<device-info><user-device-name>Den</user-device-name></device-info>"})

        device = get_roku_device(DEVICE_URL, transport=transport)

        assert device.name == "Den"
        assert device.model == ""
        assert device.serial == ""
        assert device.is_tv is False
        assert device.is_on is False
        assert device.is_limited is False
        assert device.has_search_support is False

    def test_oversize_fields_truncated(self):
        """Test that device-supplied values are truncated to their maximum lengths"""
        xml = (
            b"<device-info>"
            b"<user-device-location>A very long location name</user-device-location>"
            b"<software-version>11.5.0.4312-extra</software-version>"
            b"</device-info>"
        )
        transport = FakeTransport({"/query/device-info": xml})

        device = get_roku_device(DEVICE_URL, transport=transport)

        assert device.location == "A very long loc"
        assert len(device.location) == 15
        assert device.software_version == "11.5.0.43"

    def test_power_mode_not_on(self):
        """Test that any power-mode other than PowerOn is reported as off"""
        xml = DEVICE_INFO_XML.replace(b"PowerOn", b"DisplayOff")
        transport = FakeTransport({"/query/device-info": xml})

        assert get_roku_device(DEVICE_URL, transport=transport).is_on is False

    def test_malformed_xml(self):
        """Test that a non-XML body raises EcpMalformedResponseError"""
        transport = FakeTransport({"/query/device-info": b"<device-info><name>oops"})

        with pytest.raises(EcpMalformedResponseError) as exc_info:
            get_roku_device(DEVICE_URL, transport=transport)
        assert exc_info.value.kind == EcpErrorKind.MALFORMED_RESPONSE

    def test_empty_body(self):
        """Test that an empty body raises EcpEmptyResponseError"""
        transport = FakeTransport({"/query/device-info": b""})

        with pytest.raises(EcpEmptyResponseError):
            get_roku_device(DEVICE_URL, transport=transport)

    def test_wrong_root_element(self):
        """Test that a response without a device-info root raises EcpEmptyResponseError"""
        transport = FakeTransport({"/query/device-info": b"<html><body>hello</body></html>"})

        with pytest.raises(EcpEmptyResponseError):
            get_roku_device(DEVICE_URL, transport=transport)

    def test_access_denied_propagates(self):
        """Test that a 401 from the device is raised distinctly from transport errors"""
        transport = FakeTransport({"/query/device-info": EcpAccessDeniedError(url=DEVICE_URL + "/query/device-info")})

        with pytest.raises(EcpAccessDeniedError) as exc_info:
            get_roku_device(DEVICE_URL, transport=transport)
        assert exc_info.value.kind == EcpErrorKind.ACCESS_DENIED
        assert not isinstance(exc_info.value, EcpTransportError)

    def test_empty_url_rejected(self):
        """Test that an empty URL is rejected before any request"""
        transport = FakeTransport()

        with pytest.raises(EcpInputError):
            get_roku_device("", transport=transport)
        assert transport.requests == []


class TestSendKey:
    """Tests for send_key"""

    def test_posts_keypress(self, player, fake_transport):
        """Test that a keypress is a POST to /keypress/{key}"""
        send_key(player, "Home", transport=fake_transport)

        assert fake_transport.requests == [("POST", DEVICE_URL + "/keypress/Home")]

    def test_tv_only_key_on_tv(self, tv, fake_transport):
        """Test that TV-only keys are allowed on a TV"""
        send_key(tv, "VolumeUp", transport=fake_transport)

        assert fake_transport.urls == [DEVICE_URL + "/keypress/VolumeUp"]

    def test_tv_only_key_on_player(self, player, fake_transport):
        """Test that TV-only keys are refused on a non-TV without any request"""
        with pytest.raises(EcpCapabilityError) as exc_info:
            send_key(player, "PowerOff", transport=fake_transport)

        assert exc_info.value.kind == EcpErrorKind.CAPABILITY_DENIED
        assert fake_transport.requests == []

    def test_limited_mode(self, limited_tv, fake_transport):
        """Test that keypresses are refused in Limited mode"""
        with pytest.raises(EcpCapabilityError):
            send_key(limited_tv, "Select", transport=fake_transport)

        assert fake_transport.requests == []

    def test_empty_key(self, player, fake_transport):
        """Test that an empty key is rejected"""
        with pytest.raises(EcpInputError):
            send_key(player, "", transport=fake_transport)

        assert fake_transport.requests == []


class TestTypeString:
    """Tests for type_string"""

    def test_ascii(self, player, fake_transport):
        """Test that each character becomes one literal keypress, in order"""
        sent = type_string(player, "ab c", transport=fake_transport)

        assert sent == ["Lit_a", "Lit_b", "Lit_%20", "Lit_c"]
        assert fake_transport.urls == [
            DEVICE_URL + "/keypress/Lit_a",
            DEVICE_URL + "/keypress/Lit_b",
            DEVICE_URL + "/keypress/Lit_%20",
            DEVICE_URL + "/keypress/Lit_c",
        ]
        assert set(fake_transport.methods) == {"POST"}

    def test_utf8_multibyte(self, player, fake_transport):
        """Test that a non-ASCII character is sent as its percent-encoded UTF-8 bytes"""
        sent = type_string(player, "é", transport=fake_transport)

        assert sent == ["Lit_%C3%A9"]
        assert fake_transport.urls == [DEVICE_URL + "/keypress/Lit_%C3%A9"]

    def test_unencodable_characters_skipped(self, player, fake_transport):
        """Test that characters that cannot be encoded are skipped and the rest are sent"""
        sent = type_string(player, "a€b", encoding="latin-1", transport=fake_transport)

        assert sent == ["Lit_a", "Lit_b"]
        assert len(fake_transport.requests) == 2

    def test_reserved_characters_escaped(self, player, fake_transport):
        """Test that URL-reserved characters are percent-encoded"""
        sent = type_string(player, "/?&", transport=fake_transport)

        assert sent == ["Lit_%2F", "Lit_%3F", "Lit_%26"]

    def test_empty_string(self, player, fake_transport):
        """Test that typing an empty string sends nothing"""
        assert type_string(player, "", transport=fake_transport) == []
        assert fake_transport.requests == []

    def test_unknown_encoding(self, player, fake_transport):
        """Test that an unknown encoding is rejected before any request"""
        with pytest.raises(EcpInputError):
            type_string(player, "abc", encoding="no-such-codec", transport=fake_transport)

        assert fake_transport.requests == []

    def test_limited_mode(self, limited_tv, fake_transport):
        """Test that typing is refused in Limited mode"""
        with pytest.raises(EcpCapabilityError):
            type_string(limited_tv, "abc", transport=fake_transport)

        assert fake_transport.requests == []

    def test_failed_keypress_continues(self, player):
        """Test that a failed keypress is skipped, the rest are sent, and the error is raised at the end"""
        transport = FakeTransport({"/keypress/Lit_b": EcpTransportError("connection reset")})

        with pytest.raises(EcpTransportError):
            type_string(player, "abc", transport=transport)

        assert transport.urls == [
            DEVICE_URL + "/keypress/Lit_a",
            DEVICE_URL + "/keypress/Lit_b",
            DEVICE_URL + "/keypress/Lit_c",
        ]

    def test_first_error_raised(self, player):
        transport = FakeTransport({
            "/keypress/Lit_a": EcpHttpError(503, url=DEVICE_URL + "/keypress/Lit_a"),
            "/keypress/Lit_c": EcpTransportError("connection reset"),
        })

        with pytest.raises(EcpHttpError) as exc_info:
            type_string(player, "abc", transport=transport)

        assert exc_info.value.status_code == 503
        assert len(transport.requests) == 3

    def test_access_denied_stops_typing(self, player):
        """Test that a 401 is raised at once and no further characters are sent"""
        transport = FakeTransport({"/keypress/Lit_b": EcpAccessDeniedError(url=DEVICE_URL + "/keypress/Lit_b")})

        with pytest.raises(EcpAccessDeniedError):
            type_string(player, "abc", transport=transport)

        assert transport.urls == [DEVICE_URL + "/keypress/Lit_a", DEVICE_URL + "/keypress/Lit_b"]


class TestTVChannels:
    """Tests for get_tv_channels, get_active_tv_channel and launch_tv_channel"""

    def test_get_tv_channels(self, tv):
        """Test that every channel element is parsed and frequency is converted to Hz"""
        transport = FakeTransport({"/query/tv-channels": TV_CHANNELS_XML})

        channels = get_tv_channels(tv, transport=transport)

        assert transport.requests == [("GET", DEVICE_URL + "/query/tv-channels")]
        assert len(channels) == 3
        assert channels[0] == RokuTVChannel(
            id="2.1", name="WGBH-HD", type="air-digital", network="PBS", physical_channel=19, frequency=503000000
        )
        assert channels[1].network == ""
        assert channels[1].frequency == 569000000
        assert channels[2].id == "5.1"
        assert channels[2].physical_channel == 0
        assert channels[2].frequency == 0

    def test_get_tv_channels_max(self, tv):
        """Test that at most max_channels channels are returned, in document order"""
        transport = FakeTransport({"/query/tv-channels": TV_CHANNELS_XML})

        channels = get_tv_channels(tv, max_channels=2, transport=transport)

        assert [c.id for c in channels] == ["2.1", "4.1"]

    def test_get_tv_channels_none(self, tv):
        """Test that a TV with no scanned channels returns an empty list"""
        transport = FakeTransport({"/query/tv-channels": b"<tv-channels/>"})

        assert get_tv_channels(tv, transport=transport) == []

    def test_get_tv_channels_not_tv(self, player, fake_transport):
        """Test that listing channels on a non-TV is refused without any request"""
        with pytest.raises(EcpCapabilityError):
            get_tv_channels(player, transport=fake_transport)

        assert fake_transport.requests == []

    def test_get_tv_channels_limited(self, limited_tv, fake_transport):
        """Test that listing channels is refused in Limited mode"""
        with pytest.raises(EcpCapabilityError):
            get_tv_channels(limited_tv, transport=fake_transport)

        assert fake_transport.requests == []

    def test_get_active_tv_channel(self, tv):
        """Test that an active channel populates program and signal fields"""
        transport = FakeTransport({"/query/tv-active-channel": ACTIVE_TV_CHANNEL_XML})

        active = get_active_tv_channel(tv, transport=transport)

        assert transport.urls == [DEVICE_URL + "/query/tv-active-channel"]
        assert active.is_active is True
        assert active.channel.id == "2.1"
        assert active.channel.frequency == 503000000
        assert active.program.title == "Antiques Roadshow"
        assert active.program.description == "Appraisals in Boston."
        assert active.program.rating == "TV-G"
        assert active.program.has_cc is True
        assert active.signal_received is True
        assert active.resolution == "1080i"
        assert active.signal_quality == 87
        assert active.signal_strength == -52

    def test_get_active_tv_channel_no_signal(self, tv):
        """Test that signal-state "none" is reported as no signal"""
        xml = ACTIVE_TV_CHANNEL_XML.replace(b"<signal-state>valid", b"<signal-state>none")
        transport = FakeTransport({"/query/tv-active-channel": xml})

        assert get_active_tv_channel(tv, transport=transport).signal_received is False

    def test_get_active_tv_channel_inactive(self, tv):
        """Test that an inactive channel has zero program and signal fields"""
        xml = ACTIVE_TV_CHANNEL_XML.replace(b"<active-input>true", b"<active-input>false")
        transport = FakeTransport({"/query/tv-active-channel": xml})

        active = get_active_tv_channel(tv, transport=transport)

        assert active.is_active is False
        assert active.channel.id == "2.1"
        assert active.program.title == ""
        assert active.program.has_cc is False
        assert active.signal_received is False
        assert active.resolution == ""
        assert active.signal_quality == 0
        assert active.signal_strength == 0

    def test_get_active_tv_channel_empty(self, tv):
        """Test that a response without a channel element raises EcpEmptyResponseError"""
        transport = FakeTransport({"/query/tv-active-channel": b"<tv-channel></tv-channel>"})

        with pytest.raises(EcpEmptyResponseError) as exc_info:
            get_active_tv_channel(tv, transport=transport)
        assert exc_info.value.kind == EcpErrorKind.EMPTY_RESPONSE

    def test_get_active_tv_channel_not_tv(self, player, fake_transport):
        """Test that the active channel query is refused on a non-TV"""
        with pytest.raises(EcpCapabilityError):
            get_active_tv_channel(player, transport=fake_transport)

        assert fake_transport.requests == []

    def test_launch_tv_channel(self, tv, fake_transport):
        """Test that tuning launches the TV input with every channel parameter name"""
        launch_tv_channel(tv, RokuTVChannel(id="2.1"), transport=fake_transport)

        assert fake_transport.requests == [("POST", DEVICE_URL + "/launch/tvinput.dtv?chan=2.1&lcn=2.1&ch=2.1")]

    def test_launch_tv_channel_by_id(self, tv, fake_transport):
        """Test that a channel can be given by ID"""
        launch_tv_channel(tv, "4.1", transport=fake_transport)

        assert fake_transport.urls == [DEVICE_URL + "/launch/tvinput.dtv?chan=4.1&lcn=4.1&ch=4.1"]

    def test_launch_tv_channel_not_tv(self, player, fake_transport):
        """Test that tuning is refused on a non-TV"""
        with pytest.raises(EcpCapabilityError):
            launch_tv_channel(player, "2.1", transport=fake_transport)

        assert fake_transport.requests == []


class TestApps:
    """Tests for get_apps, get_active_app, get_app_icon and launch_app"""

    def test_get_apps(self, player):
        """Test that apps are parsed from attributes and element text"""
        transport = FakeTransport({"/query/apps": APPS_XML})

        apps = get_apps(player, transport=transport)

        assert transport.urls == [DEVICE_URL + "/query/apps"]
        assert apps == [
            RokuApp(id="tvinput.hdmi1", name="Blu-ray player", type="tvin", version="1.0.0"),
            RokuApp(id="12", name="Netflix", type="appl", version="5.1.120079020"),
            RokuApp(id="837", name="YouTube", type="appl", version="2.21.105005107"),
        ]

    def test_get_apps_max(self, player):
        """Test that at most max_apps apps are returned"""
        transport = FakeTransport({"/query/apps": APPS_XML})

        apps = get_apps(player, max_apps=1, transport=transport)

        assert [app.id for app in apps] == ["tvinput.hdmi1"]

    def test_get_apps_truncates_name(self, player):
        """Test that an app name longer than 30 characters is truncated"""
        xml = b'<apps><app id="1" type="appl" version="1">' + b"x" * 40 + b"</app></apps>"
        transport = FakeTransport({"/query/apps": xml})

        apps = get_apps(player, transport=transport)

        assert apps[0].name == "x" * 30

    def test_get_apps_limited(self, limited_tv, fake_transport):
        """Test that listing apps is refused in Limited mode"""
        with pytest.raises(EcpCapabilityError):
            get_apps(limited_tv, transport=fake_transport)

        assert fake_transport.requests == []

    def test_get_active_app(self, player):
        """Test that the active app is parsed"""
        transport = FakeTransport({"/query/active-app": ACTIVE_APP_XML})

        app = get_active_app(player, transport=transport)

        assert app == RokuApp(id="12", name="Netflix", type="appl", version="5.1.120079020")

    def test_get_active_app_home_screen(self, player):
        """Test that the home screen is reported as an app without an ID"""
        transport = FakeTransport({"/query/active-app": b"<active-app><app>Roku</app></active-app>"})

        app = get_active_app(player, transport=transport)

        assert app == RokuApp(name="Roku")

    def test_get_active_app_allowed_when_limited(self, limited_tv):
        """Test that the active app can be queried in Limited mode"""
        transport = FakeTransport({"/query/active-app": ACTIVE_APP_XML})

        assert get_active_app(limited_tv, transport=transport).id == "12"

    def test_get_active_app_empty(self, player):
        """Test that a response without an app raises EcpEmptyResponseError"""
        transport = FakeTransport({"/query/active-app": b"<active-app></active-app>"})

        with pytest.raises(EcpEmptyResponseError):
            get_active_app(player, transport=transport)

    def test_get_app_icon(self, player):
        """Test that icon bytes and content type are returned"""
        png = b"\x89PNG\r\n\x1a\n" + b"\x00" * 100
        transport = FakeTransport({"/query/icon/12": EcpResponse(png, "image/png")})

        icon = get_app_icon(player, RokuApp(id="12"), transport=transport)

        assert transport.requests == [("GET", DEVICE_URL + "/query/icon/12")]
        assert icon.data == png
        assert icon.size == len(png)
        assert icon.content_type == "image/png"

    def test_get_app_icon_escapes_id(self, player):
        """Test that the app ID is percent-encoded in the path"""
        transport = FakeTransport()

        get_app_icon(player, "tvinput.hdmi1", transport=transport)
        get_app_icon(player, "a/b", transport=transport)

        assert transport.urls == [DEVICE_URL + "/query/icon/tvinput.hdmi1", DEVICE_URL + "/query/icon/a%2Fb"]

    def test_get_app_icon_limited(self, limited_tv, fake_transport):
        """Test that icons cannot be fetched in Limited mode"""
        with pytest.raises(EcpCapabilityError):
            get_app_icon(limited_tv, "12", transport=fake_transport)

        assert fake_transport.requests == []

    def test_launch_app(self, player, fake_transport):
        """Test that contentId, MediaType and other params are sent in order"""
        params = RokuAppLaunchParams(
            "12",
            content_id="80057281",
            media_type=RokuMediaType.FILM,
            other_params=[("start", "0"), ("title", "A & B")],
        )

        launch_app(player, params, transport=fake_transport)

        assert fake_transport.requests == [
            ("POST", DEVICE_URL + "/launch/12?contentId=80057281&MediaType=movie&start=0&title=A%20%26%20B")
        ]

    def test_launch_app_by_id(self, player, fake_transport):
        """Test that an app can be launched by ID alone"""
        launch_app(player, "837", transport=fake_transport)

        assert fake_transport.urls == [DEVICE_URL + "/launch/837"]

    def test_launch_app_empty_id(self, player, fake_transport):
        """Test that an empty app ID is rejected"""
        with pytest.raises(EcpInputError):
            launch_app(player, RokuAppLaunchParams(""), transport=fake_transport)

        assert fake_transport.requests == []


class TestCustomInput:
    """Tests for send_custom_input"""

    def test_send_custom_input(self, player, fake_transport):
        """Test that name/value pairs are escaped and sent in order"""
        send_custom_input(player, [("acceleration.x", "0.0"), ("touch.0.op", "down up")], transport=fake_transport)

        assert fake_transport.requests == [
            ("POST", DEVICE_URL + "/input?acceleration.x=0.0&touch.0.op=down%20up")
        ]

    def test_send_custom_input_mapping(self, player, fake_transport):
        """Test that a mapping is accepted"""
        send_custom_input(player, {"a": "1"}, transport=fake_transport)

        assert fake_transport.urls == [DEVICE_URL + "/input?a=1"]

    def test_send_custom_input_limited(self, limited_tv, fake_transport):
        """Test that custom input is refused in Limited mode"""
        with pytest.raises(EcpCapabilityError):
            send_custom_input(limited_tv, {"a": "1"}, transport=fake_transport)

        assert fake_transport.requests == []


class TestSearch:
    """Tests for search"""

    def test_keyword_only(self, player, fake_transport):
        """Test a search with only a keyword"""
        search(player, "the office", transport=fake_transport)

        assert fake_transport.requests == [("POST", DEVICE_URL + "/search/browse?keyword=the%20office")]

    def test_all_params(self, player, fake_transport):
        """Test that every search parameter is sent"""
        params = RokuSearchParams(
            type=RokuSearchType.SHOW,
            include_unavailable=True,
            auto_select=True,
            auto_launch=True,
            season=2,
            tms_id="SH000000000001",
            provider_ids=["12", "13"],
        )

        search(player, "the office", params, transport=fake_transport)

        assert fake_transport.urls == [
            DEVICE_URL + "/search/browse?keyword=the%20office&type=tv-show&show-unavailable=true"
            "&launch=true&match-any=true&season=2&tmsid=SH000000000001&provider-id=12,13"
        ]

    def test_empty_provider_ids_omitted(self, player, fake_transport):
        """Test that provider-id is omitted when all provider IDs are empty"""
        search(player, "news", RokuSearchParams(provider_ids=["", ""]), transport=fake_transport)

        assert fake_transport.urls == [DEVICE_URL + "/search/browse?keyword=news"]

    def test_empty_keyword(self, player, fake_transport):
        """Test that an empty keyword is rejected before any request"""
        with pytest.raises(EcpInputError) as exc_info:
            search(player, "", transport=fake_transport)

        assert exc_info.value.kind == EcpErrorKind.INVALID_INPUT
        assert fake_transport.requests == []

    def test_too_many_providers(self, player, fake_transport):
        """Test that more than 8 provider IDs are rejected"""
        params = RokuSearchParams(provider_ids=[str(i) for i in range(9)])

        with pytest.raises(EcpInputError):
            search(player, "news", params, transport=fake_transport)

        assert fake_transport.requests == []

    def test_tms_id_too_long(self, player, fake_transport):
        """Test that a TMS ID longer than 14 characters is rejected"""
        with pytest.raises(EcpInputError):
            search(player, "news", RokuSearchParams(tms_id="X" * 15), transport=fake_transport)

    def test_no_search_support(self, fake_transport):
        """Test that search is refused on a device without search support"""
        device = RokuDevice(url=DEVICE_URL, has_search_support=False)

        with pytest.raises(EcpCapabilityError):
            search(device, "news", transport=fake_transport)

        assert fake_transport.requests == []

    def test_limited_mode(self, limited_tv, fake_transport):
        """Test that search is refused in Limited mode"""
        with pytest.raises(EcpCapabilityError):
            search(limited_tv, "news", transport=fake_transport)

        assert fake_transport.requests == []
