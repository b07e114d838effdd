# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Constants used by this package"""

SSDP_MULTICAST_ADDRESS = "239.255.255.250"
"""The multicast address used by SSDP for UDP multicast."""

SSDP_PORT = 1900
"""The port number used by SSDP for UDP multicast."""

ROKU_ECP_SERVICE_TYPE = "roku:ecp"
"""The SSDP search target (ST) advertised by Roku devices that support ECP."""

ECP_PORT = 8060
"""The TCP port on which Roku devices serve ECP."""

DISCOVERY_TIME_BUDGET = 5.0
"""The maximum amount of time (in seconds) that device discovery will wait for responses."""

DEFAULT_SEARCH_MX = 3
"""The MX (maximum response delay, in seconds) requested in SSDP M-SEARCH requests."""

DEFAULT_HTTP_TIMEOUT = 10.0
"""The default timeout (in seconds) applied to each ECP HTTP request."""

TV_ONLY_KEYS = frozenset([
    "VolumeUp",
    "VolumeDown",
    "VolumeMute",
    "PowerOff",
    "ChannelUp",
    "ChannelDown",
    "InputTuner",
    "InputHDMI1",
    "InputHDMI2",
    "InputHDMI3",
    "InputHDMI4",
    "InputAV1",
  ])
"""Keypress key names that are only meaningful on Roku TVs."""

LITERAL_KEY_PREFIX = "Lit_"
"""Prefix of keypress key names that type a single literal character."""

TV_INPUT_APP_ID = "tvinput.dtv"
"""The app ID of the built-in TV tuner input."""

MAX_SEARCH_PROVIDERS = 8
"""The maximum number of provider IDs that may be passed to a search."""

# Maximum lengths of string fields, as documented by ECP.
MAX_DEVICE_NAME_LEN = 120
MAX_DEVICE_LOCATION_LEN = 15
MAX_DEVICE_MODEL_LEN = 31
MAX_DEVICE_SERIAL_LEN = 13
MAX_RESOLUTION_LEN = 7
MAX_MAC_ADDRESS_LEN = 17
MAX_SOFTWARE_VERSION_LEN = 9

MAX_CHANNEL_ID_LEN = 7
MAX_CHANNEL_NAME_LEN = 7
MAX_CHANNEL_TYPE_LEN = 13
MAX_CHANNEL_NETWORK_LEN = 31

MAX_PROGRAM_TITLE_LEN = 111
MAX_PROGRAM_DESCRIPTION_LEN = 255
MAX_PROGRAM_RATING_LEN = 14

MAX_APP_ID_LEN = 13
MAX_APP_NAME_LEN = 30
MAX_APP_TYPE_LEN = 4
MAX_APP_VERSION_LEN = 21

MAX_TMS_ID_LEN = 14
