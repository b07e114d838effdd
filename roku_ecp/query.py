# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Construction of ECP request URLs.

All names and values that come from the caller are percent-encoded; everything other
than the RFC 3986 unreserved characters (A-Z a-z 0-9 - . _ ~) is escaped.
"""

from __future__ import annotations

import re
from urllib.parse import quote

from .internal_types import *
from .constants import MAX_SEARCH_PROVIDERS, MAX_TMS_ID_LEN, MAX_APP_ID_LEN, TV_INPUT_APP_ID
from .exceptions import EcpInputError
from .models import RokuSearchParams, RokuSearchType, RokuAppLaunchParams, RokuMediaType

PATH_DEVICE_INFO = "/query/device-info"
PATH_TV_CHANNELS = "/query/tv-channels"
PATH_TV_ACTIVE_CHANNEL = "/query/tv-active-channel"
PATH_APPS = "/query/apps"
PATH_ACTIVE_APP = "/query/active-app"
PATH_ICON = "/query/icon/"
PATH_KEYPRESS = "/keypress/"
PATH_LAUNCH = "/launch/"
PATH_INPUT = "/input"
PATH_SEARCH = "/search/browse"

def escape(value: str) -> str:
    """Percent-encodes a query name, query value or path segment."""
    return quote(value, safe='')

def normalize_base_url(url: str) -> str:
    """Returns an ECP base URL without trailing slashes. Discovery reports URLs
       like "http://192.168.1.162:8060/"; paths are appended to the normalized form."""
    url = url.strip()
    if url == '':
        raise EcpInputError("ECP URL must not be empty")
    return url.rstrip('/')

def ecp_url(base_url: str, path: str) -> str:
    """Joins an ECP base URL and a path beginning with '/'."""
    return normalize_base_url(base_url) + path

def build_query(params: Iterable[Tuple[str, str]]) -> str:
    """Builds "name1=value1&name2=value2" with every name and value escaped. Returns "" for no params."""
    return '&'.join(f"{escape(name)}={escape(value)}" for name, value in params)

_percent_escape_re = re.compile(r'(%[0-9A-Fa-f]{2})')

def escape_preserving_escapes(value: str) -> str:
    """Like escape(), but valid %XX escapes already in value are kept as they are. A '%' that
       does not start one is escaped."""
    parts = _percent_escape_re.split(value)
    # odd indices are the captured escapes
    return ''.join(part if i % 2 == 1 else escape(part) for i, part in enumerate(parts))

def keypress_url(base_url: str, key: str) -> str:
    """URL for /keypress/{key}. Existing %XX escapes in key (as in "Lit_%C3%A9") are kept."""
    if key == '':
        raise EcpInputError("Key must not be empty")
    return ecp_url(base_url, PATH_KEYPRESS + escape_preserving_escapes(key))

def icon_url(base_url: str, app_id: str) -> str:
    if app_id == '':
        raise EcpInputError("App ID must not be empty")
    return ecp_url(base_url, PATH_ICON + escape(app_id))

def input_url(base_url: str, params: Iterable[Tuple[str, str]]) -> str:
    """URL for /input?name=value&... (custom input to the active app)."""
    return ecp_url(base_url, PATH_INPUT + '?' + build_query(params))

def launch_url(base_url: str, params: RokuAppLaunchParams) -> str:
    """URL for /launch/{appId}, with contentId, MediaType and any other params, in that order."""
    if params.app_id == '':
        raise EcpInputError("App ID must not be empty")
    query: List[str] = []
    if params.content_id != '':
        query.append(f"contentId={escape(params.content_id)}")
    if params.media_type != RokuMediaType.NO_TYPE:
        query.append(f"MediaType={params.media_type.value}")
    if len(params.other_params) > 0:
        query.append(build_query(params.other_params))
    url = ecp_url(base_url, PATH_LAUNCH + escape(params.app_id))
    if len(query) > 0:
        url += '?' + '&'.join(query)
    return url

def tv_channel_launch_params(channel_id: str) -> RokuAppLaunchParams:
    """Launch parameters that tune the TV input to a channel. Different Roku TV firmware
       versions look at different parameter names, so all of them are sent."""
    if channel_id == '':
        raise EcpInputError("Channel ID must not be empty")
    return RokuAppLaunchParams(
        TV_INPUT_APP_ID,
        other_params=[("chan", channel_id), ("lcn", channel_id), ("ch", channel_id)],
      )

def validate_search_params(params: RokuSearchParams) -> List[str]:
    """Checks caller-supplied search parameters against ECP's limits.

       Returns the non-empty provider IDs.

    Raises:
        EcpInputError: A parameter is out of range.
    """
    if params.season < 0:
        raise EcpInputError(f"Search season must not be negative: {params.season}")
    if len(params.tms_id) > MAX_TMS_ID_LEN:
        raise EcpInputError(f"TMS ID longer than {MAX_TMS_ID_LEN} characters: {params.tms_id!r}")
    if len(params.provider_ids) > MAX_SEARCH_PROVIDERS:
        raise EcpInputError(f"At most {MAX_SEARCH_PROVIDERS} search providers may be given, got {len(params.provider_ids)}")
    for provider_id in params.provider_ids:
        if len(provider_id) > MAX_APP_ID_LEN:
            raise EcpInputError(f"Provider ID longer than {MAX_APP_ID_LEN} characters: {provider_id!r}")
    return [ x for x in params.provider_ids if x != '' ]

def search_url(base_url: str, keyword: str, params: Optional[RokuSearchParams]=None) -> str:
    """URL for /search/browse?keyword=...

    Raises:
        EcpInputError: keyword is empty, or params are out of range.
    """
    if keyword == '':
        raise EcpInputError("Search keyword must not be empty")
    if params is None:
        params = RokuSearchParams()
    provider_ids = validate_search_params(params)

    url = ecp_url(base_url, PATH_SEARCH) + "?keyword=" + escape(keyword)
    if params.type != RokuSearchType.NONE:
        url += f"&type={params.type.value}"
    if params.include_unavailable:
        url += "&show-unavailable=true"
    if params.auto_launch:
        url += "&launch=true"
    if params.auto_select:
        url += "&match-any=true"
    if params.season != 0:
        url += f"&season={params.season}"
    if params.tms_id != '':
        url += "&tmsid=" + escape(params.tms_id)
    if len(provider_ids) > 0:
        url += "&provider-id=" + ','.join(escape(x) for x in provider_ids)
    return url
