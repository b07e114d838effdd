#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Abstraction of a Datagram packet used in the SSDP protocol.

SSDP is HTTP-over-UDP: each datagram has an HTTP-style statement line
("M-SEARCH * HTTP/1.1", "HTTP/1.1 200 OK", "NOTIFY * HTTP/1.1"), followed by
headers and an optional body.
"""

from __future__ import annotations

from .internal_types import *

from .constants import SSDP_MULTICAST_ADDRESS, SSDP_PORT, DEFAULT_SEARCH_MX

from .util import (
    CaseInsensitiveDict,
    split_bytes_at_lf_or_crlf,
    parse_http_headers,
    encode_http_header,
)

class SsdpDatagram(MutableMapping[str, str]):
    """Wrapper for a raw SSDP datagram.

    This class provides parsing and formatting of the HTTP-like packets, a dict-like
    interface to the headers, and a few convenient properties for the headers that
    matter to discovery.
    """

    _raw_data: bytes
    """The raw UDP datagram contents"""

    _statement_line: str
    """The first line of the datagram; e.g., "HTTP/1.1 200 OK", "M-SEARCH * HTTP/1.1", etc."""

    _headers: CaseInsensitiveDict[str]
    """The headers as a CaseInsensitiveDict[str]."""

    _body: bytes
    """The body of the datagram, if any. If there is no body, b'' is returned."""

    def __init__(
            self,
            statement: Optional[str]=None,
            headers: Optional[Mapping[str, Optional[str]]]=None,
            body: Optional[bytes]=None,
            raw_data: Optional[bytes]=None,
            copy_from: Optional[SsdpDatagram]=None
          ):
        if copy_from is not None:
            assert statement is None and headers is None and body is None and raw_data is None
            self._raw_data = copy_from._raw_data
            self._statement_line = copy_from._statement_line
            self._headers = copy_from._headers.copy()
            self._body = copy_from._body
            return
        self._headers = CaseInsensitiveDict()
        if raw_data is None:
            if statement is None:
                raise ValueError("Either statement or raw_data must be provided")
            assert isinstance(statement, str)
            self._statement_line = statement
            self._body = b'' if body is None else body
            if not headers is None:
                for name, value in headers.items():
                    if value is not None:
                        self._headers[name] = value
            self._rebuild_raw_data()
        else:
            assert isinstance(raw_data, bytes)
            if not (statement is None and headers is None and body is None):
                raise ValueError("If raw_data is provided, statement, headers, and body must be None")
            self.raw_data = raw_data
            # derived attributes are set by the setter for raw_data

    @classmethod
    def m_search(
            cls,
            search_target: str,
            mx: int=DEFAULT_SEARCH_MX,
            multicast_address: str=SSDP_MULTICAST_ADDRESS,
            multicast_port: int=SSDP_PORT,
          ) -> SsdpDatagram:
        """Creates a multicast M-SEARCH request for a given search target (ST)."""
        # Header order is preserved; some devices are picky about HOST coming first.
        return cls(
            "M-SEARCH * HTTP/1.1",
            headers={
                "HOST": f"{multicast_address}:{multicast_port}",
                "MAN": '"ssdp:discover"',
                "MX": str(mx),
                "ST": search_target,
              }
          )

    def __str__(self) -> str:
        return f"SsdpDatagram('{self._statement_line}', headers={dict(self._headers)}, body={self._body!r})"

    def __repr__(self) -> str:
        return str(self)

    @property
    def raw_data(self) -> bytes:
        """The raw UDP datagram contents"""
        return self._raw_data

    @raw_data.setter
    def raw_data(self, value: bytes) -> None:
        """Set the raw UDP datagram contents, and recompute headers."""
        assert isinstance(value, bytes)
        self._raw_data = value
        statement_and_remainder = split_bytes_at_lf_or_crlf(self.raw_data, 1)
        self._statement_line = statement_and_remainder[0].decode('utf-8', errors='replace').strip()
        headers_and_body = b'' if len(statement_and_remainder) < 2 else statement_and_remainder[1]
        self._headers, self._body = parse_http_headers(headers_and_body)

    @property
    def statement_line(self) -> str:
        """The first line of the datagram; e.g., "HTTP/1.1 200 OK"."""
        return self._statement_line

    @statement_line.setter
    def statement_line(self, value: str) -> None:
        assert isinstance(value, str)
        self._statement_line = value
        self._rebuild_raw_data()

    @property
    def body(self) -> bytes:
        """The body of the datagram, if any. If there is no body, b'' is returned."""
        return self._body

    @body.setter
    def body(self, value: Optional[bytes]) -> None:
        self._body = b'' if value is None else value
        self._rebuild_raw_data()

    @property
    def headers(self) -> CaseInsensitiveDict[str]:
        """The headers as a CaseInsensitiveDict[str]."""
        return self._headers

    def set_header(self, name: str, value: Optional[str]) -> None:
        """Set a header value. If value is None, the header is removed.

           `name` is case-insensitive, but the case of the header name is preserved
           and updated to reflect the provided value.

           The raw packet byte string is updated to reflect the new header value.
        """
        if value is None:
            self._headers.pop(name, None)
        else:
            assert isinstance(value, str)
            self._headers[name] = value
        self._rebuild_raw_data()

    def del_header(self, name: str) -> None:
        """Delete a header if it exists. If the header does not exist, this is a no-op."""
        self.set_header(name, None)

    def _get_str_header(self, name: str) -> Optional[str]:
        result = self._headers.get(name)
        if result is None or result == '':
            return None
        return result

    @property
    def hdr_location(self) -> Optional[str]:
        """The "LOCATION" header; for Roku devices this is the ECP base URL
           (e.g., "http://192.168.1.162:8060/"). None if absent."""
        return self._get_str_header("LOCATION")

    @property
    def hdr_usn(self) -> Optional[str]:
        """The "USN" (unique service name) header, which identifies the responding device. None if absent."""
        return self._get_str_header("USN")

    @property
    def hdr_st(self) -> Optional[str]:
        """The "ST" (search target) header. None if absent."""
        return self._get_str_header("ST")

    @property
    def hdr_host(self) -> Optional[str]:
        """The "HOST" header. None if absent."""
        return self._get_str_header("HOST")

    @property
    def hdr_server(self) -> Optional[str]:
        """The "SERVER" header. None if absent."""
        return self._get_str_header("SERVER")

    @property
    def hdr_max_age(self) -> Optional[int]:
        """The max-age directive of the "CACHE-CONTROL" header, in seconds.

        Returns None if there is no valid max-age directive.
        """
        cache_control = self._get_str_header("CACHE-CONTROL")
        if cache_control is None:
            return None
        for directive in cache_control.split(','):
            parts = directive.strip().split('=', 1)
            if len(parts) == 2 and parts[0].strip().lower() == 'max-age':
                try:
                    return int(parts[1].strip())
                except ValueError:
                    return None
        return None

    def __setitem__(self, key: str, value: str) -> None:
        self.set_header(key, value)

    def __getitem__(self, key: str) -> str:
        return self._headers[key]

    def __delitem__(self, key: str) -> None:
        if not key in self._headers:
            raise KeyError(key)
        self.del_header(key)

    def __iter__(self) -> Iterator[str]:
        return iter(self._headers)

    def __len__(self) -> int:
        return len(self._headers)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, SsdpDatagram):
            return False
        # we could just compare raw data, but that would distinguish based on order of headers
        return (self._statement_line == other._statement_line and
                self._headers == other._headers and
                self._body == other._body)

    def copy(self) -> SsdpDatagram:
        return SsdpDatagram(copy_from=self)

    def _rebuild_raw_data(self) -> None:
        """Rebuild the raw data from the statement line, headers, and body."""
        raw_data = self.statement_line.encode('utf-8')
        if len(raw_data) != 0:
            raw_data += b'\r\n'
        for k, v in self._headers.items():
            raw_data += encode_http_header(k, v)
        raw_data += b"\r\n"
        raw_data += self.body
        self._raw_data = raw_data
