#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Type hints used internally by this package"""

from __future__ import annotations

from typing import (
    Any,
    AsyncContextManager,
    AsyncIterable,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    MutableMapping,
    NamedTuple,
    Optional,
    Sequence,
    Set,
    Tuple,
    Union,
  )

from types import TracebackType

from typing_extensions import Self

HostAndPort = Tuple[str, int]
"""A (host, port) socket address as used by datagram sockets."""

Jsonable = Union[Dict[str, 'Jsonable'], List['Jsonable'], str, int, float, bool, None]
"""A value that can be serialized with json.dumps()"""

JsonableDict = Dict[str, Jsonable]
"""A dict that can be serialized with json.dumps()"""

__all__ = [
    'Any', 'AsyncContextManager', 'AsyncIterable', 'AsyncIterator', 'Awaitable',
    'Callable', 'Dict', 'Iterable', 'Iterator', 'List', 'Mapping', 'MutableMapping',
    'NamedTuple', 'Optional', 'Sequence', 'Set', 'Tuple', 'Union',
    'TracebackType', 'Self',
    'HostAndPort', 'Jsonable', 'JsonableDict',
  ]
