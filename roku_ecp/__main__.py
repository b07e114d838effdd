#!/usr/bin/env python3

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

from __future__ import annotations

import sys
import argparse
import json
import asyncio
import logging
import dataclasses

from roku_ecp.internal_types import *

from roku_ecp import (
    __version__ as pkg_version,
    RokuEcpError,
    RokuDevice,
    RokuSearchType,
    RokuSearchParams,
    RokuMediaType,
    RokuAppLaunchParams,
    EcpTransport,
    async_discover_roku_devices,
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
    DISCOVERY_TIME_BUDGET,
  )
from roku_ecp.constants import DEFAULT_HTTP_TIMEOUT

class CmdExitError(RuntimeError):
    exit_code: int

    def __init__(self, exit_code: int, msg: Optional[str]=None):
        if msg is None:
            msg = f"Command exited with return code {exit_code}"
        super().__init__(msg)
        self.exit_code = exit_code

class ArgparseExitError(CmdExitError):
    pass

class NoExitArgumentParser(argparse.ArgumentParser):
    def exit(self, status=0, message=None):
        if message:
            self._print_message(message, sys.stderr)
        raise ArgparseExitError(status, message)

def _parse_name_values(assignments: List[str]) -> List[Tuple[str, str]]:
    result: List[Tuple[str, str]] = []
    for assignment in assignments:
        if not '=' in assignment:
            raise CmdExitError(1, f"Expected <name>=<value>, got {assignment!r}")
        name, value = assignment.split('=', 1)
        result.append((name, value))
    return result

def _to_jsonable(value: Any) -> Jsonable:
    return json.loads(json.dumps(dataclasses.asdict(value)))

class CommandHandler:
    _argv: Optional[Sequence[str]]
    _parser: argparse.ArgumentParser
    _args: argparse.Namespace
    _provide_traceback: bool = True
    _transport: EcpTransport

    def __init__(self, argv: Optional[Sequence[str]]=None):
        self._argv = argv

    def _print_json(self, value: Jsonable) -> None:
        print(json.dumps(value, indent=2, sort_keys=True))
        sys.stdout.flush()

    async def _get_device(self) -> RokuDevice:
        url: str = self._args.url
        return await asyncio.to_thread(get_roku_device, url, transport=self._transport)

    async def cmd_bare(self) -> int:
        print("A command is required", file=sys.stderr)
        return 1

    async def cmd_discover(self) -> int:
        max_devices: int = self._args.max_devices
        wait_time: float = self._args.wait_time
        bind_addresses: Optional[List[str]] = self._args.bind_addresses
        if not bind_addresses is None and len(bind_addresses) == 0:
            bind_addresses = None
        urls = await async_discover_roku_devices(max_devices, time_budget=wait_time, bind_addresses=bind_addresses)
        if self._args.info:
            devices: List[JsonableDict] = []
            for url in urls:
                device = await asyncio.to_thread(get_roku_device, url, transport=self._transport)
                devices.append(_to_jsonable(device))
            self._print_json(devices)
        else:
            self._print_json(urls)
        return 0

    async def cmd_info(self) -> int:
        device = await self._get_device()
        self._print_json(_to_jsonable(device))
        return 0

    async def cmd_key(self) -> int:
        device = await self._get_device()
        keys: List[str] = self._args.keys
        for key in keys:
            await asyncio.to_thread(send_key, device, key, transport=self._transport)
        return 0

    async def cmd_type(self) -> int:
        device = await self._get_device()
        text: str = self._args.text
        sent = await asyncio.to_thread(type_string, device, text, encoding=self._args.encoding, transport=self._transport)
        logging.debug(f"Sent keys: {sent}")
        if len(sent) < len(text):
            print(f"roku-ecp: warning: {len(text) - len(sent)} character(s) could not be typed", file=sys.stderr)
        return 0

    async def cmd_apps(self) -> int:
        device = await self._get_device()
        apps = await asyncio.to_thread(get_apps, device, transport=self._transport)
        self._print_json([ _to_jsonable(app) for app in apps ])
        return 0

    async def cmd_active_app(self) -> int:
        device = await self._get_device()
        app = await asyncio.to_thread(get_active_app, device, transport=self._transport)
        self._print_json(_to_jsonable(app))
        return 0

    async def cmd_icon(self) -> int:
        device = await self._get_device()
        icon = await asyncio.to_thread(get_app_icon, device, self._args.app_id, transport=self._transport)
        output: Optional[str] = self._args.output
        if output is None or output == '-':
            sys.stdout.buffer.write(icon.data)
            sys.stdout.buffer.flush()
        else:
            with open(output, 'wb') as f:
                f.write(icon.data)
            print(f"Wrote {icon.size} bytes ({icon.content_type or 'unknown type'}) to {output}", file=sys.stderr)
        return 0

    async def cmd_launch(self) -> int:
        device = await self._get_device()
        params = RokuAppLaunchParams(
            self._args.app_id,
            content_id=self._args.content_id,
            media_type=RokuMediaType(self._args.media_type),
            other_params=_parse_name_values(self._args.params),
          )
        await asyncio.to_thread(launch_app, device, params, transport=self._transport)
        return 0

    async def cmd_input(self) -> int:
        device = await self._get_device()
        params = _parse_name_values(self._args.params)
        await asyncio.to_thread(send_custom_input, device, params, transport=self._transport)
        return 0

    async def cmd_search(self) -> int:
        device = await self._get_device()
        params = RokuSearchParams(
            type=RokuSearchType(self._args.type),
            include_unavailable=self._args.include_unavailable,
            auto_select=self._args.auto_select,
            auto_launch=self._args.auto_launch,
            season=self._args.season,
            tms_id=self._args.tms_id,
            provider_ids=self._args.provider_ids,
          )
        await asyncio.to_thread(search, device, self._args.keyword, params, transport=self._transport)
        return 0

    async def cmd_channels(self) -> int:
        device = await self._get_device()
        max_channels: Optional[int] = self._args.max_channels
        channels = await asyncio.to_thread(get_tv_channels, device, max_channels, transport=self._transport)
        self._print_json([ _to_jsonable(channel) for channel in channels ])
        return 0

    async def cmd_active_channel(self) -> int:
        device = await self._get_device()
        channel = await asyncio.to_thread(get_active_tv_channel, device, transport=self._transport)
        self._print_json(_to_jsonable(channel))
        return 0

    async def cmd_launch_channel(self) -> int:
        device = await self._get_device()
        await asyncio.to_thread(launch_tv_channel, device, self._args.channel_id, transport=self._transport)
        return 0

    async def cmd_version(self) -> int:
        print(pkg_version)
        return 0

    async def arun(self) -> int:
        """Run the roku-ecp command-line tool with provided arguments

        Args:
            argv (Optional[Sequence[str]], optional):
                A list of commandline arguments (NOT including the program as argv[0]!),
                or None to use sys.argv[1:]. Defaults to None.

        Returns:
            int: The exit code that would be returned if this were run as a standalone command.
        """
        parser = NoExitArgumentParser(description="Discover and control Roku devices with the External Control Protocol.")

        # ======================= Main command

        self._parser = parser
        parser.add_argument('--traceback', "--tb", action='store_true', default=False,
                            help='Display detailed exception information')
        parser.add_argument('--log-level', dest='log_level', default='warning',
                            choices=['debug', 'info', 'warning', 'error', 'critical'],
                            help='''The logging level to use. Default: warning''')
        parser.add_argument('--timeout', type=float, default=DEFAULT_HTTP_TIMEOUT,
                            help=f'''The HTTP timeout for ECP requests, in seconds. Default: {DEFAULT_HTTP_TIMEOUT}''')
        parser.set_defaults(func=self.cmd_bare)

        subparsers = parser.add_subparsers(
                            title='Commands',
                            description='Valid commands',
                            help='Additional help available with "<command-name> -h"')

        def add_device_parser(name: str, description: str, func: Callable[[], Awaitable[int]]) -> argparse.ArgumentParser:
            p = subparsers.add_parser(name, description=description)
            p.add_argument('url',
                           help='''The ECP base URL of the device (e.g., "http://192.168.1.162:8060/")''')
            p.set_defaults(func=func)
            return p

        # ======================= discover

        parser_discover = subparsers.add_parser('discover', description="Find Roku devices on the local network")
        parser_discover.add_argument('--max-devices', type=int, default=16,
                            help='''The maximum number of devices to return. Default: 16''')
        parser_discover.add_argument('--wait-time', type=float, default=DISCOVERY_TIME_BUDGET,
                            help=f'''The amount of time to wait for responses, in seconds. Default: {DISCOVERY_TIME_BUDGET}''')
        parser_discover.add_argument('-b', '--bind', dest="bind_addresses", action='append', default=[],
                            help='''The local unicast IP address to search from. May be repeated. Default: all local non-loopback unicast addresses.''')
        parser_discover.add_argument('--info', action='store_true', default=False,
                            help='Query and display device info for each discovered device')
        parser_discover.set_defaults(func=self.cmd_discover)

        # ======================= device commands

        add_device_parser('info', "Display device identity and capabilities", self.cmd_info)

        parser_key = add_device_parser('key', "Send one or more keypresses (e.g., Home, Select, VolumeUp)", self.cmd_key)
        parser_key.add_argument('keys', nargs='+',
                            help='The keys to press, in order')

        parser_type = add_device_parser('type', "Type a string as literal keypresses", self.cmd_type)
        parser_type.add_argument('text',
                            help='The text to type')
        parser_type.add_argument('--encoding', default='utf-8',
                            help='The character encoding used for literal keys. Default: utf-8')

        add_device_parser('apps', "List installed apps", self.cmd_apps)

        add_device_parser('active-app', "Display the app in the foreground", self.cmd_active_app)

        parser_icon = add_device_parser('icon', "Download an app icon", self.cmd_icon)
        parser_icon.add_argument('app_id',
                            help='The app ID')
        parser_icon.add_argument('-o', '--output', default=None,
                            help='The file to write the icon to, or "-" for stdout. Default: stdout')

        parser_launch = add_device_parser('launch', "Launch an app, optionally deep-linking to content", self.cmd_launch)
        parser_launch.add_argument('app_id',
                            help='The app ID')
        parser_launch.add_argument('--content-id', dest='content_id', default='',
                            help='The content ID to deep-link to')
        parser_launch.add_argument('--media-type', dest='media_type', default=None,
                            choices=[ x.value for x in RokuMediaType if x.value is not None ],
                            help='The media type of the content')
        parser_launch.add_argument('-p', '--param', dest='params', action='append', default=[],
                            help='''An additional <name>=<value> launch parameter. May be repeated.''')

        parser_input = add_device_parser('input', "Send custom input to the active app", self.cmd_input)
        parser_input.add_argument('params', nargs='+',
                            help='''<name>=<value> input parameters''')

        parser_search = add_device_parser('search', "Search for content", self.cmd_search)
        parser_search.add_argument('keyword',
                            help='The keyword to search for')
        parser_search.add_argument('--type', default=None,
                            choices=[ x.value for x in RokuSearchType if x.value is not None ],
                            help='The kind of result to look for')
        parser_search.add_argument('--include-unavailable', dest='include_unavailable', action='store_true', default=False,
                            help='Include results that are unavailable in this region')
        parser_search.add_argument('--auto-select', dest='auto_select', action='store_true', default=False,
                            help='Select the first result')
        parser_search.add_argument('--auto-launch', dest='auto_launch', action='store_true', default=False,
                            help='Launch the first provider with a result')
        parser_search.add_argument('--season', type=int, default=0,
                            help='The season of the show to search for')
        parser_search.add_argument('--tms-id', dest='tms_id', default='',
                            help='The TMS ID of the movie or show')
        parser_search.add_argument('--provider', dest='provider_ids', action='append', default=[],
                            help='An app ID of a provider to look for results from. May be repeated.')

        parser_channels = add_device_parser('channels', "List TV channels (Roku TV only)", self.cmd_channels)
        parser_channels.add_argument('--max-channels', dest='max_channels', type=int, default=None,
                            help='The maximum number of channels to list. Default: no limit')

        add_device_parser('active-channel', "Display the active TV channel (Roku TV only)", self.cmd_active_channel)

        parser_launch_channel = add_device_parser('launch-channel', "Tune to a TV channel (Roku TV only)", self.cmd_launch_channel)
        parser_launch_channel.add_argument('channel_id',
                            help='The channel ID (e.g., "3.1")')

        # ======================= version

        parser_version = subparsers.add_parser('version',
                                description='''Display version information.''')
        parser_version.set_defaults(func=self.cmd_version)

        # =========================================================

        try:
            args = parser.parse_args(self._argv)
        except ArgparseExitError as ex:
            return ex.exit_code
        traceback: bool = args.traceback
        self._provide_traceback = traceback

        try:
            logging.basicConfig(
                level=logging.getLevelName(args.log_level.upper()),
            )
            self._args = args
            self._transport = EcpTransport(timeout=args.timeout)
            func: Callable[[], Awaitable[int]] = args.func
            logging.debug(f"Running command {func.__name__}, tb = {traceback}")
            rc = await func()
            logging.debug(f"Command {func.__name__} returned {rc}")
        except Exception as ex:
            if isinstance(ex, CmdExitError):
                rc = ex.exit_code
            else:
                rc = 1
            if rc != 0:
                if traceback:
                    raise
            if isinstance(ex, RokuEcpError):
                print(f"roku-ecp: error ({ex.kind.name}): {ex}", file=sys.stderr)
            else:
                print(f"roku-ecp: error: {ex}", file=sys.stderr)
        except BaseException as ex:
            print(f"roku-ecp: Unhandled exception: {ex}", file=sys.stderr)
            raise

        return rc

    def run(self) -> int:
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            rc = loop.run_until_complete(self.arun())
        finally:
            loop.close()
        return rc

def run(argv: Optional[Sequence[str]]=None) -> int:
    try:
        rc = CommandHandler(argv).run()
    except CmdExitError as ex:
        rc = ex.exit_code
    return rc

async def arun(argv: Optional[Sequence[str]]=None) -> int:
    try:
        rc = await CommandHandler(argv).arun()
    except CmdExitError as ex:
        rc = ex.exit_code
    return rc

# allow running with "python3 -m", or as a standalone script
if __name__ == "__main__":
    sys.exit(run())
