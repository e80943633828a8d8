# Copyright (c) 2021 Jeff Irion and contributors
#
# This file is part of the adb-host package.  It incorporates work
# covered by the following license notice:
#
#
#   Copyright 2014 Google Inc. All rights reserved.
#
#   Licensed under the Apache License, Version 2.0 (the "License");
#   you may not use this file except in compliance with the License.
#   You may obtain a copy of the License at
#
#       http://www.apache.org/licenses/LICENSE-2.0
#
#   Unless required by applicable law or agreed to in writing, software
#   distributed under the License is distributed on an "AS IS" BASIS,
#   WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#   See the License for the specific language governing permissions and
#   limitations under the License.

"""Implement the :class:`AdbDeviceAsync` class, which runs ADB commands on one device via the ADB server.

.. rubric:: Contents

* :class:`AdbDeviceAsync`

    * :meth:`AdbDeviceAsync._get_timeout_s`
    * :meth:`AdbDeviceAsync._host_request`
    * :meth:`AdbDeviceAsync.create_connection`
    * :meth:`AdbDeviceAsync.forward`
    * :meth:`AdbDeviceAsync.forward_list`
    * :meth:`AdbDeviceAsync.get_devpath`
    * :meth:`AdbDeviceAsync.get_features`
    * :meth:`AdbDeviceAsync.get_state`
    * :meth:`AdbDeviceAsync.list`
    * :meth:`AdbDeviceAsync.open_transport`
    * :meth:`AdbDeviceAsync.pull`
    * :meth:`AdbDeviceAsync.push`
    * :meth:`AdbDeviceAsync.read`
    * :meth:`AdbDeviceAsync.reverse`
    * :meth:`AdbDeviceAsync.reverse_list`
    * :meth:`AdbDeviceAsync.root`
    * :attr:`AdbDeviceAsync.selector`
    * :attr:`AdbDeviceAsync.serial`
    * :meth:`AdbDeviceAsync.shell`
    * :meth:`AdbDeviceAsync.shell_v2`
    * :meth:`AdbDeviceAsync.stat`
    * :meth:`AdbDeviceAsync.streaming_shell`
    * :meth:`AdbDeviceAsync.tcpip`
    * :attr:`AdbDeviceAsync.transport_id`

"""


import logging

from . import constants
from .adb_device import host_command, transport_command
from .filesync_async import FileSyncAsync
from .hidden_helpers import connection_command, decode_output, parse_forward_list, parse_reverse_list, to_bytes
from .shell_v2_async import read_shell_v2_async
from .transport_async import open_transport_async


_LOGGER = logging.getLogger(__name__)


class AdbDeviceAsync(object):
    """A class with methods for running ADB commands on a device.

    Parameters
    ----------
    host : str
        The address of the ADB server
    port : int
        The port of the ADB server
    default_timeout_s : float, None
        Default timeout in seconds for connecting, reading, and writing
    serial : str, None
        The serial number of the device
    transport_id : int, None
        The transport ID of the device; it takes precedence over ``serial``

    Attributes
    ----------
    _default_timeout_s : float, None
        Default timeout in seconds for connecting, reading, and writing
    _filesync : FileSyncAsync
        Runs the FileSync operations
    _host : str
        The address of the ADB server
    _port : int
        The port of the ADB server
    _serial : str, None
        The serial number of the device
    _transport_id : int, None
        The transport ID of the device

    """
    def __init__(self, host=constants.DEFAULT_HOST, port=constants.DEFAULT_PORT, default_timeout_s=constants.DEFAULT_TIMEOUT_S, serial=None, transport_id=None):
        self._host = host
        self._port = port
        self._default_timeout_s = default_timeout_s
        self._serial = serial
        self._transport_id = transport_id

        self._filesync = FileSyncAsync(self.open_transport)

    def __repr__(self):
        return '{}(serial={!r}, transport_id={!r})'.format(type(self).__name__, self._serial, self._transport_id)

    # ======================================================================= #
    #                                                                         #
    #                       Properties & simple methods                       #
    #                                                                         #
    # ======================================================================= #
    @property
    def serial(self):
        """The serial number of the device, or ``None``."""
        return self._serial

    @property
    def transport_id(self):
        """The transport ID of the device, or ``None``."""
        return self._transport_id

    @property
    def selector(self):
        """The command that binds a connection to this device; see :func:`adb_host.adb_device.transport_command`."""
        return transport_command(self._serial, self._transport_id)

    def _get_timeout_s(self, timeout_s):
        """Use the provided ``timeout_s`` if it is not ``None``; otherwise, use ``self._default_timeout_s``"""
        return timeout_s if timeout_s is not None else self._default_timeout_s

    # ======================================================================= #
    #                                                                         #
    #                                Transports                               #
    #                                                                         #
    # ======================================================================= #
    async def open_transport(self, command=None, timeout_s=None):
        """Open a connection to the ADB server that is bound to this device.

        Parameters
        ----------
        command : str, None
            If provided, send it as a single-shot :func:`adb_host.adb_device.host_command`
        timeout_s : float, None
            Timeout in seconds for connecting, reading, and writing; if it is ``None``, the default is used

        Returns
        -------
        TransportAsync
            The open transport; the caller must close it

        """
        cmd = self.selector if command is None else host_command(command, self._serial, self._transport_id)
        _LOGGER.debug("Opening a transport to %s:%d: %s", self._host, self._port, cmd)

        transport = await open_transport_async(self._host, self._port, self._get_timeout_s(timeout_s))
        try:
            await transport.send_command(cmd)
        except Exception:
            await transport.close()
            raise

        return transport

    async def _host_request(self, command, timeout_s=None):
        """Send a single-shot command for the ADB server and read the string block that it returns."""
        async with await self.open_transport(command, timeout_s) as transport:
            return await transport.read_string_block()

    # ======================================================================= #
    #                                                                         #
    #                              Server queries                             #
    #                                                                         #
    # ======================================================================= #
    async def get_state(self, timeout_s=None):
        """Get the state of the device (e.g., ``'device'``, ``'offline'``, ``'unauthorized'``)."""
        return await self._host_request('get-state', timeout_s)

    async def get_devpath(self, timeout_s=None):
        """Get the device path, as reported by the ADB server."""
        return await self._host_request('get-devpath', timeout_s)

    async def get_features(self, timeout_s=None):
        """Get the features that the device supports.

        Returns
        -------
        list[str]
            The features

        """
        features = await self._host_request('features', timeout_s)
        return [feature for feature in features.split(',') if feature]

    # ======================================================================= #
    #                                                                         #
    #                                  Shell                                  #
    #                                                                         #
    # ======================================================================= #
    async def shell(self, command, timeout_s=None):
        """Send an ADB shell command to the device.

        Parameters
        ----------
        command : str
            The shell command that will be sent
        timeout_s : float, None
            Timeout in seconds for connecting, reading, and writing

        Returns
        -------
        str
            The output of the ADB shell command, with trailing whitespace removed

        """
        async with await self.open_transport(timeout_s=timeout_s) as transport:
            return await transport.request_with_fully(b'shell:' + to_bytes(command))

    async def streaming_shell(self, command, decode=True, timeout_s=None):
        """Send an ADB shell command to the device, yielding the output as it arrives.

        Parameters
        ----------
        command : str
            The shell command that will be sent
        decode : bool
            Whether to decode the output to utf8 before yielding it
        timeout_s : float, None
            Timeout in seconds for connecting and for sending the command

        Yields
        -------
        bytes, str
            The output of the ADB shell command as a string if ``decode`` is True, otherwise as bytes.

        """
        async with await self.open_transport(timeout_s=timeout_s) as transport:
            async for chunk in await transport.request_with_stream(b'shell:' + to_bytes(command)):
                yield decode_output(chunk) if decode else chunk

    async def shell_v2(self, command, decode=True, timeout_s=None):
        """Run a shell command on the device with the shell v2 protocol.

        Returns
        -------
        ShellResult
            The command, exit code, combined output, stdout, and stderr

        """
        async with await self.open_transport(timeout_s=timeout_s) as transport:
            return await read_shell_v2_async(transport, command, decode)

    async def root(self, timeout_s=None):
        """Restart adbd on the device with root permissions."""
        async with await self.open_transport(timeout_s=timeout_s) as transport:
            return await transport.request_with_fully(b'root:')

    async def tcpip(self, port, timeout_s=None):
        """Restart adbd on the device, listening for TCP/IP connections on ``port``.

        Returns
        -------
        str
            The response from the device, e.g. ``'restarting in TCP mode port: 5555'``

        """
        async with await self.open_transport(timeout_s=timeout_s) as transport:
            return await transport.request_with_fully('tcpip:{}'.format(port))

    # ======================================================================= #
    #                                                                         #
    #                             Port forwarding                             #
    #                                                                         #
    # ======================================================================= #
    async def forward(self, local, remote, norebind=False, timeout_s=None):
        """Forward a socket on the host to a socket on the device.

        Parameters
        ----------
        local : str
            The socket on the host, e.g. ``'tcp:6100'``
        remote : str
            The socket on the device, e.g. ``'tcp:7100'`` or ``'localabstract:scrcpy'``
        norebind : bool
            If True, fail if ``local`` is already forwarded
        timeout_s : float, None
            Timeout in seconds for connecting, reading, and writing

        """
        cmd = 'forward{}:{};{}'.format(':norebind' if norebind else '', local, remote)
        async with await self.open_transport(cmd, timeout_s) as transport:
            # The first OKAY acknowledges the device, the second one is the status of the forward
            await transport.check_okay()

    async def forward_list(self, timeout_s=None):
        """Get the forwards that the ADB server has set up, as a list of :class:`~adb_host.hidden_helpers.ForwardInfo`."""
        return parse_forward_list(await self._host_request('list-forward', timeout_s))

    async def reverse(self, local, remote, norebind=False, timeout_s=None):
        """Forward a socket on the device (``local``) to a socket on the host (``remote``)."""
        cmd = 'reverse:forward{}:{};{}'.format(':norebind' if norebind else '', local, remote)
        async with await self.open_transport(timeout_s=timeout_s) as transport:
            await transport.send_command(cmd)
            await transport.check_okay()

    async def reverse_list(self, timeout_s=None):
        """Get the reverse forwards that the device has set up, as a list of :class:`~adb_host.hidden_helpers.ReverseInfo`."""
        async with await self.open_transport(timeout_s=timeout_s) as transport:
            await transport.send_command(b'reverse:list-forward')
            await transport.check_okay()
            return parse_reverse_list(await transport.read_string_block())

    async def create_connection(self, network, address, timeout_s=None):
        """Open a connection to a socket on the device.

        Parameters
        ----------
        network : str
            One of :const:`adb_host.constants.NETWORKS`
        address : str, int
            The port or socket name
        timeout_s : float, None
            Timeout in seconds for connecting, reading, and writing

        Returns
        -------
        BaseConnectionAsync
            A connection that reads from and writes to the socket on the device; the caller must close it

        """
        cmd = connection_command(network, address)

        transport = await self.open_transport(timeout_s=timeout_s)
        try:
            await transport.send_command(cmd)
        except Exception:
            await transport.close()
            raise

        return transport.connection

    # ======================================================================= #
    #                                                                         #
    #                                 FileSync                                #
    #                                                                         #
    # ======================================================================= #
    async def stat(self, device_path):
        """Get a file's ``stat()`` information; see :meth:`FileSyncAsync.stat() <adb_host.filesync_async.FileSyncAsync.stat>`."""
        return await self._filesync.stat(device_path)

    async def list(self, device_path):
        """Return a directory listing of the given path; see :meth:`FileSyncAsync.list() <adb_host.filesync_async.FileSyncAsync.list>`."""
        return await self._filesync.list(device_path)

    async def push(self, local_path, device_path, mode=constants.DEFAULT_PUSH_MODE, verify=False):
        """Push a local file to the device; see :meth:`FileSyncAsync.push() <adb_host.filesync_async.FileSyncAsync.push>`.

        Returns
        -------
        int
            The number of bytes that were sent

        """
        return await self._filesync.push(local_path, device_path, mode, verify)

    async def pull(self, device_path, local_path):
        """Pull a file from the device to a local path; see :meth:`FileSyncAsync.pull() <adb_host.filesync_async.FileSyncAsync.pull>`.

        Returns
        -------
        int
            The number of bytes that were written

        """
        return await self._filesync.pull(device_path, local_path)

    def read(self, device_path):
        """Return an async generator of a device file's contents; see :meth:`FileSyncAsync.read() <adb_host.filesync_async.FileSyncAsync.read>`."""
        return self._filesync.read(device_path)
