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

"""Implement the :class:`AdbDevice` class, which runs ADB commands on one device via the ADB server.

Each command opens its own connection to the ADB server and binds it to the device with a selector command:

* ``host:transport-id:<id>``, ``host:transport:<serial>``, or ``host:transport-any`` for commands that are
  forwarded to the device (e.g., ``shell:``, ``sync:``)
* ``host-transport-id:<id>:<cmd>``, ``host-serial:<serial>:<cmd>``, or ``host:<cmd>`` for commands that the ADB
  server answers itself (e.g., ``get-state``)

.. rubric:: Contents

* :class:`AdbDevice`

    * :meth:`AdbDevice._get_timeout_s`
    * :meth:`AdbDevice._host_request`
    * :meth:`AdbDevice.create_connection`
    * :meth:`AdbDevice.forward`
    * :meth:`AdbDevice.forward_list`
    * :meth:`AdbDevice.get_devpath`
    * :meth:`AdbDevice.get_features`
    * :meth:`AdbDevice.get_state`
    * :meth:`AdbDevice.list`
    * :meth:`AdbDevice.open_transport`
    * :meth:`AdbDevice.pull`
    * :meth:`AdbDevice.push`
    * :meth:`AdbDevice.read`
    * :meth:`AdbDevice.reverse`
    * :meth:`AdbDevice.reverse_list`
    * :meth:`AdbDevice.root`
    * :attr:`AdbDevice.selector`
    * :attr:`AdbDevice.serial`
    * :meth:`AdbDevice.shell`
    * :meth:`AdbDevice.shell_v2`
    * :meth:`AdbDevice.stat`
    * :meth:`AdbDevice.streaming_shell`
    * :meth:`AdbDevice.tcpip`
    * :attr:`AdbDevice.transport_id`

* :func:`host_command`
* :func:`transport_command`

"""


import logging

from . import constants
from .filesync import FileSync
from .hidden_helpers import connection_command, decode_output, parse_forward_list, parse_reverse_list, to_bytes
from .shell_v2 import read_shell_v2
from .transport import open_transport as _open_server_transport


_LOGGER = logging.getLogger(__name__)


def transport_command(serial=None, transport_id=None):
    """Get the command that binds a connection to a device.

    Parameters
    ----------
    serial : str, None
        The serial number of the device
    transport_id : int, None
        The transport ID of the device; it takes precedence over ``serial``

    Returns
    -------
    str
        ``'host:transport-id:<id>'``, ``'host:transport:<serial>'``, or ``'host:transport-any'``

    """
    if transport_id is not None:
        return 'host:transport-id:{}'.format(transport_id)

    if serial:
        return 'host:transport:{}'.format(serial)

    return 'host:transport-any'


def host_command(command, serial=None, transport_id=None):
    """Get a single-shot command for the ADB server about a device.

    Parameters
    ----------
    command : str
        The command, e.g. ``'get-state'``
    serial : str, None
        The serial number of the device
    transport_id : int, None
        The transport ID of the device; it takes precedence over ``serial``

    Returns
    -------
    str
        ``'host-transport-id:<id>:<command>'``, ``'host-serial:<serial>:<command>'``, or ``'host:<command>'``

    """
    if transport_id is not None:
        return 'host-transport-id:{}:{}'.format(transport_id, command)

    if serial:
        return 'host-serial:{}:{}'.format(serial, command)

    return 'host:{}'.format(command)


class AdbDevice(object):
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
        The transport ID of the device; it takes precedence over ``serial``.  If neither is provided, the ADB server
        picks the only connected device.

    Attributes
    ----------
    _default_timeout_s : float, None
        Default timeout in seconds for connecting, reading, and writing
    _filesync : FileSync
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

        self._filesync = FileSync(self.open_transport)

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
        """The command that binds a connection to this device; see :func:`transport_command`."""
        return transport_command(self._serial, self._transport_id)

    def _get_timeout_s(self, timeout_s):
        """Use the provided ``timeout_s`` if it is not ``None``; otherwise, use ``self._default_timeout_s``

        Parameters
        ----------
        timeout_s : float, None
            The potential timeout

        Returns
        -------
        float, None
            ``timeout_s`` if it is not ``None``; otherwise, ``self._default_timeout_s``

        """
        return timeout_s if timeout_s is not None else self._default_timeout_s

    # ======================================================================= #
    #                                                                         #
    #                                Transports                               #
    #                                                                         #
    # ======================================================================= #
    def open_transport(self, command=None, timeout_s=None):
        """Open a connection to the ADB server that is bound to this device.

        Parameters
        ----------
        command : str, None
            If provided, send it as a single-shot :func:`host_command`; the response is left to the caller
        timeout_s : float, None
            Timeout in seconds for connecting, reading, and writing; if it is ``None``, the default is used

        Returns
        -------
        Transport
            The open transport; the caller must close it

        """
        cmd = self.selector if command is None else host_command(command, self._serial, self._transport_id)
        _LOGGER.debug("Opening a transport to %s:%d: %s", self._host, self._port, cmd)

        transport = _open_server_transport(self._host, self._port, self._get_timeout_s(timeout_s))
        try:
            transport.send_command(cmd)
        except Exception:
            transport.close()
            raise

        return transport

    def _host_request(self, command, timeout_s=None):
        """Send a single-shot command for the ADB server and read the string block that it returns."""
        with self.open_transport(command, timeout_s) as transport:
            return transport.read_string_block()

    # ======================================================================= #
    #                                                                         #
    #                              Server queries                             #
    #                                                                         #
    # ======================================================================= #
    def get_state(self, timeout_s=None):
        """Get the state of the device (e.g., ``'device'``, ``'offline'``, ``'unauthorized'``).

        Returns
        -------
        str
            The state

        """
        return self._host_request('get-state', timeout_s)

    def get_devpath(self, timeout_s=None):
        """Get the device path, as reported by the ADB server."""
        return self._host_request('get-devpath', timeout_s)

    def get_features(self, timeout_s=None):
        """Get the features that the device supports (e.g., ``'shell_v2'``, ``'cmd'``).

        Returns
        -------
        list[str]
            The features

        """
        features = self._host_request('features', timeout_s)
        return [feature for feature in features.split(',') if feature]

    # ======================================================================= #
    #                                                                         #
    #                                  Shell                                  #
    #                                                                         #
    # ======================================================================= #
    def shell(self, command, timeout_s=None):
        """Send an ADB shell command to the device.

        Parameters
        ----------
        command : str
            The shell command that will be sent
        timeout_s : float, None
            Timeout in seconds for connecting, reading, and writing; if no data arrives for this long, the output
            received so far is returned

        Returns
        -------
        str
            The output of the ADB shell command, with trailing whitespace removed

        """
        with self.open_transport(timeout_s=timeout_s) as transport:
            return transport.request_with_fully(b'shell:' + to_bytes(command))

    def streaming_shell(self, command, decode=True, timeout_s=None):
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
        with self.open_transport(timeout_s=timeout_s) as transport:
            for chunk in transport.request_with_stream(b'shell:' + to_bytes(command)):
                yield decode_output(chunk) if decode else chunk

    def shell_v2(self, command, decode=True, timeout_s=None):
        """Run a shell command on the device with the shell v2 protocol.

        Parameters
        ----------
        command : str
            The shell command that will be run
        decode : bool
            Whether to decode the output to utf8 before returning
        timeout_s : float, None
            Timeout in seconds for connecting, reading, and writing

        Returns
        -------
        ShellResult
            The command, exit code, combined output, stdout, and stderr

        """
        with self.open_transport(timeout_s=timeout_s) as transport:
            return read_shell_v2(transport, command, decode)

    def root(self, timeout_s=None):
        """Restart adbd on the device with root permissions.

        Returns
        -------
        str
            The response from the device, e.g. ``'restarting adbd as root'``

        """
        with self.open_transport(timeout_s=timeout_s) as transport:
            return transport.request_with_fully(b'root:')

    def tcpip(self, port, timeout_s=None):
        """Restart adbd on the device, listening for TCP/IP connections on ``port``.

        Parameters
        ----------
        port : int, str
            The port that adbd will listen on
        timeout_s : float, None
            Timeout in seconds for connecting, reading, and writing

        Returns
        -------
        str
            The response from the device, e.g. ``'restarting in TCP mode port: 5555'``

        """
        with self.open_transport(timeout_s=timeout_s) as transport:
            return transport.request_with_fully('tcpip:{}'.format(port))

    # ======================================================================= #
    #                                                                         #
    #                             Port forwarding                             #
    #                                                                         #
    # ======================================================================= #
    def forward(self, local, remote, norebind=False, timeout_s=None):
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

        Raises
        ------
        adb_host.exceptions.AdbProtocolError
            The ADB server could not set up the forward

        """
        cmd = 'forward{}:{};{}'.format(':norebind' if norebind else '', local, remote)
        with self.open_transport(cmd, timeout_s) as transport:
            # The first OKAY acknowledges the device, the second one is the status of the forward
            transport.check_okay()

    def forward_list(self, timeout_s=None):
        """Get the forwards that the ADB server has set up.

        Returns
        -------
        list[ForwardInfo]
            The serial, host socket, and device socket of each forward

        """
        return parse_forward_list(self._host_request('list-forward', timeout_s))

    def reverse(self, local, remote, norebind=False, timeout_s=None):
        """Forward a socket on the device to a socket on the host.

        Parameters
        ----------
        local : str
            The socket on the device, e.g. ``'tcp:8081'``
        remote : str
            The socket on the host, e.g. ``'tcp:8081'``
        norebind : bool
            If True, fail if ``local`` is already reversed
        timeout_s : float, None
            Timeout in seconds for connecting, reading, and writing

        Raises
        ------
        adb_host.exceptions.AdbProtocolError
            The device could not set up the reverse forward

        """
        cmd = 'reverse:forward{}:{};{}'.format(':norebind' if norebind else '', local, remote)
        with self.open_transport(timeout_s=timeout_s) as transport:
            transport.send_command(cmd)
            transport.check_okay()

    def reverse_list(self, timeout_s=None):
        """Get the reverse forwards that the device has set up.

        Returns
        -------
        list[ReverseInfo]
            The device socket and host socket of each reverse forward

        """
        with self.open_transport(timeout_s=timeout_s) as transport:
            transport.send_command(b'reverse:list-forward')
            transport.check_okay()
            return parse_reverse_list(transport.read_string_block())

    def create_connection(self, network, address, timeout_s=None):
        """Open a connection to a socket on the device.

        Parameters
        ----------
        network : str
            One of :const:`adb_host.constants.NETWORKS`, e.g. :const:`~adb_host.constants.NETWORK_TCP`
        address : str, int
            The port or socket name
        timeout_s : float, None
            Timeout in seconds for connecting, reading, and writing

        Returns
        -------
        BaseConnection
            A connection that reads from and writes to the socket on the device; the caller must close it

        """
        cmd = connection_command(network, address)

        transport = self.open_transport(timeout_s=timeout_s)
        try:
            transport.send_command(cmd)
        except Exception:
            transport.close()
            raise

        return transport.connection

    # ======================================================================= #
    #                                                                         #
    #                                 FileSync                                #
    #                                                                         #
    # ======================================================================= #
    def stat(self, device_path):
        """Get a file's ``stat()`` information; see :meth:`FileSync.stat() <adb_host.filesync.FileSync.stat>`.

        Parameters
        ----------
        device_path : str
            The file on the device for which we will get information.

        Returns
        -------
        DeviceFile
            The path, mode, size, and mtime of the file

        """
        return self._filesync.stat(device_path)

    def list(self, device_path):
        """Return a directory listing of the given path.

        Parameters
        ----------
        device_path : str
            Directory to list.

        Returns
        -------
        list[DeviceFile]
            Filename, mode, size, and mtime info for the entries in the directory

        """
        return self._filesync.list(device_path)

    def push(self, local_path, device_path, mode=constants.DEFAULT_PUSH_MODE, verify=False):
        """Push a file to the device; see :meth:`FileSync.push() <adb_host.filesync.FileSync.push>`.

        Returns
        -------
        int
            The number of bytes that were sent

        """
        return self._filesync.push(local_path, device_path, mode, verify)

    def pull(self, device_path, local_path):
        """Pull a file from the device; see :meth:`FileSync.pull() <adb_host.filesync.FileSync.pull>`.

        Returns
        -------
        int
            The number of bytes that were written

        """
        return self._filesync.pull(device_path, local_path)

    def read(self, device_path):
        """Read a file from the device in chunks; see :meth:`FileSync.read() <adb_host.filesync.FileSync.read>`."""
        return self._filesync.read(device_path)
