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

"""Implement helpers that are shared by the sync and async code.

.. rubric:: Contents

* :class:`DeviceFile`
* :class:`DeviceInfo`
* :class:`ForwardInfo`
* :class:`ReverseInfo`
* :class:`ShellResult`

* :class:`_ShellV2Output`

    * :meth:`_ShellV2Output.add`
    * :meth:`_ShellV2Output.result`

* :func:`check_sync_payload_size`
* :func:`connection_command`
* :func:`decode_length`
* :func:`decode_output`
* :func:`encode_command`
* :func:`get_push_destination`
* :func:`pack_sync_request`
* :func:`parse_devices_list`
* :func:`parse_forward_list`
* :func:`parse_reverse_list`
* :func:`to_bytes`
* :func:`unpack_shell_v2_header`

"""


from collections import namedtuple
import os
import posixpath
import re
import struct

from . import constants
from .exceptions import InvalidResponseError


_DECODE_ERRORS = "backslashreplace"

_HEX_LENGTH_RE = re.compile(b'[0-9a-fA-F]{4}')


class DeviceFile(namedtuple('DeviceFile', ['filename', 'mode', 'size', 'mtime'])):
    """Filename, mode, size, and mtime info for a file or directory on the device.

    ``mtime`` is ``None`` if the device did not report a modification time.

    """
    __slots__ = ()

    @property
    def is_dir(self):
        """Whether the ``S_IFDIR`` bit is set in ``mode``."""
        return bool(self.mode & constants.S_IFDIR)


ShellResult = namedtuple('ShellResult', ['command', 'exit_code', 'output', 'stdout', 'stderr'])

DeviceInfo = namedtuple('DeviceInfo', ['serial', 'state', 'transport_id', 'product', 'model', 'device'])

ForwardInfo = namedtuple('ForwardInfo', ['serial', 'local', 'remote'])

ReverseInfo = namedtuple('ReverseInfo', ['local', 'remote'])


def to_bytes(data):
    """Encode ``data`` as UTF-8 if it is not already bytes.

    Parameters
    ----------
    data : str, bytes, bytearray
        The data

    Returns
    -------
    bytes
        ``data`` as bytes

    """
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    return data.encode('utf8')


def decode_output(data):
    """Decode device output, escaping any bytes that are not valid UTF-8."""
    return data.decode('utf8', _DECODE_ERRORS)


def encode_command(cmd):
    """Prefix a host command with its length as 4 hex digits.

    Parameters
    ----------
    cmd : str, bytes
        The command, e.g. ``'host:version'``

    Returns
    -------
    bytes
        The command, ready to be sent to the ADB server

    Raises
    ------
    ValueError
        The command is too long for the 4 hex digit header

    """
    cmd = to_bytes(cmd)
    if len(cmd) > constants.MAX_COMMAND_LENGTH:
        raise ValueError('ADB command is too long ({} bytes)'.format(len(cmd)))

    return b'%04x' % len(cmd) + cmd


def decode_length(header):
    """Parse the 4 hex digit length header of a string block.

    Parameters
    ----------
    header : bytes
        The 4 byte header

    Returns
    -------
    int
        The length of the string block

    Raises
    ------
    adb_host.exceptions.InvalidResponseError
        ``header`` is not 4 hex digits

    """
    if not _HEX_LENGTH_RE.fullmatch(header):
        raise InvalidResponseError('Invalid string block length header: {!r}'.format(header))

    return int(header, 16)


def pack_sync_request(command_id, path):
    """Pack a FileSync request: the 4 byte ID, the little-endian path length, and the path.

    Parameters
    ----------
    command_id : bytes
        One of :const:`adb_host.constants.FILESYNC_REQUEST_IDS`
    path : str, bytes
        The device path (for ``b'SEND'``, the path and the mode)

    Returns
    -------
    bytes
        The packed request

    """
    if command_id not in constants.FILESYNC_REQUEST_IDS:
        raise ValueError('Invalid FileSync request ID: {!r}'.format(command_id))

    path = to_bytes(path)
    return struct.pack(constants.FILESYNC_REQUEST_FORMAT, command_id, len(path)) + path


def check_sync_payload_size(size, what):
    """Raise an exception if a declared FileSync payload size exceeds :const:`adb_host.constants.MAX_SYNC_PAYLOAD`.

    Parameters
    ----------
    size : int
        The declared size
    what : str
        A description of the payload, used in the error message

    Raises
    ------
    adb_host.exceptions.InvalidResponseError
        The declared size is too large

    """
    if size > constants.MAX_SYNC_PAYLOAD:
        raise InvalidResponseError('Declared {} size {} exceeds the maximum of {} bytes'.format(what, size, constants.MAX_SYNC_PAYLOAD))


def get_push_destination(local_name, device_path, device_file):
    """Get the device path that a file will be pushed to.

    If ``device_path`` is a directory, the file is pushed into it under the base name of ``local_name``.

    Parameters
    ----------
    local_name : str, bytes, None
        The local filename, or ``None`` if a stream is being pushed
    device_path : str
        The destination on the device
    device_file : DeviceFile
        The result of :meth:`adb_host.filesync.FileSync.stat` for ``device_path``

    Returns
    -------
    str
        The destination path

    """
    if not device_file.is_dir:
        return device_path

    if not local_name:
        raise ValueError('Cannot push a stream to the directory {}; provide a full destination path'.format(device_path))

    local_name = os.fsdecode(local_name).replace('\\', '/')
    return posixpath.join(device_path.rstrip('/') or '/', posixpath.basename(local_name))


def unpack_shell_v2_header(header):
    """Unpack a shell v2 packet header into ``(packet_id, length)``."""
    return struct.unpack(constants.SHELL_V2_HEADER_FORMAT, header)


def parse_devices_list(output):
    """Parse the output of ``host:devices-l``.

    Each line looks like::

        emulator-5554          device product:sdk_gphone64 model:sdk_gphone64 device:emu64a transport_id:1

    Parameters
    ----------
    output : str
        The string block returned by the ADB server

    Returns
    -------
    tuple[DeviceInfo]
        One entry per device, in the order reported by the server

    """
    devices = []
    for line in output.splitlines():
        fields = line.split()
        if len(fields) < 2:
            continue

        props = dict(field.split(':', 1) for field in fields[2:] if ':' in field)
        transport_id = props.get('transport_id')
        devices.append(DeviceInfo(fields[0], fields[1], int(transport_id) if transport_id and transport_id.isdigit() else None,
                                  props.get('product'), props.get('model'), props.get('device')))

    return tuple(devices)


def parse_forward_list(output):
    """Parse the output of ``list-forward``, where each line is ``<serial> <local> <remote>``.

    Parameters
    ----------
    output : str
        The string block returned by the ADB server

    Returns
    -------
    list[ForwardInfo]
        One entry per forward; lines that do not have 3 fields are skipped

    """
    return [ForwardInfo(*fields) for fields in (line.split() for line in output.splitlines()) if len(fields) == 3]


def parse_reverse_list(output):
    """Parse the output of ``reverse:list-forward``.

    Each line is ``<transport name> <local> <remote>``, where ``local`` is the socket on the device and ``remote``
    is the socket on the host.

    Parameters
    ----------
    output : str
        The string block returned by the device

    Returns
    -------
    list[ReverseInfo]
        One entry per reverse forward; lines that do not have 3 fields are skipped

    """
    return [ReverseInfo(fields[1], fields[2]) for fields in (line.split() for line in output.splitlines()) if len(fields) == 3]


def connection_command(network, address):
    """Get the device service that opens a connection to a socket on the device.

    Parameters
    ----------
    network : str
        One of :const:`adb_host.constants.NETWORKS`; ``'unix'`` is an alias of ``'localabstract'``
    address : str, int
        The port or socket name

    Returns
    -------
    str
        The service, e.g. ``'tcp:8080'`` or ``'localabstract:scrcpy'``

    Raises
    ------
    ValueError
        ``network`` is not one of :const:`adb_host.constants.NETWORKS`

    """
    if network not in constants.NETWORKS:
        raise ValueError('`network` must be one of {}, not {!r}'.format(constants.NETWORKS, network))

    if network == constants.NETWORK_UNIX:
        network = constants.NETWORK_LOCAL_ABSTRACT

    return '{}:{}'.format(network, address)


class _ShellV2Output(object):
    """Accumulate the stdout, stderr, and exit code of a shell v2 session.

    Attributes
    ----------
    exit_code : int
        The exit code, or :const:`adb_host.constants.EXIT_CODE_UNKNOWN` until an exit packet has been added
    output : bytearray
        stdout and stderr, in the order they were received
    stderr : bytearray
        Data from stderr packets
    stdout : bytearray
        Data from stdout packets

    """
    def __init__(self):
        self.exit_code = constants.EXIT_CODE_UNKNOWN
        self.output = bytearray()
        self.stdout = bytearray()
        self.stderr = bytearray()

    def add(self, packet_id, data):
        """Add one packet.

        Parameters
        ----------
        packet_id : int
            The shell v2 packet ID
        data : bytes
            The packet payload

        Returns
        -------
        bool
            Whether this was the exit packet, which ends the session

        Raises
        ------
        adb_host.exceptions.InvalidResponseError
            ``packet_id`` is not stdout, stderr, or exit, or an exit packet is not 1 byte long

        """
        if packet_id == constants.SHELL_V2_STDOUT:
            self.stdout += data
            self.output += data
            return False

        if packet_id == constants.SHELL_V2_STDERR:
            self.stderr += data
            self.output += data
            return False

        if packet_id == constants.SHELL_V2_EXIT:
            if len(data) != 1:
                raise InvalidResponseError('Invalid shell v2 exit code payload: {!r}'.format(data))
            self.exit_code = data[0]
            return True

        raise InvalidResponseError('Invalid shell v2 packet ID: {}'.format(packet_id))

    def result(self, command, decode=True):
        """Build the :class:`ShellResult`.

        Parameters
        ----------
        command : str
            The command that was run
        decode : bool
            Whether to decode the output to utf8

        Returns
        -------
        ShellResult
            The command, exit code, combined output, stdout, and stderr

        """
        if decode:
            return ShellResult(command, self.exit_code, decode_output(self.output), decode_output(self.stdout), decode_output(self.stderr))
        return ShellResult(command, self.exit_code, bytes(self.output), bytes(self.stdout), bytes(self.stderr))
