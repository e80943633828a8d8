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

"""Implement the :class:`FileSync` class, which runs the FileSync protocol (stat, list, push, pull).

Every operation opens a new :class:`~adb_host.transport.Transport`, switches it to the FileSync protocol with the
``sync:`` command, and closes it when the operation is done.

.. rubric:: Contents

* :func:`_open_stream`

* :class:`FileSync`

    * :meth:`FileSync._open_sync`
    * :meth:`FileSync._push`
    * :meth:`FileSync._read`
    * :meth:`FileSync.list`
    * :meth:`FileSync.open`
    * :meth:`FileSync.pull`
    * :meth:`FileSync.push`
    * :meth:`FileSync.read`
    * :meth:`FileSync.stat`

"""


from contextlib import contextmanager
import logging
import os
import struct
import time

from . import constants
from . import exceptions
from .hidden_helpers import DeviceFile, check_sync_payload_size, decode_output, get_push_destination, pack_sync_request


_LOGGER = logging.getLogger(__name__)


@contextmanager
def _open_stream(stream, *args, **kwargs):  # pylint: disable=unused-argument
    """A context manager for a file-like object that does nothing.

    Parameters
    ----------
    stream : BytesIO
        The file-like object
    args : list
        Unused positional arguments
    kwargs : dict
        Unused keyword arguments

    Yields
    ------
    stream : BytesIO
        The `stream` input parameter

    """
    yield stream


def _check_device_path(device_path, action):
    """Raise :class:`~adb_host.exceptions.DevicePathInvalidError` if ``device_path`` is empty."""
    if not device_path:
        raise exceptions.DevicePathInvalidError("Cannot {} an empty device path".format(action))


class FileSync(object):
    """Run FileSync operations on a device.

    Parameters
    ----------
    open_transport : function
        Called with no arguments, it returns a :class:`~adb_host.transport.Transport` that is bound to the device

    Attributes
    ----------
    _open_transport : function
        Called with no arguments, it returns a :class:`~adb_host.transport.Transport` that is bound to the device

    """
    def __init__(self, open_transport):
        self._open_transport = open_transport

    def _open_sync(self):
        """Open a transport and switch it to the FileSync protocol.

        Returns
        -------
        Transport
            The transport, in FileSync mode

        """
        transport = self._open_transport()
        try:
            transport.send_command(b'sync:')
        except Exception:
            transport.close()
            raise

        return transport

    @staticmethod
    def open(transport, device_path, command_id):
        """Send a FileSync request: the command ID, the little-endian path length, and the path.

        Parameters
        ----------
        transport : Transport
            A transport in FileSync mode
        device_path : str, bytes
            The path on the device
        command_id : bytes
            ``b'STAT'``, ``b'LIST'``, ``b'SEND'``, or ``b'RECV'``

        """
        _LOGGER.debug("FileSync %s %r", command_id.decode('ascii'), device_path)
        transport.write(pack_sync_request(command_id, device_path))

    # ======================================================================= #
    #                                                                         #
    #                                   Stat                                  #
    #                                                                         #
    # ======================================================================= #
    def stat(self, device_path):
        """Get a file's ``stat()`` information.

        Parameters
        ----------
        device_path : str
            The file on the device for which we will get information.

        Returns
        -------
        DeviceFile
            The path, mode, size, and mtime (``None`` if the device reports 0) of the file

        Raises
        ------
        adb_host.exceptions.AdbProtocolError
            The device did not respond with ``b'STAT'``

        """
        _check_device_path(device_path, 'stat')

        with self._open_sync() as transport:
            self.open(transport, device_path, constants.STAT)

            response = transport.read_exact(4)
            if response != constants.STAT:
                raise exceptions.AdbProtocolError('STAT response invalid: {!r}'.format(response), device_path)

            mode, size, mtime = struct.unpack(constants.FILESYNC_STAT_FORMAT, transport.read_exact(struct.calcsize(constants.FILESYNC_STAT_FORMAT)))

        return DeviceFile(device_path, mode, size, mtime or None)

    # ======================================================================= #
    #                                                                         #
    #                                   List                                  #
    #                                                                         #
    # ======================================================================= #
    def list(self, device_path):
        """Return a directory listing of the given path.

        Parameters
        ----------
        device_path : str
            Directory to list.

        Returns
        -------
        files : list[DeviceFile]
            Filename, mode, size, and mtime info for the entries in the directory, in the order the device sent them

        """
        _check_device_path(device_path, 'list')

        files = []
        dent_size = struct.calcsize(constants.FILESYNC_DENT_FORMAT)

        with self._open_sync() as transport:
            self.open(transport, device_path, constants.LIST)

            while True:
                command_id = transport.read_exact(4)
                if command_id == constants.DONE:
                    break

                if command_id != constants.DENT:
                    _LOGGER.debug("FileSync LIST %r: entry with ID %r", device_path, command_id)

                mode, size, mtime, namelen = struct.unpack(constants.FILESYNC_DENT_FORMAT, transport.read_exact(dent_size))
                check_sync_payload_size(namelen, 'directory entry name')

                filename = decode_output(transport.read_exact(namelen))
                files.append(DeviceFile(filename, mode, size, mtime or None))

        return files

    # ======================================================================= #
    #                                                                         #
    #                                   Push                                  #
    #                                                                         #
    # ======================================================================= #
    def push(self, local_path, device_path, mode=constants.DEFAULT_PUSH_MODE, verify=False):
        """Push a file to the device.

        If ``device_path`` is a directory, the file is pushed into it, keeping the base name of ``local_path``.

        Parameters
        ----------
        local_path : str, bytes, os.PathLike, BytesIO
            A filename or a binary file-like object to push to the device
        device_path : str
            Destination on the device to write to.
        mode : int
            Permission bits for the file; the regular file bit is added
        verify : bool
            Whether to ``stat()`` the file afterwards and check its size

        Returns
        -------
        int
            The number of bytes that were sent

        Raises
        ------
        adb_host.exceptions.PushFailedError
            The device did not respond with ``b'OKAY'``, or ``verify`` is True and the size on the device is wrong

        """
        _check_device_path(device_path, 'push to')

        if isinstance(local_path, (str, bytes, os.PathLike)):
            local_name = os.fspath(local_path)
            opener = open
        else:
            local_name = getattr(local_path, 'name', None)
            # file objects opened from a descriptor have an int name
            if not isinstance(local_name, (str, bytes)):
                local_name = None
            opener = _open_stream

        device_path = get_push_destination(local_name, device_path, self.stat(device_path))

        with opener(local_path, 'rb') as stream:
            with self._open_sync() as transport:
                total_bytes = self._push(transport, stream, device_path, mode)

        if verify:
            size = self.stat(device_path).size
            if size != total_bytes:
                raise exceptions.PushFailedError('Push incomplete, expected {} bytes, got {} bytes'.format(total_bytes, size), device_path)

        return total_bytes

    def _push(self, transport, stream, device_path, mode):
        """Send a ``b'SEND'`` request followed by the contents of ``stream``.

        Parameters
        ----------
        transport : Transport
            A transport in FileSync mode
        stream : BytesIO
            File-like object for reading from
        device_path : str
            Destination on the device to write to
        mode : int
            Permission bits for the file

        Returns
        -------
        int
            The number of bytes that were sent

        Raises
        ------
        adb_host.exceptions.PushFailedError
            The device did not respond with ``b'OKAY'``

        """
        self.open(transport, '{},{}'.format(device_path, constants.S_IFREG | mode), constants.SEND)

        total_bytes = 0
        while True:
            data = stream.read(constants.MAX_PUSH_DATA)
            if not data:
                break

            transport.write(constants.DATA + struct.pack(constants.FILESYNC_UINT32_FORMAT, len(data)) + data)
            total_bytes += len(data)

        # DONE doesn't send data, but it hides the mtime in the size field.
        transport.write(constants.DONE + struct.pack(constants.FILESYNC_UINT32_FORMAT, int(time.time())))

        status = transport.read_exact(4)
        _LOGGER.debug("FileSync SEND %r: %d bytes, status %r", device_path, total_bytes, status)
        if status == constants.OKAY:
            return total_bytes

        msg = 'Push failed with status: {}'.format(decode_output(status))
        if status == constants.FAIL:
            size, = struct.unpack(constants.FILESYNC_UINT32_FORMAT, transport.read_exact(4))
            check_sync_payload_size(size, 'FAIL message')
            msg += ' ({})'.format(decode_output(transport.read_exact(size)))

        raise exceptions.PushFailedError(msg, device_path)

    # ======================================================================= #
    #                                                                         #
    #                                   Pull                                  #
    #                                                                         #
    # ======================================================================= #
    def read(self, device_path):
        """Read a file from the device in chunks.

        Nothing is sent until the first chunk is requested.  The transport is closed when the generator is
        exhausted or closed.

        Parameters
        ----------
        device_path : str
            The file on the device that will be read

        Returns
        -------
        generator
            Yields the file's contents (bytes) in the chunks that the device sends

        Raises
        ------
        adb_host.exceptions.AdbProtocolError
            The device responded with ``b'FAIL'`` (e.g., the file does not exist)
        adb_host.exceptions.InvalidResponseError
            The device sent an unexpected FileSync ID

        """
        _check_device_path(device_path, 'pull from')
        return self._read(device_path)

    def _read(self, device_path):
        """Yield ``b'DATA'`` payloads until ``b'DONE'``; see :meth:`FileSync.read`."""
        with self._open_sync() as transport:
            self.open(transport, device_path, constants.RECV)

            while True:
                command_id = transport.read_exact(4)

                if command_id == constants.DONE:
                    return

                if command_id not in (constants.DATA, constants.FAIL):
                    raise exceptions.InvalidResponseError('Invalid sync command: {!r}'.format(command_id))

                size, = struct.unpack(constants.FILESYNC_UINT32_FORMAT, transport.read_exact(4))

                if command_id == constants.FAIL:
                    check_sync_payload_size(size, 'FAIL message')
                    raise exceptions.AdbProtocolError(decode_output(transport.read_exact(size)), device_path)

                check_sync_payload_size(size, 'DATA')
                yield transport.read_exact(size)

    def pull(self, device_path, local_path):
        """Pull a file from the device.

        Parameters
        ----------
        device_path : str
            The file on the device that will be pulled
        local_path : str, bytes, os.PathLike, BytesIO
            The path or binary file-like object where the file will be written

        Returns
        -------
        int
            The number of bytes that were written

        """
        _check_device_path(device_path, 'pull from')

        opener = open if isinstance(local_path, (str, bytes, os.PathLike)) else _open_stream
        total_bytes = 0
        reader = self._read(device_path)

        try:
            with opener(local_path, 'wb') as stream:
                for data in reader:
                    stream.write(data)
                    total_bytes += len(data)
        finally:
            reader.close()

        _LOGGER.debug("FileSync RECV %r: %d bytes", device_path, total_bytes)
        return total_bytes
