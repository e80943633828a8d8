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

"""Implement the :class:`FileSyncAsync` class, which runs the FileSync protocol (stat, list, push, pull).

* :class:`FileSyncAsync`

    * :meth:`FileSyncAsync._open_sync`
    * :meth:`FileSyncAsync._push`
    * :meth:`FileSyncAsync._read`
    * :meth:`FileSyncAsync.list`
    * :meth:`FileSyncAsync.open`
    * :meth:`FileSyncAsync.pull`
    * :meth:`FileSyncAsync.push`
    * :meth:`FileSyncAsync.read`
    * :meth:`FileSyncAsync.stat`

"""


import logging
import os
import struct
import time

import aiofiles

from . import constants
from . import exceptions
from .hidden_helpers import DeviceFile, check_sync_payload_size, decode_output, get_push_destination, pack_sync_request


_LOGGER = logging.getLogger(__name__)


def _check_device_path(device_path, action):
    """Raise :class:`~adb_host.exceptions.DevicePathInvalidError` if ``device_path`` is empty."""
    if not device_path:
        raise exceptions.DevicePathInvalidError("Cannot {} an empty device path".format(action))


class FileSyncAsync(object):
    """Run FileSync operations on a device.

    Local files are read and written via ``aiofiles``.

    Parameters
    ----------
    open_transport : function
        A coroutine function that is called with no arguments and returns a :class:`~adb_host.transport_async.TransportAsync` that is bound to the device

    Attributes
    ----------
    _open_transport : function
        A coroutine function that is called with no arguments and returns a :class:`~adb_host.transport_async.TransportAsync` that is bound to the device

    """
    def __init__(self, open_transport):
        self._open_transport = open_transport

    async def _open_sync(self):
        """Open a transport and switch it to the FileSync protocol.

        Returns
        -------
        TransportAsync
            The transport, in FileSync mode

        """
        transport = await self._open_transport()
        try:
            await transport.send_command(b'sync:')
        except Exception:
            await transport.close()
            raise

        return transport

    @staticmethod
    async def open(transport, device_path, command_id):
        """Send a FileSync request: the command ID, the little-endian path length, and the path.

        Parameters
        ----------
        transport : TransportAsync
            A transport in FileSync mode
        device_path : str, bytes
            The path on the device
        command_id : bytes
            ``b'STAT'``, ``b'LIST'``, ``b'SEND'``, or ``b'RECV'``

        """
        _LOGGER.debug("FileSync %s %r", command_id.decode('ascii'), device_path)
        await transport.write(pack_sync_request(command_id, device_path))

    async def stat(self, device_path):
        """Get a file's ``stat()`` information.

        Parameters
        ----------
        device_path : str
            The file on the device for which we will get information.

        Returns
        -------
        DeviceFile
            The path, mode, size, and mtime (``None`` if the device reports 0) of the file

        """
        _check_device_path(device_path, 'stat')

        async with await self._open_sync() as transport:
            await self.open(transport, device_path, constants.STAT)

            response = await transport.read_exact(4)
            if response != constants.STAT:
                raise exceptions.AdbProtocolError('STAT response invalid: {!r}'.format(response), device_path)

            mode, size, mtime = struct.unpack(constants.FILESYNC_STAT_FORMAT, await transport.read_exact(struct.calcsize(constants.FILESYNC_STAT_FORMAT)))

        return DeviceFile(device_path, mode, size, mtime or None)

    async def list(self, device_path):
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

        async with await self._open_sync() as transport:
            await self.open(transport, device_path, constants.LIST)

            while True:
                command_id = await transport.read_exact(4)
                if command_id == constants.DONE:
                    break

                if command_id != constants.DENT:
                    _LOGGER.debug("FileSync LIST %r: entry with ID %r", device_path, command_id)

                mode, size, mtime, namelen = struct.unpack(constants.FILESYNC_DENT_FORMAT, await transport.read_exact(dent_size))
                check_sync_payload_size(namelen, 'directory entry name')

                filename = decode_output(await transport.read_exact(namelen))
                files.append(DeviceFile(filename, mode, size, mtime or None))

        return files

    async def push(self, local_path, device_path, mode=constants.DEFAULT_PUSH_MODE, verify=False):
        """Push a local file to the device.

        Parameters
        ----------
        local_path : str, bytes, os.PathLike
            The local file to push to the device
        device_path : str
            Destination on the device to write to; if it is a directory, the file keeps its base name
        mode : int
            Permission bits for the file; the regular file bit is added
        verify : bool
            Whether to ``stat()`` the file afterwards and check its size

        Returns
        -------
        int
            The number of bytes that were sent

        """
        _check_device_path(device_path, 'push to')

        device_path = get_push_destination(os.fspath(local_path), device_path, await self.stat(device_path))

        async with aiofiles.open(local_path, 'rb') as stream:
            async with await self._open_sync() as transport:
                total_bytes = await self._push(transport, stream, device_path, mode)

        if verify:
            size = (await self.stat(device_path)).size
            if size != total_bytes:
                raise exceptions.PushFailedError('Push incomplete, expected {} bytes, got {} bytes'.format(total_bytes, size), device_path)

        return total_bytes

    async def _push(self, transport, stream, device_path, mode):
        """Send a ``b'SEND'`` request followed by the contents of ``stream``.

        Returns
        -------
        int
            The number of bytes that were sent

        Raises
        ------
        adb_host.exceptions.PushFailedError
            The device did not respond with ``b'OKAY'``

        """
        await self.open(transport, '{},{}'.format(device_path, constants.S_IFREG | mode), constants.SEND)

        total_bytes = 0
        while True:
            data = await stream.read(constants.MAX_PUSH_DATA)
            if not data:
                break

            await transport.write(constants.DATA + struct.pack(constants.FILESYNC_UINT32_FORMAT, len(data)) + data)
            total_bytes += len(data)

        await transport.write(constants.DONE + struct.pack(constants.FILESYNC_UINT32_FORMAT, int(time.time())))

        status = await transport.read_exact(4)
        _LOGGER.debug("FileSync SEND %r: %d bytes, status %r", device_path, total_bytes, status)
        if status == constants.OKAY:
            return total_bytes

        msg = 'Push failed with status: {}'.format(decode_output(status))
        if status == constants.FAIL:
            size, = struct.unpack(constants.FILESYNC_UINT32_FORMAT, await transport.read_exact(4))
            check_sync_payload_size(size, 'FAIL message')
            msg += ' ({})'.format(decode_output(await transport.read_exact(size)))

        raise exceptions.PushFailedError(msg, device_path)

    def read(self, device_path):
        """Read a file from the device in chunks.

        Parameters
        ----------
        device_path : str
            The file on the device that will be read

        Returns
        -------
        async_generator
            Yields the file's contents (bytes) in the chunks that the device sends

        """
        _check_device_path(device_path, 'pull from')
        return self._read(device_path)

    async def _read(self, device_path):
        """Yield ``b'DATA'`` payloads until ``b'DONE'``; see :meth:`FileSyncAsync.read`."""
        async with await self._open_sync() as transport:
            await self.open(transport, device_path, constants.RECV)

            while True:
                command_id = await transport.read_exact(4)

                if command_id == constants.DONE:
                    return

                if command_id not in (constants.DATA, constants.FAIL):
                    raise exceptions.InvalidResponseError('Invalid sync command: {!r}'.format(command_id))

                size, = struct.unpack(constants.FILESYNC_UINT32_FORMAT, await transport.read_exact(4))

                if command_id == constants.FAIL:
                    check_sync_payload_size(size, 'FAIL message')
                    raise exceptions.AdbProtocolError(decode_output(await transport.read_exact(size)), device_path)

                check_sync_payload_size(size, 'DATA')
                yield await transport.read_exact(size)

    async def pull(self, device_path, local_path):
        """Pull a file from the device.

        Parameters
        ----------
        device_path : str
            The file on the device that will be pulled
        local_path : str, bytes, os.PathLike
            The local path where the file will be written

        Returns
        -------
        int
            The number of bytes that were written

        """
        _check_device_path(device_path, 'pull from')

        total_bytes = 0
        reader = self._read(device_path)
        try:
            async with aiofiles.open(local_path, 'wb') as stream:
                async for data in reader:
                    await stream.write(data)
                    total_bytes += len(data)
        finally:
            await reader.aclose()

        _LOGGER.debug("FileSync RECV %r: %d bytes", device_path, total_bytes)
        return total_bytes
