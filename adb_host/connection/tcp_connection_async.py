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

"""A class for creating an async socket connection with the ADB server and sending and receiving data.

* :class:`TcpConnectionAsync`

    * :meth:`TcpConnectionAsync.close`
    * :meth:`TcpConnectionAsync.connect`
    * :meth:`TcpConnectionAsync.read`
    * :meth:`TcpConnectionAsync.read_fully`
    * :meth:`TcpConnectionAsync.read_stream`
    * :meth:`TcpConnectionAsync.write`

"""


import asyncio
import logging

from .base_connection_async import BaseConnectionAsync
from .. import constants
from ..exceptions import AdbConnectionError, TcpTimeoutException


_LOGGER = logging.getLogger(__name__)


class TcpConnectionAsync(BaseConnectionAsync):
    """TCP connection object.

    Parameters
    ----------
    host : str
        The address of the ADB server; may be an IP address or a host name
    port : int
        The port of the ADB server (default is 5037)
    timeout_s : float, None
        Timeout in seconds for connecting, reading, and writing; if it is ``None``, operations block until they complete

    Attributes
    ----------
    _host : str
        The address of the ADB server; may be an IP address or a host name
    _port : int
        The port of the ADB server
    _reader : StreamReader, None
        Object for reading data from the socket
    _timeout_s : float, None
        Timeout in seconds for connecting, reading, and writing
    _writer : StreamWriter, None
        Object for writing data to the socket

    """
    def __init__(self, host=constants.DEFAULT_HOST, port=constants.DEFAULT_PORT, timeout_s=constants.DEFAULT_TIMEOUT_S):
        self._host = host
        self._port = port
        self._timeout_s = timeout_s

        self._reader = None
        self._writer = None

    @property
    def host(self):
        """The address of the ADB server."""
        return self._host

    @property
    def port(self):
        """The port of the ADB server."""
        return self._port

    @property
    def timeout_s(self):
        """Timeout in seconds for connecting, reading, and writing."""
        return self._timeout_s

    async def close(self):
        """Close the socket connection.

        """
        if self._writer:
            try:
                self._writer.close()
                await self._writer.wait_closed()
            except OSError:
                pass

        self._reader = None
        self._writer = None

    async def connect(self):
        """Create a socket connection to the ADB server.

        Raises
        ------
        TcpTimeoutException
            Connecting timed out
        adb_host.exceptions.AdbConnectionError
            The connection was refused or could not be established

        """
        try:
            self._reader, self._writer = await asyncio.wait_for(asyncio.open_connection(self._host, self._port), self._timeout_s)
        except asyncio.TimeoutError:
            msg = 'Connecting to {}:{} timed out ({} seconds)'.format(self._host, self._port, self._timeout_s)
            raise TcpTimeoutException(msg)
        except OSError as exc:
            raise AdbConnectionError('ADB connection to {}:{} failed: {}'.format(self._host, self._port, exc))

    async def read(self, numbytes):
        """Receive data from the socket.

        Parameters
        ----------
        numbytes : int
            The maximum amount of data to be received

        Returns
        -------
        bytes
            The received data, or ``b''`` if the ADB server closed the connection

        Raises
        ------
        TcpTimeoutException
            Reading timed out.

        """
        self._check_connected()

        try:
            return await asyncio.wait_for(self._reader.read(numbytes), self._timeout_s)
        except asyncio.TimeoutError:
            msg = 'Reading from {}:{} timed out ({} seconds)'.format(self._host, self._port, self._timeout_s)
            raise TcpTimeoutException(msg)
        except OSError as exc:
            raise AdbConnectionError('Failed to read from {}:{}: {}'.format(self._host, self._port, exc))

    async def read_fully(self):
        """Receive data until the ADB server closes the connection.

        A timeout ends the read, since it means that no more data is available.

        Returns
        -------
        bytes
            All the received data

        """
        self._check_connected()

        buf = bytearray()
        while True:
            try:
                chunk = await asyncio.wait_for(self._reader.read(constants.READ_CHUNK_SIZE), self._timeout_s)
            except asyncio.TimeoutError:
                _LOGGER.warning('Reading from %s:%d timed out after %d bytes; treating it as the end of the response', self._host, self._port, len(buf))
                break
            except OSError as exc:
                raise AdbConnectionError('Failed to read from {}:{}: {}'.format(self._host, self._port, exc))

            if not chunk:
                break

            buf += chunk

        _LOGGER.debug("read_fully(%d): %.1000r", len(buf), buf)
        return bytes(buf)

    async def read_stream(self):
        """Yield data from the socket as soon as it is available, until the ADB server closes the connection.

        Yields
        ------
        bytes
            A chunk of received data

        """
        self._check_connected()

        while True:
            try:
                chunk = await self._reader.read(constants.READ_CHUNK_SIZE)
            except OSError as exc:
                raise AdbConnectionError('Failed to read from {}:{}: {}'.format(self._host, self._port, exc))

            if not chunk:
                return

            yield chunk

    async def write(self, data):
        """Send all of ``data`` to the socket.

        Parameters
        ----------
        data : bytes
            The data to be sent

        Raises
        ------
        TcpTimeoutException
            Sending data timed out.

        """
        self._check_connected()

        try:
            self._writer.write(data)
            await asyncio.wait_for(self._writer.drain(), self._timeout_s)
        except asyncio.TimeoutError:
            msg = 'Sending data to {}:{} timed out after {} seconds.'.format(self._host, self._port, self._timeout_s)
            raise TcpTimeoutException(msg)
        except OSError as exc:
            raise AdbConnectionError('Failed to write to {}:{}: {}'.format(self._host, self._port, exc))

    def _check_connected(self):
        """Raise an exception if the socket is not connected.

        Raises
        ------
        adb_host.exceptions.AdbConnectionError
            ``self._reader`` is ``None``

        """
        if self._reader is None:
            raise AdbConnectionError('Not connected to {}:{}.  (Did you call `connect()`?)'.format(self._host, self._port))
