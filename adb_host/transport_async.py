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

"""Implement the :class:`TransportAsync` class, which speaks the ADB host command protocol over one async connection.

* :func:`open_transport_async`

* :class:`TransportAsync`

    * :meth:`TransportAsync.check_okay`
    * :meth:`TransportAsync.close`
    * :attr:`TransportAsync.connection`
    * :meth:`TransportAsync.read_exact`
    * :meth:`TransportAsync.read_fully`
    * :meth:`TransportAsync.read_stream`
    * :meth:`TransportAsync.read_string_block`
    * :meth:`TransportAsync.request`
    * :meth:`TransportAsync.request_with_fully`
    * :meth:`TransportAsync.request_with_stream`
    * :meth:`TransportAsync.request_with_string_block`
    * :meth:`TransportAsync.send_command`
    * :meth:`TransportAsync.write`

"""


import logging

from . import constants
from . import exceptions
from .connection.base_connection_async import BaseConnectionAsync
from .connection.tcp_connection_async import TcpConnectionAsync
from .hidden_helpers import decode_length, decode_output, encode_command


_LOGGER = logging.getLogger(__name__)


async def open_transport_async(host=constants.DEFAULT_HOST, port=constants.DEFAULT_PORT, timeout_s=constants.DEFAULT_TIMEOUT_S):
    """Connect to the ADB server and return a :class:`TransportAsync`.

    Parameters
    ----------
    host : str
        The address of the ADB server
    port : int
        The port of the ADB server
    timeout_s : float, None
        Timeout in seconds for connecting, reading, and writing

    Returns
    -------
    TransportAsync
        A transport whose connection is open

    """
    connection = TcpConnectionAsync(host, port, timeout_s)
    await connection.connect()
    return TransportAsync(connection)


class TransportAsync(object):
    """A command/response conversation with the ADB server.

    Parameters
    ----------
    connection : BaseConnectionAsync
        A connected connection; must be an instance of a subclass of :class:`~adb_host.connection.base_connection_async.BaseConnectionAsync`

    Raises
    ------
    adb_host.exceptions.InvalidConnectionError
        The passed ``connection`` is not an instance of a subclass of :class:`~adb_host.connection.base_connection_async.BaseConnectionAsync`

    Attributes
    ----------
    _connection : BaseConnectionAsync
        The connection that this transport owns

    """
    def __init__(self, connection):
        if not isinstance(connection, BaseConnectionAsync):
            raise exceptions.InvalidConnectionError("`connection` must be an instance of a subclass of `BaseConnectionAsync`")

        self._connection = connection

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_value, traceback):
        await self.close()

    @property
    def connection(self):
        """The connection that this transport owns."""
        return self._connection

    async def close(self):
        """Close the connection.

        """
        await self._connection.close()

    async def send_command(self, cmd):
        """Send a command and check that the server responds with ``b'OKAY'``.

        Parameters
        ----------
        cmd : str, bytes
            The command, e.g. ``'host:version'``

        """
        payload = encode_command(cmd)
        _LOGGER.debug("send_command: %r", payload)
        await self._connection.write(payload)
        await self.check_okay()

    async def check_okay(self):
        """Read the 4 byte status word.

        Raises
        ------
        adb_host.exceptions.AdbProtocolError
            The server responded with ``b'FAIL'``; the exception holds the server's error message
        adb_host.exceptions.InvalidResponseError
            The server responded with something other than ``b'OKAY'`` or ``b'FAIL'``

        """
        status = await self._connection.read_exact(4)
        _LOGGER.debug("status: %r", status)

        if status == constants.OKAY:
            return

        if status == constants.FAIL:
            raise exceptions.AdbProtocolError(await self.read_string_block())

        raise exceptions.InvalidResponseError('Unexpected response: {!r}'.format(status))

    async def request(self, cmd, response_type):
        """Send a command and read its response according to ``response_type``.

        See :meth:`adb_host.transport.Transport.request`.

        """
        if response_type == constants.RESPONSE_STRING_BLOCK:
            return await self.request_with_string_block(cmd)

        if response_type == constants.RESPONSE_FULLY:
            return await self.request_with_fully(cmd)

        if response_type == constants.RESPONSE_STREAM:
            return await self.request_with_stream(cmd)

        raise ValueError('`response_type` must be one of {}, not {!r}'.format(constants.RESPONSE_TYPES, response_type))

    async def request_with_string_block(self, cmd):
        """Send a command whose response is a string block.

        Returns
        -------
        str
            The response, with trailing whitespace removed

        """
        await self.send_command(cmd)
        return await self.read_string_block()

    async def request_with_fully(self, cmd):
        """Send a command whose response ends when the server closes the connection.

        Returns
        -------
        str
            The response, with trailing whitespace removed

        """
        await self.send_command(cmd)
        return decode_output(await self.read_fully()).rstrip()

    async def request_with_stream(self, cmd):
        """Send a command and return an async generator of its response.

        The transport is closed when the generator is exhausted or closed.

        Returns
        -------
        async_generator
            Yields the response in chunks (bytes) as they are received

        """
        await self.send_command(cmd)
        return self._stream_and_close()

    async def _stream_and_close(self):
        """Yield from :meth:`TransportAsync.read_stream`, then close the transport."""
        try:
            async for chunk in self.read_stream():
                yield chunk
        finally:
            await self.close()

    async def read_string_block(self):
        """Read a string block: a 4 hex digit length followed by that many bytes.

        Returns
        -------
        str
            The string, with trailing whitespace removed

        Raises
        ------
        adb_host.exceptions.InvalidResponseError
            The length header is not 4 hex digits

        """
        length = decode_length(await self._connection.read_exact(4))
        if length == 0:
            return ''

        return decode_output(await self._connection.read_exact(length)).rstrip()

    async def read_exact(self, numbytes, allow_eof=False):
        """Read exactly ``numbytes`` bytes."""
        return await self._connection.read_exact(numbytes, allow_eof)

    async def read_fully(self):
        """Read until the server closes the connection."""
        return await self._connection.read_fully()

    def read_stream(self):
        """Return an async generator that yields data as it arrives."""
        return self._connection.read_stream()

    async def write(self, data):
        """Write raw bytes; used by sub-protocols that take over the framing."""
        await self._connection.write(data)
