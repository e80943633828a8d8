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

"""Implement the :class:`Transport` class, which speaks the ADB host command protocol over one connection.

A command is sent as its length in 4 hex digits followed by the command itself, and the server replies with a
4 byte status word: ``b'OKAY'``, or ``b'FAIL'`` followed by a string block with the error message.  What comes
after ``b'OKAY'`` depends on the command:

* a string block (4 hex digit length + data), read via :meth:`Transport.read_string_block`
* data terminated by the server closing the connection, read via :meth:`Transport.read_fully`
* a stream of data, read via :meth:`Transport.read_stream`

.. rubric:: Contents

* :func:`open_transport`

* :class:`Transport`

    * :meth:`Transport.check_okay`
    * :meth:`Transport.close`
    * :attr:`Transport.connection`
    * :meth:`Transport.read_exact`
    * :meth:`Transport.read_fully`
    * :meth:`Transport.read_stream`
    * :meth:`Transport.read_string_block`
    * :meth:`Transport.request`
    * :meth:`Transport.request_with_fully`
    * :meth:`Transport.request_with_stream`
    * :meth:`Transport.request_with_string_block`
    * :meth:`Transport.send_command`
    * :meth:`Transport.write`

"""


import logging

from . import constants
from . import exceptions
from .connection.base_connection import BaseConnection
from .connection.tcp_connection import TcpConnection
from .hidden_helpers import decode_length, decode_output, encode_command


_LOGGER = logging.getLogger(__name__)


def open_transport(host=constants.DEFAULT_HOST, port=constants.DEFAULT_PORT, timeout_s=constants.DEFAULT_TIMEOUT_S):
    """Connect to the ADB server and return a :class:`Transport`.

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
    Transport
        A transport whose connection is open

    """
    connection = TcpConnection(host, port, timeout_s)
    connection.connect()
    return Transport(connection)


class Transport(object):
    """A command/response conversation with the ADB server.

    Only one command may be outstanding at a time.  After a command's response has been read, a new
    :class:`Transport` should be opened for the next command, unless the command switched the connection to a
    sub-protocol (e.g., ``sync:`` or ``shell,v2:``) that takes over the framing.

    Parameters
    ----------
    connection : BaseConnection
        A connected connection; must be an instance of a subclass of :class:`~adb_host.connection.base_connection.BaseConnection`

    Raises
    ------
    adb_host.exceptions.InvalidConnectionError
        The passed ``connection`` is not an instance of a subclass of :class:`~adb_host.connection.base_connection.BaseConnection`

    Attributes
    ----------
    _connection : BaseConnection
        The connection that this transport owns

    """
    def __init__(self, connection):
        if not isinstance(connection, BaseConnection):
            raise exceptions.InvalidConnectionError("`connection` must be an instance of a subclass of `BaseConnection`")

        self._connection = connection

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    @property
    def connection(self):
        """The connection that this transport owns.

        Returns
        -------
        BaseConnection
            ``self._connection``

        """
        return self._connection

    def close(self):
        """Close the connection.

        """
        self._connection.close()

    # ======================================================================= #
    #                                                                         #
    #                                 Commands                                #
    #                                                                         #
    # ======================================================================= #
    def send_command(self, cmd):
        """Send a command and check that the server responds with ``b'OKAY'``.

        Parameters
        ----------
        cmd : str, bytes
            The command, e.g. ``'host:version'``

        """
        payload = encode_command(cmd)
        _LOGGER.debug("send_command: %r", payload)
        self._connection.write(payload)
        self.check_okay()

    def check_okay(self):
        """Read the 4 byte status word.

        Raises
        ------
        adb_host.exceptions.AdbProtocolError
            The server responded with ``b'FAIL'``; the exception holds the server's error message
        adb_host.exceptions.InvalidResponseError
            The server responded with something other than ``b'OKAY'`` or ``b'FAIL'``

        """
        status = self._connection.read_exact(4)
        _LOGGER.debug("status: %r", status)

        if status == constants.OKAY:
            return

        if status == constants.FAIL:
            raise exceptions.AdbProtocolError(self.read_string_block())

        raise exceptions.InvalidResponseError('Unexpected response: {!r}'.format(status))

    def request(self, cmd, response_type):
        """Send a command and read its response.

        Parameters
        ----------
        cmd : str, bytes
            The command
        response_type : str
            How the response is framed: :const:`~adb_host.constants.RESPONSE_STRING_BLOCK`,
            :const:`~adb_host.constants.RESPONSE_FULLY`, or :const:`~adb_host.constants.RESPONSE_STREAM`

        Returns
        -------
        str, generator
            See :meth:`Transport.request_with_string_block`, :meth:`Transport.request_with_fully`, and :meth:`Transport.request_with_stream`

        """
        if response_type == constants.RESPONSE_STRING_BLOCK:
            return self.request_with_string_block(cmd)

        if response_type == constants.RESPONSE_FULLY:
            return self.request_with_fully(cmd)

        if response_type == constants.RESPONSE_STREAM:
            return self.request_with_stream(cmd)

        raise ValueError('`response_type` must be one of {}, not {!r}'.format(constants.RESPONSE_TYPES, response_type))

    def request_with_string_block(self, cmd):
        """Send a command whose response is a string block.

        Parameters
        ----------
        cmd : str, bytes
            The command

        Returns
        -------
        str
            The response, with trailing whitespace removed

        """
        self.send_command(cmd)
        return self.read_string_block()

    def request_with_fully(self, cmd):
        """Send a command whose response ends when the server closes the connection.

        Parameters
        ----------
        cmd : str, bytes
            The command

        Returns
        -------
        str
            The response, with trailing whitespace removed

        """
        self.send_command(cmd)
        return decode_output(self.read_fully()).rstrip()

    def request_with_stream(self, cmd):
        """Send a command and return a generator of its response.

        The command is sent immediately.  The transport is closed when the generator is exhausted or closed.

        Parameters
        ----------
        cmd : str, bytes
            The command

        Returns
        -------
        generator
            Yields the response in chunks (bytes) as they are received

        """
        self.send_command(cmd)
        return self._stream_and_close()

    def _stream_and_close(self):
        """Yield from :meth:`Transport.read_stream`, then close the transport.

        Yields
        ------
        bytes
            A chunk of the response

        """
        try:
            for chunk in self.read_stream():
                yield chunk
        finally:
            self.close()

    # ======================================================================= #
    #                                                                         #
    #                            Reading & writing                            #
    #                                                                         #
    # ======================================================================= #
    def read_string_block(self):
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
        length = decode_length(self._connection.read_exact(4))
        if length == 0:
            return ''

        return decode_output(self._connection.read_exact(length)).rstrip()

    def read_exact(self, numbytes, allow_eof=False):
        """Read exactly ``numbytes`` bytes; see :meth:`BaseConnection.read_exact() <adb_host.connection.base_connection.BaseConnection.read_exact>`."""
        return self._connection.read_exact(numbytes, allow_eof)

    def read_fully(self):
        """Read until the server closes the connection; see :meth:`BaseConnection.read_fully() <adb_host.connection.base_connection.BaseConnection.read_fully>`."""
        return self._connection.read_fully()

    def read_stream(self):
        """Yield data as it arrives; see :meth:`BaseConnection.read_stream() <adb_host.connection.base_connection.BaseConnection.read_stream>`."""
        return self._connection.read_stream()

    def write(self, data):
        """Write raw bytes; used by sub-protocols that take over the framing."""
        self._connection.write(data)
