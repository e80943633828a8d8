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

"""A class for creating a socket connection with the ADB server and sending and receiving data.

* :class:`TcpConnection`

    * :meth:`TcpConnection.close`
    * :meth:`TcpConnection.connect`
    * :meth:`TcpConnection.read`
    * :meth:`TcpConnection.read_fully`
    * :meth:`TcpConnection.read_stream`
    * :meth:`TcpConnection.write`

"""


import logging
import select
import socket

from .base_connection import BaseConnection
from .. import constants
from ..exceptions import AdbConnectionError, TcpTimeoutException


_LOGGER = logging.getLogger(__name__)


class TcpConnection(BaseConnection):
    """TCP connection object.

    Parameters
    ----------
    host : str
        The address of the ADB server; may be an IP address or a host name
    port : int
        The port of the ADB server (default is 5037)
    timeout_s : float, None
        Timeout in seconds for connecting, reading, and writing

    Attributes
    ----------
    _connection : socket.socket, None
        A socket connection to the ADB server
    _host : str
        The address of the ADB server; may be an IP address or a host name
    _port : int
        The port of the ADB server
    _timeout_s : float, None
        Timeout in seconds for connecting, reading, and writing

    """
    def __init__(self, host=constants.DEFAULT_HOST, port=constants.DEFAULT_PORT, timeout_s=constants.DEFAULT_TIMEOUT_S):
        self._host = host
        self._port = port
        self._timeout_s = timeout_s

        self._connection = None

    def __del__(self):
        self.close()

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

    def close(self):
        """Close the socket connection.

        """
        if self._connection:
            try:
                self._connection.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass

            self._connection.close()
            self._connection = None

    def connect(self):
        """Create a socket connection to the ADB server.

        The socket is left in blocking mode, with ``self._timeout_s`` as the timeout for every read and write.

        Raises
        ------
        TcpTimeoutException
            Connecting timed out
        adb_host.exceptions.AdbConnectionError
            The connection was refused or could not be established

        """
        try:
            self._connection = socket.create_connection((self._host, self._port), timeout=self._timeout_s)
        except socket.timeout:
            msg = 'Connecting to {}:{} timed out ({} seconds)'.format(self._host, self._port, self._timeout_s)
            raise TcpTimeoutException(msg)
        except OSError as exc:
            raise AdbConnectionError('ADB connection to {}:{} failed: {}'.format(self._host, self._port, exc))

        self._connection.settimeout(self._timeout_s)

    def read(self, numbytes):
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
        adb_host.exceptions.AdbConnectionError
            Not connected, or the socket raised an error

        """
        self._check_connected()

        try:
            return self._connection.recv(numbytes)
        except socket.timeout:
            msg = 'Reading from {}:{} timed out ({} seconds)'.format(self._host, self._port, self._timeout_s)
            raise TcpTimeoutException(msg)
        except OSError as exc:
            raise AdbConnectionError('Failed to read from {}:{}: {}'.format(self._host, self._port, exc))

    def read_fully(self):
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
                chunk = self._connection.recv(constants.READ_CHUNK_SIZE)
            except socket.timeout:
                _LOGGER.warning('Reading from %s:%d timed out after %d bytes; treating it as the end of the response', self._host, self._port, len(buf))
                break
            except OSError as exc:
                raise AdbConnectionError('Failed to read from {}:{}: {}'.format(self._host, self._port, exc))

            if not chunk:
                break

            buf += chunk

        _LOGGER.debug("read_fully(%d): %.1000r", len(buf), buf)
        return bytes(buf)

    def read_stream(self):
        """Yield data from the socket as soon as it is available, until the ADB server closes the connection.

        The socket is polled in non-blocking mode via ``select.select``; blocking mode is restored when the
        generator finishes or is closed early.

        Yields
        ------
        bytes
            A chunk of received data

        Raises
        ------
        adb_host.exceptions.AdbConnectionError
            Not connected, or the socket raised an error

        """
        self._check_connected()
        self._connection.setblocking(False)

        try:
            while True:
                readable, _, _ = select.select([self._connection], [], [], constants.STREAM_POLL_INTERVAL_S)
                if not readable:
                    continue

                try:
                    chunk = self._connection.recv(constants.READ_CHUNK_SIZE)
                except BlockingIOError:
                    continue
                except OSError as exc:
                    raise AdbConnectionError('Failed to read from {}:{}: {}'.format(self._host, self._port, exc))

                if not chunk:
                    return

                yield chunk

        finally:
            if self._connection:
                self._connection.settimeout(self._timeout_s)

    def write(self, data):
        """Send all of ``data`` to the socket.

        Parameters
        ----------
        data : bytes
            The data to be sent

        Raises
        ------
        TcpTimeoutException
            Sending data timed out.
        adb_host.exceptions.AdbConnectionError
            Not connected, or the socket raised an error before all of the data was sent

        """
        self._check_connected()

        sent = 0
        while sent < len(data):
            try:
                sent += self._connection.send(data[sent:])
            except socket.timeout:
                msg = 'Sending data to {}:{} timed out after {} seconds. {} of {} bytes were sent.'.format(self._host, self._port, self._timeout_s, sent, len(data))
                raise TcpTimeoutException(msg)
            except OSError as exc:
                raise AdbConnectionError('Failed to write to {}:{}: {}'.format(self._host, self._port, exc))

    def _check_connected(self):
        """Raise an exception if the socket is not connected.

        Raises
        ------
        adb_host.exceptions.AdbConnectionError
            ``self._connection`` is ``None``

        """
        if self._connection is None:
            raise AdbConnectionError('Not connected to {}:{}.  (Did you call `connect()`?)'.format(self._host, self._port))
