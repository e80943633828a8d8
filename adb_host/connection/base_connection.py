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

"""A base class for connections used to communicate with the ADB server.

* :class:`BaseConnection`

    * :meth:`BaseConnection.close`
    * :meth:`BaseConnection.connect`
    * :meth:`BaseConnection.read`
    * :meth:`BaseConnection.read_exact`
    * :meth:`BaseConnection.read_fully`
    * :meth:`BaseConnection.read_stream`
    * :meth:`BaseConnection.write`

"""


from abc import ABC, abstractmethod

from ..exceptions import AdbConnectionError


class BaseConnection(ABC):
    """A base connection class.

    """

    @abstractmethod
    def close(self):
        """Close the connection; calling this more than once must be harmless.

        """

    @abstractmethod
    def connect(self):
        """Create a connection to the ADB server.

        """

    @abstractmethod
    def read(self, numbytes):
        """Read at most ``numbytes`` bytes, blocking until some data is available.

        Parameters
        ----------
        numbytes : int
            The maximum amount of data to be received

        Returns
        -------
        bytes
            The received data, or ``b''`` if the peer closed the connection

        """

    @abstractmethod
    def read_fully(self):
        """Read until the peer closes the connection.

        Returns
        -------
        bytes
            Everything that was received

        """

    @abstractmethod
    def read_stream(self):
        """Yield chunks of data as they become available, until the peer closes the connection.

        Yields
        ------
        bytes
            A chunk of received data

        """

    @abstractmethod
    def write(self, data):
        """Send all of ``data``.

        Parameters
        ----------
        data : bytes
            The data to be sent

        """

    def read_exact(self, numbytes, allow_eof=False):
        """Read exactly ``numbytes`` bytes.

        Parameters
        ----------
        numbytes : int
            The amount of data to be received
        allow_eof : bool
            If ``True`` and the peer closes the connection before any byte is received, return ``b''`` instead of raising

        Returns
        -------
        bytes
            The received data

        Raises
        ------
        adb_host.exceptions.AdbConnectionError
            The peer closed the connection before ``numbytes`` bytes were received

        """
        buf = bytearray()
        while len(buf) < numbytes:
            chunk = self.read(numbytes - len(buf))
            if not chunk:
                if allow_eof and not buf:
                    return b''
                raise AdbConnectionError('Unexpected EOF while reading ({} of {} bytes received)'.format(len(buf), numbytes))

            buf += chunk

        return bytes(buf)
