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

"""A base class for async connections used to communicate with the ADB server.

* :class:`BaseConnectionAsync`

    * :meth:`BaseConnectionAsync.close`
    * :meth:`BaseConnectionAsync.connect`
    * :meth:`BaseConnectionAsync.read`
    * :meth:`BaseConnectionAsync.read_exact`
    * :meth:`BaseConnectionAsync.read_fully`
    * :meth:`BaseConnectionAsync.read_stream`
    * :meth:`BaseConnectionAsync.write`

"""


from abc import ABC, abstractmethod

from ..exceptions import AdbConnectionError


class BaseConnectionAsync(ABC):
    """A base connection class.

    """

    @abstractmethod
    async def close(self):
        """Close the connection; calling this more than once must be harmless.

        """

    @abstractmethod
    async def connect(self):
        """Create a connection to the ADB server.

        """

    @abstractmethod
    async def read(self, numbytes):
        """Read at most ``numbytes`` bytes.

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
    async def read_fully(self):
        """Read until the peer closes the connection.

        Returns
        -------
        bytes
            Everything that was received

        """

    @abstractmethod
    def read_stream(self):
        """Return an async generator of chunks, which ends when the peer closes the connection.

        Yields
        ------
        bytes
            A chunk of received data

        """

    @abstractmethod
    async def write(self, data):
        """Send all of ``data``.

        Parameters
        ----------
        data : bytes
            The data to be sent

        """

    async def read_exact(self, numbytes, allow_eof=False):
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
            chunk = await self.read(numbytes - len(buf))
            if not chunk:
                if allow_eof and not buf:
                    return b''
                raise AdbConnectionError('Unexpected EOF while reading ({} of {} bytes received)'.format(len(buf), numbytes))

            buf += chunk

        return bytes(buf)
