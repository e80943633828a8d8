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

"""ADB-related exceptions.

"""


class AdbConnectionError(Exception):
    """The socket connection to the ADB server failed or was used after being closed.

    """


class TcpTimeoutException(AdbConnectionError):
    """TCP connection timed out while connecting, reading, or writing.

    """


class InvalidResponseError(AdbConnectionError):
    """Got a response that does not follow the wire format.

    """


class AdbProtocolError(Exception):
    """The ADB server reported a failure (a ``b'FAIL'`` status or FileSync packet).

    Parameters
    ----------
    message : str
        The error message sent by the server
    path : str, None
        The device path that the failed FileSync request was about

    Attributes
    ----------
    message : str
        The error message sent by the server
    path : str, None
        The device path that the failed FileSync request was about

    """
    def __init__(self, message, path=None):
        super(AdbProtocolError, self).__init__(message, path)
        self.message = message
        self.path = path

    def __str__(self):
        if self.path:
            return '{}: {}'.format(self.path, self.message)
        return '{}'.format(self.message)


class PushFailedError(AdbProtocolError):
    """Pushing a file failed for some reason.

    """


class DevicePathInvalidError(Exception):
    """A file command was passed an invalid path.

    """


class DeviceNotFoundError(Exception):
    """No device in the device list matched the request.

    """


class InvalidConnectionError(Exception):
    """The provided connection is not an instance of a subclass of ``BaseConnection`` / ``BaseConnectionAsync``.

    """
