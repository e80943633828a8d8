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

"""Run a command with the shell v2 protocol, which keeps stdout, stderr, and the exit code apart.

Each packet is a 1 byte ID (1 = stdout, 2 = stderr, 3 = exit code), the little-endian length of the payload, and
the payload.  The exit code packet ends the session.

.. rubric:: Contents

* :func:`read_shell_v2`
* :func:`shell_v2_command`

"""


import logging

from . import constants
from .hidden_helpers import _ShellV2Output, to_bytes, unpack_shell_v2_header


_LOGGER = logging.getLogger(__name__)


def shell_v2_command(command):
    """Build the ``shell,v2:`` command for ``command``.

    Parameters
    ----------
    command : str, bytes
        The shell command

    Returns
    -------
    bytes
        The command to send via :meth:`Transport.send_command() <adb_host.transport.Transport.send_command>`

    """
    return b'shell,v2:' + to_bytes(command)


def read_shell_v2(transport, command, decode=True):
    """Run ``command`` and collect its output and exit code.

    Parameters
    ----------
    transport : Transport
        An open transport that is bound to the device; it is consumed by the shell session
    command : str
        The shell command that will be run
    decode : bool
        Whether to decode the output to utf8 before returning

    Returns
    -------
    ShellResult
        The command, exit code, combined output, stdout, and stderr; if the connection is closed before an exit
        code packet is received, the exit code is :const:`~adb_host.constants.EXIT_CODE_UNKNOWN`

    Raises
    ------
    adb_host.exceptions.AdbConnectionError
        The connection was closed in the middle of a packet
    adb_host.exceptions.InvalidResponseError
        The device sent a packet with an unknown ID

    """
    transport.send_command(shell_v2_command(command))

    shell_output = _ShellV2Output()
    while True:
        header = transport.read_exact(constants.SHELL_V2_HEADER_SIZE, allow_eof=True)
        if not header:
            _LOGGER.debug("shell v2 stream for %r ended without an exit code", command)
            break

        packet_id, length = unpack_shell_v2_header(header)
        if not length:
            continue

        if shell_output.add(packet_id, transport.read_exact(length)):
            break

    return shell_output.result(command, decode)
