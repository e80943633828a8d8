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

"""Run a command with the shell v2 protocol.

* :func:`read_shell_v2_async`

"""


import logging

from . import constants
from .hidden_helpers import _ShellV2Output, unpack_shell_v2_header
from .shell_v2 import shell_v2_command


_LOGGER = logging.getLogger(__name__)


async def read_shell_v2_async(transport, command, decode=True):
    """Run ``command`` and collect its output and exit code.

    See :func:`adb_host.shell_v2.read_shell_v2`.

    Parameters
    ----------
    transport : TransportAsync
        An open transport that is bound to the device; it is consumed by the shell session
    command : str
        The shell command that will be run
    decode : bool
        Whether to decode the output to utf8 before returning

    Returns
    -------
    ShellResult
        The command, exit code, combined output, stdout, and stderr

    """
    await transport.send_command(shell_v2_command(command))

    shell_output = _ShellV2Output()
    while True:
        header = await transport.read_exact(constants.SHELL_V2_HEADER_SIZE, allow_eof=True)
        if not header:
            _LOGGER.debug("shell v2 stream for %r ended without an exit code", command)
            break

        packet_id, length = unpack_shell_v2_header(header)
        if not length:
            continue

        if shell_output.add(packet_id, await transport.read_exact(length)):
            break

    return shell_output.result(command, decode)
