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

"""Constants used throughout the code.

"""


#: Address of the ADB server
DEFAULT_HOST = '127.0.0.1'

#: Port of the ADB server
DEFAULT_PORT = 5037

#: Default timeout in seconds for connecting, reading, and writing
DEFAULT_TIMEOUT_S = 5.

#: Number of bytes requested per ``recv`` when reading until EOF or streaming
READ_CHUNK_SIZE = 8192

#: Interval in seconds between readability checks in :meth:`adb_host.connection.tcp_connection.TcpConnection.read_stream`
STREAM_POLL_INTERVAL_S = 0.2

#: Maximum value that fits in the 4 hex digit length header of a command or string block
MAX_COMMAND_LENGTH = 0xFFFF

# Status words for the host command protocol
OKAY = b'OKAY'
FAIL = b'FAIL'

#: Response types for :meth:`adb_host.transport.Transport.request`
RESPONSE_STRING_BLOCK = 'string_block'
RESPONSE_FULLY = 'fully'
RESPONSE_STREAM = 'stream'

RESPONSE_TYPES = (RESPONSE_STRING_BLOCK, RESPONSE_FULLY, RESPONSE_STREAM)

# FileSync request and response IDs
STAT = b'STAT'
LIST = b'LIST'
SEND = b'SEND'
RECV = b'RECV'
DENT = b'DENT'
DATA = b'DATA'
DONE = b'DONE'

FILESYNC_REQUEST_IDS = (STAT, LIST, SEND, RECV)

#: A FileSync request is a 4 byte ID followed by the little-endian length of the path
FILESYNC_REQUEST_FORMAT = b'<4sI'

#: A ``b'STAT'`` response is the ID followed by ``(mode, size, mtime)``
FILESYNC_STAT_FORMAT = b'<3I'

#: A ``b'LIST'`` entry is ``(mode, size, mtime, namelen)`` followed by ``namelen`` bytes
FILESYNC_DENT_FORMAT = b'<4I'

#: ``b'DATA'``, ``b'DONE'``, and ``b'FAIL'`` frames carry a single little-endian ``uint32``
FILESYNC_UINT32_FORMAT = b'<I'

#: Maximum amount of data in a ``b'DATA'`` packet sent by :meth:`adb_host.filesync.FileSync.push`
MAX_PUSH_DATA = 4096

#: Largest declared payload accepted in a FileSync ``b'DATA'``, ``b'FAIL'``, or directory entry name
MAX_SYNC_PAYLOAD = 1024 * 1024

#: Regular file bit that must be OR'ed into the mode of a ``b'SEND'`` request
S_IFREG = 0x8000

#: Directory bit in ``st_mode``
S_IFDIR = 0x4000

#: Default permissions for :meth:`adb_host.filesync.FileSync.push`
DEFAULT_PUSH_MODE = 0o755

# Shell v2 packet IDs
SHELL_V2_STDOUT = 1
SHELL_V2_STDERR = 2
SHELL_V2_EXIT = 3

#: A shell v2 packet header is a 1 byte ID followed by the little-endian payload length
SHELL_V2_HEADER_FORMAT = b'<BI'

#: Size of the shell v2 packet header
SHELL_V2_HEADER_SIZE = 5

#: Exit code reported when the shell v2 stream ends without an exit packet
EXIT_CODE_UNKNOWN = 255

# Socket namespaces for :meth:`adb_host.adb_device.AdbDevice.create_connection`
NETWORK_TCP = 'tcp'
NETWORK_UNIX = 'unix'
NETWORK_LOCAL_ABSTRACT = 'localabstract'
NETWORK_LOCAL_FILESYSTEM = 'localfilesystem'
NETWORK_LOCAL = 'local'
NETWORK_DEV = 'dev'
NETWORK_LOCAL_RESERVED = 'localreserved'

NETWORKS = (NETWORK_TCP, NETWORK_UNIX, NETWORK_LOCAL_ABSTRACT, NETWORK_LOCAL_FILESYSTEM, NETWORK_LOCAL, NETWORK_DEV, NETWORK_LOCAL_RESERVED)
