from contextlib import asynccontextmanager
import os
import struct
import tempfile
import unittest

from unittest.mock import patch

from adb_host import constants
from adb_host.exceptions import AdbProtocolError, DevicePathInvalidError, InvalidResponseError, PushFailedError
from adb_host.filesync_async import FileSyncAsync
from adb_host.hidden_helpers import DeviceFile
from adb_host.transport_async import TransportAsync, open_transport_async

from .async_patchers import FakeConnectionAsync, async_mock_open, patch_tcp_connection_async
from .async_wrapper import awaiter
from .fake_adb_server import FakeAdbServer, dent


def data_frame(data):
    return constants.DATA + struct.pack('<I', len(data)) + data


class TestFileSyncAsync(unittest.TestCase):
    def setUp(self):
        self.connections = []
        self.filesync = FileSyncAsync(self._open_transport)

    async def _open_transport(self):
        connection = FakeConnectionAsync(self.read_data)
        self.connections.append(connection)
        return TransportAsync(connection)

    def _set_response(self, data):
        self.read_data = b'OKAY' + data

    @awaiter
    async def test_stat(self):
        self._set_response(constants.STAT + struct.pack('<3I', 0o100644, 123, 0))

        self.assertEqual(await self.filesync.stat('/data/file'), DeviceFile('/data/file', 0o100644, 123, None))
        self.assertEqual(self.connections[0].written, b'0005sync:STAT\x0a\x00\x00\x00/data/file')
        self.assertEqual(self.connections[0].close_count, 1)

    @awaiter
    async def test_stat_invalid_response(self):
        self._set_response(b'FAIL' + struct.pack('<3I', 0, 0, 0))

        with self.assertRaises(AdbProtocolError):
            await self.filesync.stat('/data/file')

    @awaiter
    async def test_empty_path(self):
        with self.assertRaises(DevicePathInvalidError):
            await self.filesync.stat('')

        with self.assertRaises(DevicePathInvalidError):
            self.filesync.read('')

    @awaiter
    async def test_list(self):
        self._set_response(dent(0o100644, 10, 1600000001, 'b.txt') +
                           dent(0o40755, 4096, 1600000002, 'a') +
                           dent(0o100600, 0, 0, 'c.log') +
                           constants.DONE)

        self.assertEqual(await self.filesync.list('/sdcard'),
                         [DeviceFile('b.txt', 0o100644, 10, 1600000001),
                          DeviceFile('a', 0o40755, 4096, 1600000002),
                          DeviceFile('c.log', 0o100600, 0, None)])

    @awaiter
    async def test_list_any_tag_is_an_entry(self):
        self._set_response(b'XXXX' + struct.pack('<4I', 1, 2, 3, 4) + b'name' + constants.DONE)

        with self.assertLogs('adb_host.filesync_async', level='DEBUG') as logs:
            self.assertEqual(await self.filesync.list('/sdcard'), [DeviceFile('name', 1, 2, 3)])

        self.assertTrue(any("entry with ID b'XXXX'" in line for line in logs.output))

    @awaiter
    async def test_push_unexpected_status(self):
        self.read_data = b'WHAT'
        transport = await self._open_transport()

        with self.assertRaises(PushFailedError) as cm:
            await self.filesync._push(transport, _Reader(b'data'), '/data/test.bin', 0o644)

        self.assertIn('WHAT', cm.exception.message)

    @awaiter
    async def test_read(self):
        self._set_response(data_frame(b'abc') + data_frame(b'def') + constants.DONE)

        self.assertEqual([chunk async for chunk in self.filesync.read('/data/file')], [b'abc', b'def'])
        self.assertEqual(self.connections[0].close_count, 1)

    @awaiter
    async def test_read_fail(self):
        msg = b'No such file or directory'
        self._set_response(constants.FAIL + struct.pack('<I', len(msg)) + msg)

        with self.assertRaises(AdbProtocolError) as cm:
            [chunk async for chunk in self.filesync.read('/data/missing')]

        self.assertEqual(cm.exception.path, '/data/missing')
        self.assertEqual(cm.exception.message, 'No such file or directory')

    @awaiter
    async def test_read_invalid_tag(self):
        self._set_response(b'WHAT')

        with self.assertRaises(InvalidResponseError):
            [chunk async for chunk in self.filesync.read('/data/file')]

    @awaiter
    async def test_pull(self):
        self._set_response(data_frame(b'abc') + data_frame(b'def') + constants.DONE)

        with patch('aiofiles.open', async_mock_open()) as mock_open:
            self.assertEqual(await self.filesync.pull('/data/file', 'local.txt'), 6)
            self.assertEqual(mock_open.written, b'abcdef')

    @awaiter
    async def test_pull_write_fails(self):
        self._set_response(data_frame(b'abc') + data_frame(b'def') + constants.DONE)

        class _FullDisk(object):
            async def write(self, data):
                raise OSError('No space left on device')

        @asynccontextmanager
        async def full_disk_open(*args, **kwargs):
            yield _FullDisk()

        with patch('aiofiles.open', full_disk_open):
            with self.assertRaises(OSError):
                await self.filesync.pull('/data/file', 'local.txt')

        self.assertEqual(self.connections[0].close_count, 1)

    @awaiter
    async def test_push(self):
        responses = [b'OKAY' + constants.STAT + struct.pack('<3I', 0, 0, 0), b'OKAY' + constants.OKAY]

        async def open_transport():
            self.read_data = responses.pop(0)
            return await self._open_transport()

        self.filesync = FileSyncAsync(open_transport)

        with patch('aiofiles.open', async_mock_open(b'x' * 5000)):
            self.assertEqual(await self.filesync.push('local.bin', '/data/test.bin'), 5000)

        self.assertIn(data_frame(b'x' * 4096), self.connections[1].written)
        self.assertIn(data_frame(b'x' * 904), self.connections[1].written)


class _Reader(object):
    """An async file-like object."""
    def __init__(self, data):
        self.data = data

    async def read(self, size=-1):
        ret = self.data[:size]
        self.data = self.data[size:]
        return ret


class TestFileSyncAsyncServer(unittest.TestCase):
    """Run :class:`FileSyncAsync` against a :class:`FakeAdbServer`, with real local files."""
    def setUp(self):
        self.server = FakeAdbServer()
        self.server.add_dir('/sdcard')
        self.filesync = FileSyncAsync(open_transport_async)

        self.patcher = patch_tcp_connection_async(self.server)
        self.patcher.start()

        self.tmpdir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.patcher.stop()
        self.tmpdir.cleanup()
        self.assertTrue(self.server.all_closed)

    def _local_file(self, name, content):
        local_path = os.path.join(self.tmpdir.name, name)
        with open(local_path, 'wb') as f:
            f.write(content)
        return local_path

    @awaiter
    async def test_push_then_stat(self):
        for size in (0, 4095, 4096, 10000):
            content = os.urandom(size)
            local_path = self._local_file('file{}.bin'.format(size), content)
            device_path = '/sdcard/file{}.bin'.format(size)

            self.assertEqual(await self.filesync.push(local_path, device_path), size)
            self.assertEqual((await self.filesync.stat(device_path)).size, size)
            self.assertEqual(self.server.files[device_path][1], content)

    @awaiter
    async def test_push_to_directory_with_verify(self):
        local_path = self._local_file('local.txt', b'local data')

        self.assertEqual(await self.filesync.push(local_path, '/sdcard', verify=True), 10)
        self.assertEqual(self.server.files['/sdcard/local.txt'][1], b'local data')

    @awaiter
    async def test_list(self):
        self.server.add_file('/sdcard/z.txt', b'zzz')
        self.server.add_file('/sdcard/a.txt', b'a')

        self.assertEqual([f.filename for f in await self.filesync.list('/sdcard')], ['z.txt', 'a.txt'])

    @awaiter
    async def test_pull(self):
        content = os.urandom(100000)
        self.server.add_file('/sdcard/big.bin', content)
        local_path = os.path.join(self.tmpdir.name, 'big.bin')

        self.assertEqual(await self.filesync.pull('/sdcard/big.bin', local_path), len(content))

        with open(local_path, 'rb') as f:
            self.assertEqual(f.read(), content)
