import inspect
import logging
import os
import sys
import tempfile
import unittest

from adb_host import adb_device_async, constants, exceptions
from adb_host.adb_device_async import AdbDeviceAsync
from adb_host.hidden_helpers import ForwardInfo, ReverseInfo, ShellResult

from .async_patchers import patch_tcp_connection_async
from .async_wrapper import awaiter
from .fake_adb_server import FakeAdbServer, shell_v2_packet


# https://stackoverflow.com/a/7483862
_LOGGER = logging.getLogger('adb_host.adb_device_async')
_LOGGER.setLevel(logging.DEBUG)
_LOGGER.addHandler(logging.StreamHandler(sys.stdout))


class TestAdbDeviceAsync(unittest.TestCase):
    def setUp(self):
        self.server = FakeAdbServer([('emulator-5554', 'device', 1), ('0123456789ABCDEF', 'unauthorized', 3)])
        self.server.add_dir('/sdcard')
        self.device = AdbDeviceAsync(transport_id=1)

        self.patcher = patch_tcp_connection_async(self.server)
        self.patcher.start()

    def tearDown(self):
        self.patcher.stop()
        self.assertTrue(self.server.all_closed)

    def test_no_sync_references(self):
        """Make sure there are no references to sync code."""
        adb_device_async_source = inspect.getsource(adb_device_async)
        self.assertTrue("from .transport import" not in adb_device_async_source)
        self.assertTrue("from .filesync import" not in adb_device_async_source)
        self.assertTrue("read_shell_v2(" not in adb_device_async_source)
        self.assertTrue("FileSync(" not in adb_device_async_source)

    def test_init(self):
        self.assertIsNone(self.device.serial)
        self.assertEqual(self.device.transport_id, 1)
        self.assertEqual(self.device.selector, 'host:transport-id:1')
        self.assertEqual(repr(self.device), "AdbDeviceAsync(serial=None, transport_id=1)")

    @awaiter
    async def test_get_state(self):
        self.assertEqual(await self.device.get_state(), 'device')
        self.assertEqual(await AdbDeviceAsync(serial='0123456789ABCDEF').get_state(), 'unauthorized')

        self.assertEqual(self.server.commands, ['host-transport-id:1:get-state', 'host-serial:0123456789ABCDEF:get-state'])

    @awaiter
    async def test_get_devpath_and_features(self):
        self.assertEqual(await self.device.get_devpath(), 'usb:1-1')
        self.assertEqual(await self.device.get_features(), ['shell_v2', 'cmd', 'stat_v2'])

    @awaiter
    async def test_device_not_found(self):
        with self.assertRaises(exceptions.AdbProtocolError) as cm:
            await AdbDeviceAsync(transport_id=9).shell('ls')

        self.assertEqual(cm.exception.message, 'device not found')

    @awaiter
    async def test_shell(self):
        self.server.shell_outputs['echo hi'] = b'hi\n'

        self.assertEqual(await self.device.shell('echo hi'), 'hi')
        self.assertEqual(self.server.commands, ['host:transport-id:1', 'shell:echo hi'])

    @awaiter
    async def test_streaming_shell(self):
        self.server.shell_outputs['logcat'] = b'abcdefghij'
        self.server.stream_chunk_size = 4

        self.assertEqual([chunk async for chunk in self.device.streaming_shell('logcat')], ['abcd', 'efgh', 'ij'])
        self.assertEqual([chunk async for chunk in self.device.streaming_shell('logcat', decode=False)], [b'abcd', b'efgh', b'ij'])

    @awaiter
    async def test_shell_v2(self):
        self.server.shell_v2_outputs['ls'] = (shell_v2_packet(constants.SHELL_V2_STDOUT, b'a.txt\n') +
                                              shell_v2_packet(constants.SHELL_V2_EXIT, b'\x00'))

        self.assertEqual(await self.device.shell_v2('ls'), ShellResult('ls', 0, 'a.txt\n', 'a.txt\n', ''))

    @awaiter
    async def test_root(self):
        self.assertEqual(await self.device.root(), 'adbd is already running as root')

    @awaiter
    async def test_tcpip(self):
        self.assertEqual(await self.device.tcpip(5555), 'restarting in TCP mode port: 5555')
        self.assertEqual(self.server.commands, ['host:transport-id:1', 'tcpip:5555'])

    @awaiter
    async def test_forward(self):
        await self.device.forward('tcp:6100', 'tcp:7100')
        self.assertEqual(await self.device.forward_list(), [ForwardInfo('emulator-5554', 'tcp:6100', 'tcp:7100')])
        self.assertEqual(self.server.commands, ['host-transport-id:1:forward:tcp:6100;tcp:7100', 'host-transport-id:1:list-forward'])

        with self.assertRaises(exceptions.AdbProtocolError) as err:
            await self.device.forward('tcp:6100', 'tcp:7200', norebind=True)
        self.assertIn('cannot rebind existing socket', str(err.exception))

    @awaiter
    async def test_reverse(self):
        await self.device.reverse('tcp:8081', 'tcp:8081')
        self.assertEqual(await self.device.reverse_list(), [ReverseInfo('tcp:8081', 'tcp:8081')])
        self.assertEqual(self.server.commands, ['host:transport-id:1', 'reverse:forward:tcp:8081;tcp:8081',
                                                'host:transport-id:1', 'reverse:list-forward'])

        with self.assertRaises(exceptions.AdbProtocolError):
            await self.device.reverse('tcp:8081', 'tcp:9000', norebind=True)

    @awaiter
    async def test_create_connection(self):
        connection = await self.device.create_connection(constants.NETWORK_LOCAL_ABSTRACT, 'scrcpy')
        try:
            await connection.write(b'ping')
            self.assertEqual(await connection.read_exact(4), b'ping')
        finally:
            await connection.close()

        self.assertEqual(self.server.commands, ['host:transport-id:1', 'localabstract:scrcpy'])

    @awaiter
    async def test_create_connection_invalid_network(self):
        with self.assertRaises(ValueError):
            await self.device.create_connection('udp', 53)

    @awaiter
    async def test_filesync(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            local_path = os.path.join(tmpdir, 'local.txt')
            with open(local_path, 'wb') as f:
                f.write(b'test data')

            self.assertEqual(await self.device.push(local_path, '/sdcard', verify=True), 9)
            self.assertEqual((await self.device.stat('/sdcard/local.txt')).size, 9)
            self.assertEqual([f.filename for f in await self.device.list('/sdcard')], ['local.txt'])
            self.assertEqual(b''.join([chunk async for chunk in self.device.read('/sdcard/local.txt')]), b'test data')

            pulled_path = os.path.join(tmpdir, 'pulled.txt')
            self.assertEqual(await self.device.pull('/sdcard/local.txt', pulled_path), 9)
            with open(pulled_path, 'rb') as f:
                self.assertEqual(f.read(), b'test data')
