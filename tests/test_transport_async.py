import unittest

from adb_host import constants
from adb_host.exceptions import AdbConnectionError, AdbProtocolError, InvalidConnectionError, InvalidResponseError
from adb_host.transport_async import TransportAsync, open_transport_async

from .async_patchers import FakeConnectionAsync, patch_tcp_connection_async
from .async_wrapper import awaiter
from .fake_adb_server import FakeAdbServer, string_block
from . import patchers


class TestTransportAsync(unittest.TestCase):
    def setUp(self):
        self.connection = FakeConnectionAsync()
        self.transport = TransportAsync(self.connection)

    def test_init_invalid_connection(self):
        with self.assertRaises(InvalidConnectionError):
            TransportAsync(patchers.FakeConnection())

    @awaiter
    async def test_context_manager(self):
        async with self.transport as transport:
            self.assertIs(transport, self.transport)

        self.assertEqual(self.connection.close_count, 1)

    @awaiter
    async def test_send_command(self):
        self.connection.read_data = b'OKAY'
        await self.transport.send_command('host:version')

        self.assertEqual(self.connection.written, b'000chost:version')

    @awaiter
    async def test_check_okay_fail(self):
        self.connection.read_data = b'FAIL' + string_block('no devices')

        with self.assertRaises(AdbProtocolError) as cm:
            await self.transport.send_command('host:transport-any')

        self.assertEqual(cm.exception.message, 'no devices')

    @awaiter
    async def test_check_okay_unexpected(self):
        self.connection.read_data = b'WHAT'

        with self.assertRaises(InvalidResponseError):
            await self.transport.check_okay()

    @awaiter
    async def test_read_string_block(self):
        self.connection.read_data = b'0000'
        self.assertEqual(await self.transport.read_string_block(), '')

        self.connection.read_data = b'0005abc  '
        self.assertEqual(await self.transport.read_string_block(), 'abc')

        self.connection.read_data = b'xyz1abc'
        with self.assertRaises(InvalidResponseError):
            await self.transport.read_string_block()

        self.connection.read_data = b'0005abc'
        with self.assertRaises(AdbConnectionError):
            await self.transport.read_string_block()

    @awaiter
    async def test_request_with_fully(self):
        self.connection.read_data = b'OKAYline 1\nline 2\n\n'

        self.assertEqual(await self.transport.request_with_fully('shell:ls'), 'line 1\nline 2')

    @awaiter
    async def test_request_with_stream(self):
        self.connection.read_data = b'OKAY'
        self.connection.chunks = [b'ab', b'cd']

        stream = await self.transport.request_with_stream('shell:logcat')
        self.assertEqual([chunk async for chunk in stream], [b'ab', b'cd'])
        self.assertEqual(self.connection.close_count, 1)

    @awaiter
    async def test_request_with_stream_closed_early(self):
        self.connection.read_data = b'OKAY'
        self.connection.chunks = [b'ab', b'cd']

        stream = await self.transport.request_with_stream('shell:logcat')
        self.assertEqual(await stream.__anext__(), b'ab')

        await stream.aclose()
        self.assertEqual(self.connection.close_count, 1)

    @awaiter
    async def test_request(self):
        self.connection.read_data = b'OKAY' + string_block('0029')
        self.assertEqual(await self.transport.request('host:version', constants.RESPONSE_STRING_BLOCK), '0029')

        self.connection.read_data = b'OKAYoutput\n'
        self.assertEqual(await self.transport.request('shell:echo output', constants.RESPONSE_FULLY), 'output')

        self.connection.read_data = b'OKAY'
        self.connection.chunks = [b'ab']
        stream = await self.transport.request('shell:logcat', constants.RESPONSE_STREAM)
        self.assertEqual([chunk async for chunk in stream], [b'ab'])

        with self.assertRaises(ValueError):
            await self.transport.request('host:version', 'lines')

    @awaiter
    async def test_open_transport_async(self):
        server = FakeAdbServer()

        with patch_tcp_connection_async(server):
            async with await open_transport_async('127.0.0.1', 5037, 1.) as transport:
                self.assertEqual(await transport.request_with_string_block('host:devices-l'), server.devices_l().rstrip())

        self.assertTrue(server.all_closed)
