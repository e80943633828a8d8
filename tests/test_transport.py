import unittest

from unittest.mock import patch

from adb_host import constants
from adb_host.exceptions import AdbConnectionError, AdbProtocolError, InvalidConnectionError, InvalidResponseError
from adb_host.transport import Transport, open_transport

from . import patchers
from .fake_adb_server import FakeAdbServer, string_block


class TestTransport(unittest.TestCase):
    def setUp(self):
        self.connection = patchers.FakeConnection()
        self.transport = Transport(self.connection)

    def test_init_invalid_connection(self):
        with self.assertRaises(InvalidConnectionError):
            Transport(123)

    def test_connection(self):
        self.assertIs(self.transport.connection, self.connection)

    def test_context_manager(self):
        with self.transport as transport:
            self.assertIs(transport, self.transport)

        self.assertEqual(self.connection.close_count, 1)

    def test_send_command(self):
        self.connection.read_data = b'OKAY'
        self.transport.send_command('host:version')

        self.assertEqual(self.connection.written, b'000chost:version')

    def test_send_command_bytes(self):
        self.connection.read_data = b'OKAY'
        self.transport.send_command(b'shell:ls')

        self.assertEqual(self.connection.written, b'0008shell:ls')

    def test_send_command_too_long(self):
        with self.assertRaises(ValueError):
            self.transport.send_command('x' * 0x10000)

        self.assertEqual(self.connection.written, b'')

    def test_check_okay_fail(self):
        """A ``b'FAIL'`` status is a server-reported error, not a connection error."""
        self.connection.read_data = b'FAIL' + string_block('no devices')

        with self.assertRaises(AdbProtocolError) as cm:
            self.transport.send_command('host:transport-any')

        self.assertNotIsInstance(cm.exception, AdbConnectionError)
        self.assertEqual(cm.exception.message, 'no devices')
        self.assertEqual(str(cm.exception), 'no devices')

    def test_check_okay_unexpected(self):
        self.connection.read_data = b'WHAT'

        with self.assertRaises(InvalidResponseError):
            self.transport.check_okay()

    def test_check_okay_eof(self):
        self.connection.read_data = b'OK'

        with self.assertRaises(AdbConnectionError):
            self.transport.check_okay()

    def test_read_string_block(self):
        self.connection.read_data = b'000Chello world\n'
        self.assertEqual(self.transport.read_string_block(), 'hello world')

    def test_read_string_block_lowercase_hex(self):
        self.connection.read_data = b'000ahello worl'
        self.assertEqual(self.transport.read_string_block(), 'hello worl')

    def test_read_string_block_empty(self):
        self.connection.read_data = b'0000OKAY'
        self.assertEqual(self.transport.read_string_block(), '')

        # Nothing beyond the header was read
        self.assertEqual(self.connection.read_data, b'OKAY')

    def test_read_string_block_invalid_header(self):
        for header in (b'00g1', b'zzzz', b' 001', b'0x01'):
            self.connection.read_data = header + b'data'
            with self.assertRaises(InvalidResponseError):
                self.transport.read_string_block()

    def test_read_string_block_short(self):
        self.connection.read_data = b'0010short'

        with self.assertRaises(AdbConnectionError):
            self.transport.read_string_block()

    def test_request_with_string_block(self):
        self.connection.read_data = b'OKAY' + string_block('0029')

        self.assertEqual(self.transport.request_with_string_block('host:version'), '0029')

    def test_request_with_fully(self):
        self.connection.read_data = b'OKAYline 1\nline 2\n\n'

        self.assertEqual(self.transport.request_with_fully('shell:ls'), 'line 1\nline 2')

    def test_request_with_stream(self):
        self.connection.read_data = b'OKAY'
        self.connection.chunks = [b'ab', b'cd']

        stream = self.transport.request_with_stream('shell:logcat')
        self.assertEqual(self.connection.written, b'000cshell:logcat')
        self.assertEqual(self.connection.close_count, 0)

        self.assertEqual(list(stream), [b'ab', b'cd'])
        self.assertEqual(self.connection.close_count, 1)

    def test_request_with_stream_closed_early(self):
        self.connection.read_data = b'OKAY'
        self.connection.chunks = [b'ab', b'cd']

        stream = self.transport.request_with_stream('shell:logcat')
        self.assertEqual(next(stream), b'ab')

        stream.close()
        self.assertEqual(self.connection.close_count, 1)

    def test_request(self):
        self.connection.read_data = b'OKAY' + string_block('0029')
        self.assertEqual(self.transport.request('host:version', constants.RESPONSE_STRING_BLOCK), '0029')

        self.connection.read_data = b'OKAYoutput\n'
        self.assertEqual(self.transport.request('shell:echo output', constants.RESPONSE_FULLY), 'output')

        self.connection.read_data = b'OKAY'
        self.connection.chunks = [b'ab']
        self.assertEqual(list(self.transport.request('shell:logcat', constants.RESPONSE_STREAM)), [b'ab'])

    def test_request_invalid_response_type(self):
        with self.assertRaises(ValueError):
            self.transport.request('host:version', 'lines')

    def test_write_and_read_exact(self):
        self.connection.read_data = b'DATA'

        self.transport.write(b'STAT')
        self.assertEqual(self.connection.written, b'STAT')
        self.assertEqual(self.transport.read_exact(4), b'DATA')
        self.assertEqual(self.transport.read_exact(4, allow_eof=True), b'')


class TestOpenTransport(unittest.TestCase):
    def test_open_transport(self):
        server = FakeAdbServer()

        with patchers.patch_tcp_connection(server):
            with open_transport('127.0.0.1', 5037, 1.) as transport:
                self.assertEqual(transport.request_with_string_block('host:version'), '0029')

        self.assertEqual(server.commands, ['host:version'])
        self.assertTrue(server.all_closed)

    def test_open_transport_connect_error(self):
        with patch('adb_host.transport.TcpConnection.connect', side_effect=AdbConnectionError):
            with self.assertRaises(AdbConnectionError):
                open_transport('127.0.0.1', 5037, 1.)
