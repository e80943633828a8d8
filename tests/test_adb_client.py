import unittest

from unittest.mock import patch

from adb_host import exceptions
from adb_host.adb_client import AdbClient
from adb_host.adb_device import AdbDevice
from adb_host.hidden_helpers import DeviceInfo

from . import patchers
from .fake_adb_server import FakeAdbServer


class TestAdbClient(unittest.TestCase):
    def setUp(self):
        self.server = FakeAdbServer([('emulator-5554', 'device', 1), ('192.168.0.10:5555', 'offline', 4)])
        self.client = AdbClient('127.0.0.1', 5037, 1.)

        self.patcher = patchers.patch_tcp_connection(self.server)
        self.patcher.start()

    def tearDown(self):
        self.patcher.stop()
        self.assertTrue(self.server.all_closed)

    def test_version(self):
        self.assertEqual(self.client.version(), 41)
        self.assertEqual(self.server.commands, ['host:version'])

    def test_version_invalid(self):
        with patch('adb_host.adb_client.AdbClient._request', return_value='zz'):
            with self.assertRaises(exceptions.InvalidResponseError):
                self.client.version()

    def test_devices(self):
        self.assertEqual(self.client.devices(),
                         (DeviceInfo('emulator-5554', 'device', 1, 'sdk', 'Pixel', 'emu'),
                          DeviceInfo('192.168.0.10:5555', 'offline', 4, 'sdk', 'Pixel', 'emu')))

    def test_devices_snapshot(self):
        devices = self.client.devices()
        self.server.devices.append(('emulator-5556', 'device', 2))

        self.assertEqual(len(devices), 2)
        self.assertEqual(len(self.client.devices()), 3)

    def test_devices_empty(self):
        self.server.devices = []
        self.assertEqual(self.client.devices(), ())

    def test_device(self):
        device = self.client.device()
        self.assertIsInstance(device, AdbDevice)
        self.assertEqual((device.serial, device.transport_id), ('emulator-5554', 1))

        device = self.client.device(serial='192.168.0.10:5555')
        self.assertEqual((device.serial, device.transport_id), ('192.168.0.10:5555', 4))

        device = self.client.device(transport_id=4)
        self.assertEqual(device.serial, '192.168.0.10:5555')

        self.assertEqual(self.server.commands, ['host:devices-l'] * 3)

    def test_device_from_snapshot(self):
        devices = self.client.devices()
        self.assertEqual(self.client.device(transport_id=1, devices=devices).serial, 'emulator-5554')
        self.assertEqual(self.server.commands, ['host:devices-l'])

    def test_device_not_found(self):
        with self.assertRaises(exceptions.DeviceNotFoundError):
            self.client.device(serial='missing')

        with self.assertRaises(exceptions.DeviceNotFoundError):
            self.client.device(transport_id=9)

        self.server.devices = []
        with self.assertRaises(exceptions.DeviceNotFoundError):
            self.client.device()

    def test_device_shell(self):
        self.server.shell_outputs['getprop ro.serialno'] = b'EMULATOR\n'

        self.assertEqual(self.client.device().shell('getprop ro.serialno'), 'EMULATOR')
        self.assertEqual(self.server.commands, ['host:devices-l', 'host:transport-id:1', 'shell:getprop ro.serialno'])

    def test_connect_disconnect(self):
        self.assertEqual(self.client.connect('192.168.0.10:5555'), 'connected to 192.168.0.10:5555')
        self.assertEqual(self.client.disconnect('192.168.0.10:5555'), 'disconnected 192.168.0.10:5555')
        self.assertEqual(self.server.commands, ['host:connect:192.168.0.10:5555', 'host:disconnect:192.168.0.10:5555'])

    def test_server_not_running(self):
        with patch('adb_host.transport.TcpConnection') as tcp_connection:
            tcp_connection.return_value.connect.side_effect = exceptions.AdbConnectionError('Connection refused')

            with self.assertRaises(exceptions.AdbConnectionError):
                self.client.version()
