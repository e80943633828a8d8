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

"""Implement the :class:`AdbClient` class, which sends ``host:`` commands to the ADB server.

.. rubric:: Contents

* :class:`AdbClient`

    * :meth:`AdbClient._request`
    * :meth:`AdbClient.connect`
    * :meth:`AdbClient.device`
    * :meth:`AdbClient.devices`
    * :meth:`AdbClient.disconnect`
    * :meth:`AdbClient.version`

"""


import logging

from . import constants
from . import exceptions
from .adb_device import AdbDevice
from .hidden_helpers import parse_devices_list
from .transport import open_transport


_LOGGER = logging.getLogger(__name__)


class AdbClient(object):
    """Send ``host:`` commands to the ADB server.

    Parameters
    ----------
    host : str
        The address of the ADB server
    port : int
        The port of the ADB server
    default_timeout_s : float, None
        Default timeout in seconds for connecting, reading, and writing

    """
    def __init__(self, host=constants.DEFAULT_HOST, port=constants.DEFAULT_PORT, default_timeout_s=constants.DEFAULT_TIMEOUT_S):
        self._host = host
        self._port = port
        self._default_timeout_s = default_timeout_s

    def _request(self, cmd, timeout_s=None):
        """Open a transport, send ``cmd``, and return the string block that the server responds with."""
        timeout_s = timeout_s if timeout_s is not None else self._default_timeout_s
        with open_transport(self._host, self._port, timeout_s) as transport:
            return transport.request_with_string_block(cmd)

    def version(self):
        """Get the version of the ADB server.

        Returns
        -------
        int
            The version, e.g. ``41``

        Raises
        ------
        adb_host.exceptions.InvalidResponseError
            The server's response is not a hex number

        """
        response = self._request('host:version')
        try:
            return int(response, 16)
        except ValueError:
            raise exceptions.InvalidResponseError('Invalid ADB server version: {!r}'.format(response))

    def devices(self):
        """Get the devices that are connected to the ADB server.

        The result is a snapshot; call this method again to refresh it.

        Returns
        -------
        tuple[DeviceInfo]
            The serial, state, transport ID, product, model, and device name of each device

        """
        devices = parse_devices_list(self._request('host:devices-l'))
        _LOGGER.debug("%d device(s) connected to %s:%d", len(devices), self._host, self._port)
        return devices

    def device(self, serial=None, transport_id=None, devices=None):
        """Get an :class:`~adb_host.adb_device.AdbDevice` for a connected device.

        Parameters
        ----------
        serial : str, None
            The serial number of the device
        transport_id : int, None
            The transport ID of the device
        devices : tuple[DeviceInfo], None
            A snapshot from :meth:`AdbClient.devices`; if it is ``None``, a new snapshot is taken

        Returns
        -------
        AdbDevice
            The device with the given serial number or transport ID, or the first device if neither is provided

        Raises
        ------
        adb_host.exceptions.DeviceNotFoundError
            No device matches

        """
        if devices is None:
            devices = self.devices()

        if serial is not None:
            matches = [info for info in devices if info.serial == serial]
        elif transport_id is not None:
            matches = [info for info in devices if info.transport_id == transport_id]
        else:
            matches = list(devices)

        if not matches:
            raise exceptions.DeviceNotFoundError('Device not found (serial={!r}, transport_id={!r})'.format(serial, transport_id))

        info = matches[0]
        return AdbDevice(self._host, self._port, self._default_timeout_s, serial=info.serial, transport_id=info.transport_id)

    def connect(self, address, timeout_s=None):
        """Tell the ADB server to connect to a device over TCP/IP.

        Parameters
        ----------
        address : str
            The address of the device, e.g. ``'192.168.0.10:5555'``
        timeout_s : float, None
            Timeout in seconds for connecting, reading, and writing

        Returns
        -------
        str
            The server's response, e.g. ``'connected to 192.168.0.10:5555'``

        """
        return self._request('host:connect:{}'.format(address), timeout_s)

    def disconnect(self, address):
        """Tell the ADB server to disconnect from a device.

        Returns
        -------
        str
            The server's response

        """
        return self._request('host:disconnect:{}'.format(address))
