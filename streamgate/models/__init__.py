"""StreamGate Database Models."""

from streamgate.models.device import Device, DeviceAccess, DeviceUpstream

__all__ = [
    "Device",
    "DeviceAccess",
    "DeviceUpstream",
]
