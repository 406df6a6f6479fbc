"""External collaborators: frame sources, credential stores, device gates"""
from .frame_source import FrameSource, LatestFrame, CameraFrameSource, StaticFrameSource
from .credential_store import CredentialStore, InMemoryCredentialStore, FileCredentialStore
from .device_gate import DeviceCredentialGate, gate_message

__all__ = [
    'FrameSource',
    'LatestFrame',
    'CameraFrameSource',
    'StaticFrameSource',
    'CredentialStore',
    'InMemoryCredentialStore',
    'FileCredentialStore',
    'DeviceCredentialGate',
    'gate_message'
]
