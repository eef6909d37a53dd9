"""
Tests for the CameraManager.

A fake capture factory stands in for cv2.VideoCapture, so no camera is
needed.

Run with: pytest tests/test_camera.py -v
"""

import os
import sys

import cv2
import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from facerec.camera import CameraManager
from facerec.exceptions import CameraError


class FakeCapture:
    """Minimal VideoCapture lookalike."""

    def __init__(self, device_id, opened=True, frames=None):
        self.device_id = device_id
        self._opened = opened
        self.frames = list(frames) if frames is not None else None
        self.props = {}
        self.released = False

    def isOpened(self):
        return self._opened and not self.released

    def read(self):
        if self.frames is None:
            return True, np.full((480, 640, 3), self.device_id, dtype=np.uint8)
        if not self.frames:
            return False, None
        return True, self.frames.pop(0)

    def set(self, prop, value):
        self.props[prop] = value
        return True

    def get(self, prop):
        return self.props.get(prop, 0)

    def release(self):
        self.released = True


class FakeCaptureFactory:
    """Creates FakeCapture objects; only the listed devices open."""

    def __init__(self, devices):
        self.devices = set(devices)
        self.created = []

    def __call__(self, device_id):
        cap = FakeCapture(device_id, opened=device_id in self.devices)
        self.created.append(cap)
        return cap


@pytest.fixture
def factory():
    return FakeCaptureFactory([0, 2])


@pytest.fixture
def camera(factory):
    cam = CameraManager({"max_devices": 4}, capture_factory=factory)
    yield cam
    cam.stop()


class TestCameraManager:
    """Tests for camera lifecycle."""

    def test_default_settings(self):
        cam = CameraManager(capture_factory=FakeCaptureFactory([]))
        assert (cam.width, cam.height, cam.fps) == (640, 480, 30)
        assert cam.default_device_id == 0

    def test_available_devices(self, camera, factory):
        assert camera.get_available_devices() == [0, 2]
        assert all(cap.released for cap in factory.created)

    def test_is_supported(self, camera):
        assert camera.is_supported()
        assert not CameraManager(capture_factory=FakeCaptureFactory([])).is_supported()

    def test_start_applies_capture_hints(self, camera):
        cap = camera.start()

        assert camera.is_active
        assert camera.current_device_id == 0
        assert cap.props[cv2.CAP_PROP_FRAME_WIDTH] == 640
        assert cap.props[cv2.CAP_PROP_FRAME_HEIGHT] == 480
        assert cap.props[cv2.CAP_PROP_FPS] == 30

    def test_start_missing_device_raises(self, camera):
        with pytest.raises(CameraError, match="No camera found"):
            camera.start(1)
        assert not camera.is_active

    def test_start_releases_previous_stream(self, camera):
        first = camera.start(0)
        camera.start(2)

        assert first.released
        assert camera.current_device_id == 2

    def test_stop(self, camera):
        cap = camera.start()
        camera.stop()

        assert cap.released
        assert not camera.is_active
        camera.stop()

    def test_read_frame(self, camera):
        assert camera.read_frame() == (False, None)

        camera.start(2)
        ok, frame = camera.read_frame()
        assert ok
        assert frame.shape == (480, 640, 3)
        assert frame[0, 0, 0] == 2

    def test_read_frame_failure(self, factory):
        cam = CameraManager(capture_factory=lambda i: FakeCapture(i, frames=[]))
        cam.start()
        assert cam.read_frame() == (False, None)

    def test_switch_wraps_around(self, camera):
        camera.start(0)
        camera.switch()
        assert camera.current_device_id == 2

        camera.switch()
        assert camera.current_device_id == 0

    def test_switch_does_not_reopen_active_device(self, camera, factory):
        active = camera.start(0)
        factory.created.clear()

        camera.get_available_devices()
        assert 0 not in [cap.device_id for cap in factory.created]
        assert not active.released

    def test_switch_with_single_camera_raises(self):
        cam = CameraManager(capture_factory=FakeCaptureFactory([0]))
        cam.start()
        with pytest.raises(CameraError, match="No additional cameras"):
            cam.switch()
        assert cam.current_device_id == 0

    def test_get_settings(self, camera):
        assert camera.get_settings() == {"device_id": None, "active": False}

        camera.start(0)
        settings = camera.get_settings()
        assert settings["active"] is True
        assert settings["device_id"] == 0
        assert settings["width"] == 640
        assert settings["height"] == 480

    def test_context_manager(self, factory):
        with CameraManager(capture_factory=factory) as cam:
            assert cam.is_active
        assert not cam.is_active
