"""
Pytest configuration and shared fixtures.
"""

import logging
import struct

import pytest

from settings import ModelTransform, SlicerSettings
from stl_parser import Triangle

CUBE_SIDE = 10.0


def _corner(i, j, k):
    return (i * CUBE_SIDE, j * CUBE_SIDE, k * CUBE_SIDE)


def make_cube_triangles():
    """Axis-aligned cube from the origin to (10, 10, 10), two triangles per face."""
    faces = [
        # bottom, top
        ((0, 0, 0), (1, 0, 0), (1, 1, 0)), ((0, 0, 0), (1, 1, 0), (0, 1, 0)),
        ((0, 0, 1), (1, 0, 1), (1, 1, 1)), ((0, 0, 1), (1, 1, 1), (0, 1, 1)),
        # front, back
        ((0, 0, 0), (1, 0, 0), (1, 0, 1)), ((0, 0, 0), (1, 0, 1), (0, 0, 1)),
        ((0, 1, 0), (1, 1, 0), (1, 1, 1)), ((0, 1, 0), (1, 1, 1), (0, 1, 1)),
        # left, right
        ((0, 0, 0), (0, 1, 0), (0, 1, 1)), ((0, 0, 0), (0, 1, 1), (0, 0, 1)),
        ((1, 0, 0), (1, 1, 0), (1, 1, 1)), ((1, 0, 0), (1, 1, 1), (1, 0, 1)),
    ]
    return [
        Triangle((0.0, 0.0, 0.0), _corner(*a), _corner(*b), _corner(*c))
        for a, b, c in faces
    ]


def make_tetrahedron_triangles():
    o, x, y, z = (0.0, 0.0, 0.0), (10.0, 0.0, 0.0), (0.0, 10.0, 0.0), (0.0, 0.0, 10.0)
    return [
        Triangle((0.0, 0.0, -1.0), o, y, x),
        Triangle((0.0, -1.0, 0.0), o, x, z),
        Triangle((-1.0, 0.0, 0.0), o, z, y),
        Triangle((0.577, 0.577, 0.577), x, y, z),
    ]


def build_stl(triangles, declared_count=None):
    """Encode triangles as a binary STL buffer."""
    count = len(triangles) if declared_count is None else declared_count
    data = bytearray(b"test mesh".ljust(80, b"\x00"))
    data += struct.pack("<I", count)
    for triangle in triangles:
        for vector in (triangle.normal, triangle.v1, triangle.v2, triangle.v3):
            data += struct.pack("<fff", *vector)
        data += struct.pack("<H", 0)
    return bytes(data)


@pytest.fixture
def cube_triangles():
    return make_cube_triangles()


@pytest.fixture
def tetrahedron_triangles():
    return make_tetrahedron_triangles()


@pytest.fixture
def cube_stl():
    return build_stl(make_cube_triangles())


@pytest.fixture
def settings():
    return SlicerSettings()


@pytest.fixture
def identity_transform():
    return ModelTransform()


@pytest.fixture
def cube_stl_file(tmp_path, cube_stl):
    path = tmp_path / "cube.stl"
    path.write_bytes(cube_stl)
    return path


@pytest.fixture(autouse=True)
def restore_root_logging():
    """The CLI reconfigures the root logger; undo that after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
