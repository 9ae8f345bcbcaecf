import pytest
from types import SimpleNamespace
from unittest.mock import MagicMock

from docktop.model import ContainerRecord, ImageRecord, NetworkRecord, VolumeRecord


def container(id, status="running", name=None, **kwargs):
    return ContainerRecord(id=id, name=name or f"c-{id}", created="2024-01-01 10:00",
                           status=status, image="nginx:latest", **kwargs)


def image(id, tags=None):
    tags = ["nginx:latest"] if tags is None else tags
    return ImageRecord(id=id, name=tags[0] if tags else id[:12], created="2024-01-01 10:00",
                       status="tagged" if tags else "dangling", tags=tags, size_mb=10.0)


def network(id, name=None):
    return NetworkRecord(id=id, name=name or f"net-{id}", created="-", status="local")


def volume(name):
    return VolumeRecord(id=name, name=name, created="-", status="local")


@pytest.fixture
def records():
    """Factories for resource records."""
    return SimpleNamespace(container=container, image=image, network=network, volume=volume)


@pytest.fixture
def backend():
    """Engine adapter double; configure list/inspect/lifecycle per test."""
    mock = MagicMock()
    mock.list.return_value = []
    return mock
