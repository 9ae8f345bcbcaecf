"""
Data models shared by the store, the dispatcher, the scheduler and the UI.

Resource records are plain dataclasses built by the backend from engine
responses. They are treated as values: the store replaces them wholesale on
every merge and never edits engine-owned fields in place.

Data Classes:
  - ContainerRecord / ImageRecord / NetworkRecord / VolumeRecord: one per kind
  - PortBinding: a published container port
  - CommandRequest: an in-flight lifecycle call
  - CommandResult / RefreshResult: messages posted back to the event loop
  - ListView / DetailView: entries of the navigation stack
  - DashboardView: read-only snapshot handed to the renderer

Enums:
  - ResourceKind, Operation, Action, FilterMode
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union


class ResourceKind(str, Enum):
    CONTAINERS = "containers"
    IMAGES = "images"
    NETWORKS = "networks"
    VOLUMES = "volumes"

    @property
    def singular(self) -> str:
        return self.value[:-1]


class Operation(str, Enum):
    START = "start"
    STOP = "stop"
    RESTART = "restart"
    KILL = "kill"
    REMOVE = "remove"
    FORCE_REMOVE = "force-remove"  # images and volumes only


class FilterMode(str, Enum):
    SHOW_ALL = "show-all"
    RUNNING_ONLY = "running-only"


class Action(Enum):
    """Semantic actions produced by the keymap."""
    MOVE_UP = "move_up"
    MOVE_DOWN = "move_down"
    TOGGLE_FILTER = "toggle_filter"
    START = "start"
    STOP = "stop"
    RESTART = "restart"
    KILL = "kill"
    REMOVE = "remove"
    FORCE_REMOVE = "force_remove"
    OPEN = "open"
    BACK = "back"
    SHOW_CONTAINERS = "show_containers"
    SHOW_IMAGES = "show_images"
    SHOW_NETWORKS = "show_networks"
    SHOW_VOLUMES = "show_volumes"

    @property
    def operation(self) -> Optional[Operation]:
        return LIFECYCLE_ACTIONS.get(self)

    @property
    def kind(self) -> Optional[ResourceKind]:
        return KIND_ACTIONS.get(self)


LIFECYCLE_ACTIONS = {
    Action.START: Operation.START,
    Action.STOP: Operation.STOP,
    Action.RESTART: Operation.RESTART,
    Action.KILL: Operation.KILL,
    Action.REMOVE: Operation.REMOVE,
    Action.FORCE_REMOVE: Operation.FORCE_REMOVE,
}

KIND_ACTIONS = {
    Action.SHOW_CONTAINERS: ResourceKind.CONTAINERS,
    Action.SHOW_IMAGES: ResourceKind.IMAGES,
    Action.SHOW_NETWORKS: ResourceKind.NETWORKS,
    Action.SHOW_VOLUMES: ResourceKind.VOLUMES,
}

REMOVALS = (Operation.REMOVE, Operation.FORCE_REMOVE)

# Kinds the engine lets us remove while still in use
FORCEABLE_KINDS = (ResourceKind.IMAGES, ResourceKind.VOLUMES)

# Container lifecycle states as reported by the engine
RUNNING_STATES = ("running",)
ACTIVE_STATES = ("running", "paused", "restarting")
STOPPED_STATES = ("created", "exited", "dead")


@dataclass
class PortBinding:
    private_port: int
    public_port: Optional[int] = None
    protocol: str = "tcp"

    def __str__(self) -> str:
        if self.public_port is None:
            return f"{self.private_port}/{self.protocol}"
        return f"{self.private_port}:{self.public_port}/{self.protocol}"


@dataclass
class ContainerRecord:
    id: str
    name: str
    created: str
    status: str  # created, restarting, running, removing, paused, exited, dead
    image: str
    ports: List[PortBinding] = field(default_factory=list)
    details: Dict[str, str] = field(default_factory=dict)
    kind: ResourceKind = field(default=ResourceKind.CONTAINERS, init=False)

    @property
    def is_running(self) -> bool:
        return self.status in RUNNING_STATES


@dataclass
class ImageRecord:
    id: str
    name: str
    created: str
    status: str  # tagged, dangling
    tags: List[str] = field(default_factory=list)
    size_mb: float = 0.0
    details: Dict[str, str] = field(default_factory=dict)
    kind: ResourceKind = field(default=ResourceKind.IMAGES, init=False)

    @property
    def is_running(self) -> bool:
        return False


@dataclass
class NetworkRecord:
    id: str
    name: str
    created: str
    status: str  # scope
    driver: str = "bridge"
    subnet: str = "n/a"
    details: Dict[str, str] = field(default_factory=dict)
    kind: ResourceKind = field(default=ResourceKind.NETWORKS, init=False)

    @property
    def is_running(self) -> bool:
        return False


@dataclass
class VolumeRecord:
    id: str  # volumes are addressed by name
    name: str
    created: str
    status: str  # scope
    driver: str = "local"
    mountpoint: str = "n/a"
    details: Dict[str, str] = field(default_factory=dict)
    kind: ResourceKind = field(default=ResourceKind.VOLUMES, init=False)

    @property
    def is_running(self) -> bool:
        return False


ResourceRecord = Union[ContainerRecord, ImageRecord, NetworkRecord, VolumeRecord]


@dataclass
class CommandRequest:
    kind: ResourceKind
    identifier: str
    operation: Operation
    sequence: int


@dataclass
class CommandResult:
    request: CommandRequest
    record: Optional[ResourceRecord] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# A refresh channel is either a kind (full listing) or (kind, id) for a detail inspect
Channel = Union[ResourceKind, Tuple[ResourceKind, str]]


@dataclass
class RefreshResult:
    channel: Channel
    token: int
    records: Optional[List[ResourceRecord]] = None
    error: Optional[Exception] = None

    @property
    def kind(self) -> ResourceKind:
        if isinstance(self.channel, tuple):
            return self.channel[0]
        return self.channel

    @property
    def is_detail(self) -> bool:
        return isinstance(self.channel, tuple)


@dataclass(frozen=True)
class ListView:
    pass


@dataclass(frozen=True)
class DetailView:
    kind: ResourceKind
    identifier: str


ViewEntry = Union[ListView, DetailView]


@dataclass
class DashboardView:
    kind: ResourceKind = ResourceKind.CONTAINERS
    records: List[ResourceRecord] = field(default_factory=list)
    cursor: Optional[int] = None
    view: ViewEntry = field(default_factory=ListView)
    detail: Optional[ResourceRecord] = None
    message: str = ""
    filter_mode: FilterMode = FilterMode.SHOW_ALL
    pending: Tuple[str, ...] = ()
    version: int = 0
