"""
Docker API wrapper used as the engine client adapter.

This module provides a thin, synchronous interface to the container engine via
the docker-py library. The core never calls it directly from the event loop:
every call runs in a worker thread (asyncio.to_thread) with a timeout.

Operations:
  - ping(): verify the engine answers (used once at startup)
  - list(kind): current snapshot of one resource kind
  - inspect(kind, id): one resource with its detail fields
  - lifecycle(operation, kind, id): start/stop/restart/kill/remove

Error Handling:
  Every public method is wrapped with @engine_call, which translates docker-py
  and requests exceptions into the EngineError taxonomy:
  - connection refused / missing socket -> EngineUnreachableError
  - 401/403 or socket permission errors -> PermissionDeniedError
  - 404                                 -> NotFoundError
  - 409                                 -> ConflictError
  - read/connect timeouts               -> EngineTimeoutError
  Unknown exceptions propagate unchanged.

Dependencies:
  - docker>=7.0.0 (docker-py client)
  - requests (transport errors raised by docker-py)
"""

import asyncio
import docker
import docker.errors
import requests.exceptions
import logging
import functools
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional
from .errors import (
    EngineError, EngineUnreachableError, PermissionDeniedError, NotFoundError,
    ConflictError, EngineTimeoutError,
)
from .model import (
    ResourceKind, Operation, ResourceRecord, ContainerRecord, ImageRecord,
    NetworkRecord, VolumeRecord, PortBinding, REMOVALS, FORCEABLE_KINDS,
)

logger = logging.getLogger(__name__)


def translate_error(exc: BaseException) -> Optional[EngineError]:
    """Map a docker-py / transport exception onto the EngineError taxonomy."""
    if isinstance(exc, EngineError):
        return exc
    if isinstance(exc, docker.errors.NotFound):
        return NotFoundError(str(exc.explanation or exc))
    if isinstance(exc, docker.errors.APIError):
        status = exc.status_code
        message = str(exc.explanation or exc)
        if status == 409:
            return ConflictError(message)
        if status in (401, 403):
            return PermissionDeniedError(message)
        if status == 404:
            return NotFoundError(message)
        return EngineError(message)
    if isinstance(exc, requests.exceptions.Timeout):
        return EngineTimeoutError(str(exc))
    if isinstance(exc, PermissionError):
        return PermissionDeniedError(str(exc))
    if isinstance(exc, (requests.exceptions.ConnectionError, docker.errors.DockerException)):
        # The socket permission problem surfaces wrapped in a ConnectionError
        if "Permission denied" in str(exc):
            return PermissionDeniedError(str(exc))
        return EngineUnreachableError(str(exc))
    return None


def engine_call(func: Callable) -> Callable:
    """
    Decorator for engine methods that normalizes failures.

    Known engine/transport exceptions are logged and re-raised as EngineError
    subclasses so callers only ever handle one taxonomy.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> Any:
        try:
            return func(*args, **kwargs)
        except EngineError:
            raise
        except Exception as e:
            error = translate_error(e)
            if error is None:
                raise
            logger.warning(f"Engine call {func.__name__} failed: {error.status_text()}", exc_info=True)
            raise error from e
    return wrapper


def _format_created(value: Any) -> str:
    if isinstance(value, (int, float)) and value > 0:
        return datetime.fromtimestamp(value, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")
    if isinstance(value, str) and value:
        return value[:16].replace("T", " ")
    return "-"


def _short_id(identifier: str) -> str:
    return identifier.split(":")[-1][:12]


def _join(values: Optional[Iterable[Any]], sep: str = "\n") -> str:
    if not values:
        return "-"
    return sep.join(str(v) for v in values)


def _ports_from_summary(ports: List[Dict[str, Any]]) -> List[PortBinding]:
    """Published ports of a container summary, sorted and de-duplicated."""
    seen = set()
    bindings = []
    for p in ports:
        if p.get("PublicPort") is None:
            continue
        key = (p.get("PrivatePort", 0), p["PublicPort"], p.get("Type", "tcp"))
        if key in seen:
            continue
        seen.add(key)
        bindings.append(PortBinding(private_port=key[0], public_port=key[1], protocol=key[2]))
    bindings.sort(key=lambda b: (b.private_port, b.public_port or 0))
    return bindings


def _ports_from_inspect(ports: Optional[Dict[str, Any]]) -> List[PortBinding]:
    """Published ports from NetworkSettings.Ports ({"80/tcp": [{"HostPort": "8080"}]})."""
    seen = set()
    bindings = []
    for port, hosts in (ports or {}).items():
        private, _, protocol = port.partition("/")
        for host in hosts or []:
            public = host.get("HostPort")
            if not public:
                continue
            key = (int(private), int(public), protocol or "tcp")
            if key in seen:
                continue
            seen.add(key)
            bindings.append(PortBinding(private_port=key[0], public_port=key[1], protocol=key[2]))
    bindings.sort(key=lambda b: (b.private_port, b.public_port or 0))
    return bindings


def _subnet(ipam: Optional[Dict[str, Any]]) -> str:
    configs = (ipam or {}).get("Config") or []
    if configs and configs[0].get("Subnet"):
        return configs[0]["Subnet"]
    return "n/a"


class DockerBackend:
    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = base_url
        self.timeout = timeout
        self.client = None

    @engine_call
    def connect(self) -> "DockerBackend":
        """Create the docker client and verify the engine answers."""
        kwargs: Dict[str, Any] = {}
        if self.timeout:
            kwargs["timeout"] = max(1, int(self.timeout))
        if self.base_url:
            self.client = docker.DockerClient(base_url=self.base_url, **kwargs)
        else:
            self.client = docker.from_env(**kwargs)
        self.ping()
        logger.info("Connected to container engine")
        return self

    def _require_client(self):
        if self.client is None:
            raise EngineUnreachableError("not connected")
        return self.client

    @engine_call
    def ping(self) -> bool:
        return bool(self._require_client().ping())

    def close(self) -> None:
        if self.client is not None:
            try:
                self.client.close()
            except (OSError, docker.errors.DockerException) as e:
                logger.debug(f"Ignoring error while closing client: {e}")
            self.client = None

    # --- LISTING ---

    @engine_call
    def list(self, kind: ResourceKind) -> List[ResourceRecord]:
        client = self._require_client()
        if kind is ResourceKind.CONTAINERS:
            return [self._container_from_summary(c) for c in client.api.containers(all=True)]
        if kind is ResourceKind.IMAGES:
            return [self._image_from_summary(i) for i in client.api.images()]
        if kind is ResourceKind.NETWORKS:
            return [self._network_from_attrs(n) for n in client.api.networks()]
        if kind is ResourceKind.VOLUMES:
            volumes = (client.api.volumes() or {}).get("Volumes") or []
            return [self._volume_from_attrs(v) for v in volumes]
        raise ValueError(f"Unknown resource kind: {kind}")

    @engine_call
    def inspect(self, kind: ResourceKind, identifier: str) -> ResourceRecord:
        client = self._require_client()
        if kind is ResourceKind.CONTAINERS:
            return self._container_from_inspect(client.api.inspect_container(identifier))
        if kind is ResourceKind.IMAGES:
            return self._image_from_inspect(client.api.inspect_image(identifier))
        if kind is ResourceKind.NETWORKS:
            return self._network_from_attrs(client.api.inspect_network(identifier), with_details=True)
        if kind is ResourceKind.VOLUMES:
            return self._volume_from_attrs(client.api.inspect_volume(identifier), with_details=True)
        raise ValueError(f"Unknown resource kind: {kind}")

    # --- LIFECYCLE ---

    @engine_call
    def lifecycle(self, operation: Operation, kind: ResourceKind, identifier: str) -> Optional[ResourceRecord]:
        """
        Run one lifecycle operation.

        Returns the refreshed record, or None when the resource no longer
        exists afterwards (remove, or a container started with --rm).
        """
        client = self._require_client()
        force = operation is Operation.FORCE_REMOVE
        if force and kind not in FORCEABLE_KINDS:
            raise ConflictError(f"{kind.value} cannot be force removed")
        if kind is ResourceKind.CONTAINERS:
            container = client.containers.get(identifier)
            if operation is Operation.START:
                container.start()
            elif operation is Operation.STOP:
                container.stop()
            elif operation is Operation.RESTART:
                container.restart()
            elif operation is Operation.KILL:
                container.kill()
            elif operation is Operation.REMOVE:
                container.remove()
                logger.info(f"Removed container {_short_id(identifier)}")
                return None
            logger.info(f"{operation.value} container {_short_id(identifier)}")
            try:
                return self.inspect(kind, identifier)
            except NotFoundError:
                return None

        if operation not in REMOVALS:
            raise ConflictError(f"{operation.value} is not supported for {kind.value}")
        if kind is ResourceKind.IMAGES:
            client.images.remove(identifier, force=force)
        elif kind is ResourceKind.NETWORKS:
            client.networks.get(identifier).remove()
        elif kind is ResourceKind.VOLUMES:
            client.volumes.get(identifier).remove(force=force)
        logger.info(f"Removed {kind.singular} {_short_id(identifier)}{' (forced)' if force else ''}")
        return None

    # --- RECORD BUILDERS ---

    def _container_from_summary(self, c: Dict[str, Any]) -> ContainerRecord:
        names = c.get("Names") or []
        name = names[0].lstrip("/") if names else _short_id(c["Id"])
        return ContainerRecord(
            id=c["Id"],
            name=name,
            created=_format_created(c.get("Created")),
            status=c.get("State") or "-",
            image=c.get("Image") or "-",
            ports=_ports_from_summary(c.get("Ports") or []),
        )

    def _container_from_inspect(self, attrs: Dict[str, Any]) -> ContainerRecord:
        state = attrs.get("State") or {}
        config = attrs.get("Config") or {}
        host_config = attrs.get("HostConfig") or {}
        network_settings = attrs.get("NetworkSettings") or {}
        ports = _ports_from_inspect(network_settings.get("Ports"))

        ip_address = network_settings.get("IPAddress") or ""
        if not ip_address:
            for net in (network_settings.get("Networks") or {}).values():
                if net.get("IPAddress"):
                    ip_address = net["IPAddress"]
                    break

        mounts = [
            f"{m.get('Type', '?')}: {m.get('Source') or m.get('Name', '')} -> {m.get('Destination', '')}"
            for m in attrs.get("Mounts") or []
        ]
        labels = [f"{k}: {v}" for k, v in sorted((config.get("Labels") or {}).items())]
        restart_policy = (host_config.get("RestartPolicy") or {}).get("Name") or "no"

        name = (attrs.get("Name") or "").lstrip("/") or _short_id(attrs["Id"])
        status = state.get("Status") or "-"
        image = config.get("Image") or "-"
        created = _format_created(attrs.get("Created"))

        details = {
            "ID": attrs["Id"],
            "Name": name,
            "Image": image,
            "Created": created,
            "State": status,
            "IP Address": ip_address or "-",
            "Started At": _format_created(state.get("StartedAt")),
            "Ports": _join(ports, ", "),
            "Command": _join(config.get("Cmd"), " "),
            "Entrypoint": _join(config.get("Entrypoint"), " "),
            "Env": _join(config.get("Env")),
            "Restart Policy": restart_policy,
            "Mounts": _join(mounts),
            "Labels": _join(labels),
        }
        return ContainerRecord(
            id=attrs["Id"], name=name, created=created, status=status,
            image=image, ports=ports, details=details,
        )

    def _image_from_summary(self, i: Dict[str, Any]) -> ImageRecord:
        tags = [t for t in i.get("RepoTags") or [] if t != "<none>:<none>"]
        return ImageRecord(
            id=i["Id"],
            name=tags[0] if tags else _short_id(i["Id"]),
            created=_format_created(i.get("Created")),
            status="tagged" if tags else "dangling",
            tags=tags,
            size_mb=(i.get("Size") or 0) / (1024 * 1024),
        )

    def _image_from_inspect(self, attrs: Dict[str, Any]) -> ImageRecord:
        record = self._image_from_summary(attrs)
        config = attrs.get("Config") or {}
        labels = [f"{k}: {v}" for k, v in sorted((config.get("Labels") or {}).items())]
        record.details = {
            "ID": record.id,
            "Tags": _join(record.tags, ", "),
            "Created": record.created,
            "Size": f"{record.size_mb:.1f}MB",
            "Platform": f"{attrs.get('Os', '?')}/{attrs.get('Architecture', '?')}",
            "Entrypoint": _join(config.get("Entrypoint"), " "),
            "Command": _join(config.get("Cmd"), " "),
            "Labels": _join(labels),
        }
        return record

    def _network_from_attrs(self, n: Dict[str, Any], with_details: bool = False) -> NetworkRecord:
        record = NetworkRecord(
            id=n["Id"],
            name=n.get("Name") or _short_id(n["Id"]),
            created=_format_created(n.get("Created")),
            status=n.get("Scope") or "local",
            driver=n.get("Driver") or "bridge",
            subnet=_subnet(n.get("IPAM")),
        )
        if with_details:
            configs = (n.get("IPAM") or {}).get("Config") or []
            containers = [c.get("Name", "?") for c in (n.get("Containers") or {}).values()]
            record.details = {
                "ID": record.id,
                "Name": record.name,
                "Driver": record.driver,
                "Scope": record.status,
                "Subnet": record.subnet,
                "Gateway": (configs[0].get("Gateway") if configs else None) or "-",
                "Internal": "yes" if n.get("Internal") else "no",
                "Containers": _join(sorted(containers), ", "),
            }
        return record

    def _volume_from_attrs(self, v: Dict[str, Any], with_details: bool = False) -> VolumeRecord:
        record = VolumeRecord(
            id=v["Name"],
            name=v["Name"],
            created=_format_created(v.get("CreatedAt")),
            status=v.get("Scope") or "local",
            driver=v.get("Driver") or "local",
            mountpoint=v.get("Mountpoint") or "n/a",
        )
        if with_details:
            labels = [f"{k}: {val}" for k, val in sorted((v.get("Labels") or {}).items())]
            record.details = {
                "Name": record.name,
                "Driver": record.driver,
                "Mountpoint": record.mountpoint,
                "Scope": record.status,
                "Created": record.created,
                "Labels": _join(labels),
            }
        return record


async def run_engine_call(func: Callable, *args: Any, timeout: Optional[float] = None) -> Any:
    """
    Run a blocking engine call in a worker thread with an upper bound.

    On expiry the thread is abandoned (its eventual result is dropped) and
    EngineTimeoutError is raised; nothing is retried.
    """
    try:
        return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout)
    except asyncio.TimeoutError:
        name = getattr(func, "__name__", "engine call")
        logger.warning(f"{name} timed out after {timeout}s")
        raise EngineTimeoutError(f"no answer within {timeout:g}s")
