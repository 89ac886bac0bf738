"""
Bounded background texture synthesis

Runs generators on a small process-wide worker pool so hosts never block on
texture synthesis. Each request gets a single-slot completion channel and a
cancellation flag; the host polls handles without blocking, typically once
per frame.

Cancellation is cooperative: a job checks its flag once, before it starts
computing. A job already running finishes and its result is discarded.
"""

import copy
import itertools
import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple, Union

from ._validate import validate_dimensions
from .bark import BarkConfig
from .config import MaterialConfig, MaterialKind
from .generator import AssetSink, GeneratedHandles, TextureMap, map_to_images, map_to_images_card
from .ground import GroundConfig
from .leaf import LeafConfig
from .rock import RockConfig
from .twig import TwigConfig

logger = logging.getLogger(__name__)

POOL_SIZE = 4

_pool: Optional[ThreadPoolExecutor] = None
_pool_lock = threading.Lock()

_stats_lock = threading.Lock()
_stats = {
    'submitted': 0,
    'completed': 0,
    'failed': 0,
    'cancelled': 0,
    'running': 0,
}

_request_ids = itertools.count(1)


def texture_pool() -> ThreadPoolExecutor:
    """Return the shared synthesis pool, creating it on first use.

    The pool is private to this module so synthesis neither starves nor is
    starved by other executors in the host. It is never shut down.
    """
    global _pool
    with _pool_lock:
        if _pool is None:
            _pool = ThreadPoolExecutor(max_workers=POOL_SIZE, thread_name_prefix="symbios-texture")
            logger.debug(f"texture pool created with {POOL_SIZE} workers")
        return _pool


def _bump(key: str, delta: int = 1) -> None:
    with _stats_lock:
        _stats[key] += delta


def pool_stats() -> Dict[str, Any]:
    """Get counters for submitted, completed, failed, cancelled and running jobs"""
    with _stats_lock:
        stats = dict(_stats)
    stats['pool_size'] = POOL_SIZE
    return stats


class PollStatus(Enum):
    READY = "ready"          # value received; the handle is spent
    FAILED = "failed"        # worker finished without a value
    PENDING = "pending"      # nothing yet; poll again later
    CANCELLED = "cancelled"  # cancelled by the caller; never delivers


class _ChannelState(Enum):
    READY = 0
    DISCONNECTED = 1
    EMPTY = 2


class _CompletionChannel:
    """Single-slot channel: at most one value, then closed by the worker."""

    def __init__(self):
        self._slot = queue.Queue(maxsize=1)
        self._closed = threading.Event()

    def send(self, value: TextureMap) -> None:
        self._slot.put_nowait(value)

    def close(self) -> None:
        self._closed.set()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def try_recv(self) -> Tuple[_ChannelState, Optional[TextureMap]]:
        # Read the closed flag before the slot: a send always precedes close,
        # so closed-and-empty really means no value is coming.
        closed = self._closed.is_set()
        try:
            return _ChannelState.READY, self._slot.get_nowait()
        except queue.Empty:
            if closed:
                return _ChannelState.DISCONNECTED, None
            return _ChannelState.EMPTY, None


def _run_job(
    fn: Callable[[int, int], TextureMap],
    width: int,
    height: int,
    cancelled: threading.Event,
    channel: _CompletionChannel,
    request_id: int,
    label: str,
) -> None:
    """Worker body; deliberately holds no reference to the request handle."""
    try:
        if cancelled.is_set():
            logger.debug(f"texture request {request_id} ({label}) cancelled before start")
            _bump('cancelled')
            return
        _bump('running')
        try:
            result = fn(width, height)
        finally:
            _bump('running', -1)
        channel.send(result)
        _bump('completed')
    except Exception:
        logger.exception(f"texture request {request_id} ({label}) failed in worker")
        _bump('failed')
    finally:
        channel.close()


class PendingTexture:
    """Handle for a texture being synthesised in the background.

    Dropping the handle (or calling :meth:`cancel`) sets the cancellation
    flag; a job that has not started yet then exits without computing.
    """

    def __init__(
        self,
        request_id: int,
        channel: _CompletionChannel,
        cancelled: threading.Event,
        is_card: bool,
        label: str,
    ):
        self.request_id = request_id
        self.is_card = is_card
        self.label = label
        self._channel = channel
        self._cancelled = cancelled
        self._status = PollStatus.PENDING

    @classmethod
    def spawn(
        cls,
        fn: Callable[[int, int], TextureMap],
        width: int,
        height: int,
        *,
        is_card: bool = False,
        label: str = "texture",
    ) -> "PendingTexture":
        """Validate dimensions, then submit ``fn(width, height)`` to the pool.

        Raises ``DimensionError`` synchronously; nothing is submitted then.
        """
        width, height = validate_dimensions(width, height)
        request_id = next(_request_ids)
        channel = _CompletionChannel()
        cancelled = threading.Event()
        texture_pool().submit(_run_job, fn, width, height, cancelled, channel, request_id, label)
        _bump('submitted')
        logger.debug(f"texture request {request_id} ({label}) submitted: {width}x{height}")
        return cls(request_id, channel, cancelled, is_card, label)

    @classmethod
    def _material(cls, kind: MaterialKind, config: Optional[MaterialConfig], width: int, height: int):
        if config is None:
            config = kind.config_class()
        elif not isinstance(config, kind.config_class):
            raise TypeError(f"{kind.value} requests take a {kind.config_class.__name__}, got {type(config).__name__}")
        job_config = copy.deepcopy(config)
        generator_class = kind.generator_class

        def job(w: int, h: int) -> TextureMap:
            return generator_class(job_config).generate(w, h)

        return cls.spawn(job, width, height, is_card=kind.is_card, label=kind.value)

    @classmethod
    def bark(cls, config: Optional[BarkConfig], width: int, height: int) -> "PendingTexture":
        return cls._material(MaterialKind.BARK, config, width, height)

    @classmethod
    def rock(cls, config: Optional[RockConfig], width: int, height: int) -> "PendingTexture":
        return cls._material(MaterialKind.ROCK, config, width, height)

    @classmethod
    def ground(cls, config: Optional[GroundConfig], width: int, height: int) -> "PendingTexture":
        return cls._material(MaterialKind.GROUND, config, width, height)

    @classmethod
    def leaf(cls, config: Optional[LeafConfig], width: int, height: int) -> "PendingTexture":
        return cls._material(MaterialKind.LEAF, config, width, height)

    @classmethod
    def twig(cls, config: Optional[TwigConfig], width: int, height: int) -> "PendingTexture":
        return cls._material(MaterialKind.TWIG, config, width, height)

    @classmethod
    def for_config(cls, config: MaterialConfig, width: int, height: int) -> "PendingTexture":
        return cls._material(MaterialKind.of(config), config, width, height)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def is_finished(self) -> bool:
        """True once the worker has finished with this request, successfully or not."""
        return self._channel.closed

    def try_get(self) -> Tuple[PollStatus, Optional[TextureMap]]:
        """Non-blocking poll.

        Returns ``(READY, map)`` once, ``(FAILED, None)`` when the worker died,
        ``(PENDING, None)`` while still running and ``(CANCELLED, None)`` after
        :meth:`cancel`. After a terminal result the status repeats without a map.
        """
        if self._status is not PollStatus.PENDING:
            return self._status, None
        if self._cancelled.is_set():
            self._status = PollStatus.CANCELLED
            return self._status, None

        state, value = self._channel.try_recv()
        if state is _ChannelState.READY:
            self._status = PollStatus.READY
            return self._status, value
        if state is _ChannelState.DISCONNECTED:
            self._status = PollStatus.FAILED
        return self._status, None

    def __del__(self):
        cancelled = getattr(self, '_cancelled', None)
        if cancelled is not None:
            cancelled.set()

    def __repr__(self) -> str:
        return f"PendingTexture(id={self.request_id}, label={self.label!r}, status={self._status.value})"


# --- host integration ---------------------------------------------------------

class TextureWorkerError(RuntimeError):
    """A background job ended without producing a texture."""

    def __init__(self, request_id: int, label: str):
        self.request_id = request_id
        self.label = label
        super().__init__(f"texture worker for request {request_id} ({label}) terminated without a result")


class PollResult(NamedTuple):
    request_id: int
    label: str
    is_card: bool
    status: PollStatus
    map: Optional[TextureMap]


class TextureReady(NamedTuple):
    request_id: int
    label: str
    handles: GeneratedHandles


class TextureFailed(NamedTuple):
    request_id: int
    label: str
    error: TextureWorkerError


class TextureTasks:
    """Registry of outstanding requests drained by :func:`poll_texture_tasks`."""

    def __init__(self):
        self._pending: Dict[int, PendingTexture] = {}

    def insert(self, handle: PendingTexture) -> int:
        self._pending[handle.request_id] = handle
        return handle.request_id

    def cancel(self, request_id: int) -> bool:
        """Cancel and forget a request; ``False`` if it is not outstanding."""
        handle = self._pending.pop(request_id, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def poll(self) -> List[PollResult]:
        """Drain finished requests without blocking; pending ones stay registered."""
        results = []
        for request_id, handle in list(self._pending.items()):
            status, value = handle.try_get()
            if status is PollStatus.PENDING:
                continue
            del self._pending[request_id]
            if status is PollStatus.CANCELLED:
                continue
            results.append(PollResult(request_id, handle.label, handle.is_card, status, value))
        return results

    def __contains__(self, request_id: int) -> bool:
        return request_id in self._pending

    def __len__(self) -> int:
        return len(self._pending)


def poll_texture_tasks(tasks: TextureTasks, sink: AssetSink) -> List[Union[TextureReady, TextureFailed]]:
    """Per-tick host hook: upload ready textures and report failed ones.

    Cards are uploaded with clamp-to-edge addressing, surfaces with repeat.
    Every request is reported exactly once.
    """
    events = []
    for result in tasks.poll():
        if result.status is PollStatus.READY:
            upload = map_to_images_card if result.is_card else map_to_images
            events.append(TextureReady(result.request_id, result.label, upload(result.map, sink)))
        else:
            error = TextureWorkerError(result.request_id, result.label)
            logger.error(str(error))
            events.append(TextureFailed(result.request_id, result.label, error))
    return events
