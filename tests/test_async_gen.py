# tests/test_async_gen.py
# Background scheduler: bounded pool, cooperative cancellation, non-blocking polls
# Exists to exercise the request lifecycle the host drives once per frame
# RELEVANT FILES: python/symbios_texture/async_gen.py, python/symbios_texture/textures.py
import threading
import time

import numpy as np
import pytest

from symbios_texture import (
    POOL_SIZE,
    AddressMode,
    BarkConfig,
    DimensionError,
    DimensionErrorKind,
    LeafConfig,
    PendingTexture,
    PollStatus,
    RockConfig,
    TextureFailed,
    TextureMap,
    TextureReady,
    TextureTasks,
    TextureWorkerError,
    poll_texture_tasks,
    pool_stats,
)
from symbios_texture.async_gen import texture_pool

TIMEOUT = 30.0


def _blank(w, h):
    plane = np.zeros(w * h * 4, dtype=np.uint8)
    return TextureMap(albedo=plane, normal=plane.copy(), roughness=plane.copy(), width=w, height=h)


def _wait_for(predicate, timeout=TIMEOUT):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("timed out waiting for background jobs")
        time.sleep(0.005)


def _poll_until_done(handle):
    result = []

    def done():
        status, value = handle.try_get()
        if status is PollStatus.PENDING:
            return False
        result.append((status, value))
        return True

    _wait_for(done)
    return result[0]


def _occupy_pool():
    """Fill every worker with a job blocked on the returned gate."""
    gate = threading.Event()
    started = threading.Semaphore(0)

    def blocker(w, h):
        started.release()
        gate.wait(TIMEOUT)
        return _blank(w, h)

    handles = [PendingTexture.spawn(blocker, 1, 1, label="blocker") for _ in range(POOL_SIZE)]
    for _ in range(POOL_SIZE):
        assert started.acquire(timeout=TIMEOUT)
    return gate, handles


def test_pool_is_a_lazily_created_singleton():
    assert texture_pool() is texture_pool()
    assert texture_pool()._max_workers == POOL_SIZE


def test_concurrency_never_exceeds_pool_size():
    lock = threading.Lock()
    state = {'active': 0, 'peak': 0}
    gate = threading.Event()

    def job(w, h):
        with lock:
            state['active'] += 1
            state['peak'] = max(state['peak'], state['active'])
        gate.wait(TIMEOUT)
        with lock:
            state['active'] -= 1
        return _blank(w, h)

    handles = [PendingTexture.spawn(job, 2, 2) for _ in range(POOL_SIZE * 3)]
    _wait_for(lambda: state['active'] == POOL_SIZE)
    time.sleep(0.05)
    assert state['active'] == POOL_SIZE, "queued jobs must wait for a free worker"
    gate.set()
    for handle in handles:
        assert _poll_until_done(handle)[0] is PollStatus.READY
    assert state['peak'] == POOL_SIZE


def test_ready_result_is_delivered_once():
    handle = PendingTexture.rock(RockConfig(), 8, 8)
    status, tex = _poll_until_done(handle)
    assert status is PollStatus.READY
    assert (tex.width, tex.height) == (8, 8)
    assert len(tex.albedo) == 8 * 8 * 4
    assert handle.try_get() == (PollStatus.READY, None)


def test_poll_is_non_blocking_while_pending():
    gate, handles = _occupy_pool()
    try:
        queued = PendingTexture.spawn(lambda w, h: _blank(w, h), 1, 1)
        start = time.monotonic()
        assert queued.try_get() == (PollStatus.PENDING, None)
        assert time.monotonic() - start < 0.5
    finally:
        gate.set()
    assert _poll_until_done(queued)[0] is PollStatus.READY
    for handle in handles:
        _poll_until_done(handle)


def test_cancelled_before_start_never_runs():
    gate, blockers = _occupy_pool()
    ran = []
    try:
        handle = PendingTexture.spawn(lambda w, h: ran.append(1) or _blank(w, h), 1, 1)
        handle.cancel()
    finally:
        gate.set()
    _wait_for(lambda: handle.is_finished)
    assert ran == []
    assert handle.try_get() == (PollStatus.CANCELLED, None)
    for blocker in blockers:
        _poll_until_done(blocker)


def test_dropped_handle_never_delivers():
    gate, blockers = _occupy_pool()
    ran = []
    before = pool_stats()['cancelled']
    try:
        handle = PendingTexture.spawn(lambda w, h: ran.append(1) or _blank(w, h), 1, 1)
        del handle
    finally:
        gate.set()
    _wait_for(lambda: pool_stats()['cancelled'] > before)
    assert ran == []
    for blocker in blockers:
        _poll_until_done(blocker)


def test_worker_failure_is_reported_once(sink, caplog):
    def explode(w, h):
        raise RuntimeError("synthesis blew up")

    tasks = TextureTasks()
    request_id = tasks.insert(PendingTexture.spawn(explode, 4, 4, label="broken"))
    sibling_id = tasks.insert(PendingTexture.rock(None, 4, 4))

    events = []
    _wait_for(lambda: events.extend(poll_texture_tasks(tasks, sink)) or len(tasks) == 0)

    failed = [e for e in events if isinstance(e, TextureFailed)]
    ready = [e for e in events if isinstance(e, TextureReady)]
    assert [e.request_id for e in failed] == [request_id]
    assert isinstance(failed[0].error, TextureWorkerError)
    assert failed[0].error.label == "broken"
    assert [e.request_id for e in ready] == [sibling_id], "siblings are unaffected"
    assert poll_texture_tasks(tasks, sink) == []
    assert "synthesis blew up" in caplog.text


def test_ready_uploads_use_tile_or_card_addressing(sink):
    tasks = TextureTasks()
    surface = tasks.insert(PendingTexture.rock(RockConfig(), 4, 4))
    card = tasks.insert(PendingTexture.leaf(LeafConfig(), 4, 4))

    events = []
    _wait_for(lambda: events.extend(poll_texture_tasks(tasks, sink)) or len(tasks) == 0)
    by_id = {e.request_id: e for e in events}
    assert sink.get(by_id[surface].handles.albedo).address_mode is AddressMode.REPEAT
    assert sink.get(by_id[card].handles.normal).address_mode is AddressMode.CLAMP_TO_EDGE
    assert by_id[card].label == "leaf"


def test_task_registry_cancel_drops_request():
    gate, blockers = _occupy_pool()
    tasks = TextureTasks()
    try:
        request_id = tasks.insert(PendingTexture.bark(BarkConfig(), 4, 4))
        assert request_id in tasks
        assert tasks.cancel(request_id)
        assert not tasks.cancel(request_id)
        assert len(tasks) == 0
    finally:
        gate.set()
    for blocker in blockers:
        _poll_until_done(blocker)


@pytest.mark.parametrize("factory", [PendingTexture.bark, PendingTexture.rock, PendingTexture.ground,
                                     PendingTexture.leaf, PendingTexture.twig])
def test_invalid_dimensions_fail_before_submission(factory):
    submitted = pool_stats()['submitted']
    with pytest.raises(DimensionError) as exc:
        factory(None, 0, 8)
    assert exc.value.reason is DimensionErrorKind.ZERO
    with pytest.raises(DimensionError):
        factory(None, 8, 10_000)
    assert pool_stats()['submitted'] == submitted


def test_wrong_config_type_rejected():
    with pytest.raises(TypeError):
        PendingTexture.bark(RockConfig(), 4, 4)


def test_stats_shape():
    stats = pool_stats()
    assert stats['pool_size'] == POOL_SIZE
    for key in ('submitted', 'completed', 'failed', 'cancelled', 'running'):
        assert stats[key] >= 0
