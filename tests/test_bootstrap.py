# WatchNest test scripts
from __future__ import annotations

import asyncio
import threading

from providers.auth import StaticSession
from wn_platform.media import ItemKey, MediaKind
from wn_platform.sync import BootstrapSequencer, Identity, MigrationDecision, MigrationProtocol


def _sequencer(world, session=None, decision=MigrationDecision.MIGRATE):
    mig = MigrationProtocol(world.ctx, world.coord, lambda n: decision)
    return BootstrapSequencer(world.ctx, world.coord, session, mig)


def test_gate_fires_once_and_only_when_both_flags_set(world):
    seq = _sequencer(world)
    fired = []
    seq.on_initialized(fired.append)

    seq.mark_data_hydrated()
    assert not seq.initialized and fired == []
    seq.mark_auth_resolved()
    seq.mark_auth_resolved()
    seq.mark_data_hydrated()
    assert seq.initialized
    assert len(fired) == 1 and fired[0].app_initialized

    seq.reset()
    assert not world.ctx.auth_resolved and not world.ctx.data_hydrated and not seq.initialized
    seq.mark_auth_resolved()
    seq.mark_data_hydrated()
    assert len(fired) == 2


def test_guest_bootstrap_keeps_local_cache(world, make_movie):
    asyncio.run(world.coord.add_item(make_movie(1)))
    seq = _sequencer(world, StaticSession())
    asyncio.run(seq.bootstrap())
    assert seq.initialized
    assert world.ctx.is_guest_mode()
    assert world.coord.is_in_list(ItemKey(1, MediaKind.MOVIE))
    assert world.remote.calls == []


def test_authenticated_bootstrap_hydrates(world, ident, make_movie):
    world.remote.seed(ident, make_movie(10), make_movie(11))
    seq = _sequencer(world, StaticSession(ident))
    asyncio.run(seq.bootstrap())
    assert seq.initialized
    assert world.ctx.identity == ident
    assert {it.external_id for it in world.coord.all_items()} == {10, 11}


def test_bootstrap_failure_still_opens_gate(world):
    class Broken:
        def current_identity(self):
            raise RuntimeError("keychain locked")

        def on_identity_change(self, cb):
            return lambda: None

    seq = _sequencer(world, Broken())
    asyncio.run(seq.bootstrap())
    assert world.ctx.auth_resolved and world.ctx.data_hydrated and seq.initialized


def test_remote_outage_on_bootstrap_opens_gate(world, ident):
    world.remote.fail_reads = True
    seq = _sequencer(world, StaticSession(ident))
    asyncio.run(seq.bootstrap())
    assert seq.initialized


def test_login_migrates_then_hydrates(world, ident, make_movie):
    session = StaticSession()
    seq = _sequencer(world, session)
    world.remote.seed(ident, make_movie(500))

    async def scenario():
        await seq.bootstrap()
        seq.attach_session()
        await world.coord.add_item(make_movie(1))
        session.set_identity(ident)
        await seq.wait_idle()

    asyncio.run(scenario())
    assert world.ctx.identity == ident
    assert {it.external_id for it in world.coord.all_items()} == {1, 500}
    assert {it.external_id for it in world.remote.rows_for(ident)} == {1, 500}
    assert not world.ctx.has_guest_data


def test_login_with_discard_keeps_only_account_items(world, ident, make_movie):
    session = StaticSession()
    seq = _sequencer(world, session, MigrationDecision.DISCARD)
    world.remote.seed(ident, make_movie(500))

    async def scenario():
        await seq.bootstrap()
        seq.attach_session()
        await world.coord.add_item(make_movie(1))
        session.set_identity(ident)
        await seq.wait_idle()

    asyncio.run(scenario())
    assert [it.external_id for it in world.coord.all_items()] == [500]
    assert [it.external_id for it in world.remote.rows_for(ident)] == [500]


def test_logout_clears_cache_and_reruns_bootstrap(world, ident, make_movie):
    session = StaticSession(ident)
    seq = _sequencer(world, session)
    world.remote.seed(ident, make_movie(500))
    states = []
    seq.on_initialized(states.append)

    async def scenario():
        await seq.bootstrap()
        seq.attach_session()
        session.set_identity(None)
        await seq.wait_idle()

    asyncio.run(scenario())
    assert world.ctx.is_guest_mode()
    assert world.coord.all_items() == []
    assert seq.initialized
    assert len(states) == 2
    assert states[-1].identity is None


def test_token_refresh_only_swaps_identity(world, ident, make_movie):
    session = StaticSession(ident)
    seq = _sequencer(world, session)
    world.remote.seed(ident, make_movie(500))

    async def scenario():
        await seq.bootstrap()
        seq.attach_session()
        calls_before = len(world.remote.calls)
        session.set_identity(Identity(user_id=ident.user_id, email=ident.email, access_token="tok-2"))
        await seq.wait_idle()
        return calls_before

    before = asyncio.run(scenario())
    assert world.ctx.identity.access_token == "tok-2"
    assert len(world.remote.calls) == before


def test_detach_stops_listening(world, ident):
    session = StaticSession()
    seq = _sequencer(world, session)

    async def scenario():
        await seq.bootstrap()
        seq.attach_session()
        seq.detach_session()
        session.set_identity(ident)
        await seq.wait_idle()

    asyncio.run(scenario())
    assert world.ctx.is_guest_mode()


class _RecordingSession(StaticSession):
    def __init__(self, identity=None):
        super().__init__()
        self._restored = identity
        self.restore_threads = []

    def restore(self):
        self.restore_threads.append(threading.get_ident())
        self.set_identity(self._restored)
        return self._restored


def test_blocking_restore_runs_off_the_event_loop(world, ident):
    session = _RecordingSession(ident)
    seq = _sequencer(world, session)

    async def scenario():
        await seq.bootstrap()
        return threading.get_ident()

    loop_thread = asyncio.run(scenario())
    assert len(session.restore_threads) == 1
    assert session.restore_threads[0] != loop_thread
    assert world.ctx.identity == ident
    assert seq.initialized


def test_async_restore_is_awaited(world, ident):
    session = StaticSession()
    restored = []

    async def restore():
        restored.append(True)
        session.set_identity(ident)

    session.restore = restore
    seq = _sequencer(world, session)
    asyncio.run(seq.bootstrap())
    assert restored == [True]
    assert world.ctx.identity == ident
