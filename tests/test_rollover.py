import logging
import threading

from taxrunner.tasks.scheduled import BackgroundScheduler

HOURS = 3600


def admin(game, name='admin'):
    return game.register(name, admin_key='test-admin')


def test_tick_within_same_day_does_nothing(game, rollover, emitter):
    player = admin(game)
    game.submit_score(player.player_id, 100)

    assert rollover.tick() is False
    game.clock.advance(11 * HOURS)  # 23:00 same day
    assert rollover.tick() is False

    assert game.current_day == '2026-03-10'
    assert len(game.winners) == 0
    assert emitter.events('forceReset') == []


def test_rollover_happens_once_per_day(game, rollover, emitter):
    player = admin(game)
    game.hub.register(player.player_id, 'sid-admin')
    game.submit_score(player.player_id, 100)

    game.clock.advance(13 * HOURS)  # 01:00 next day
    assert rollover.tick() is True
    assert rollover.tick() is False
    game.clock.advance(60)
    assert rollover.tick() is False

    assert game.current_day == '2026-03-11'
    assert len(game.winners) == 1
    assert emitter.events('forceReset', to='sid-admin') == [{'newDay': '2026-03-11'}]
    assert game.top_entries() == []


def test_winner_is_top_scorer_and_receives_claim(game, rollover, emitter):
    alice = admin(game, 'alice')
    bob = admin(game, 'bob')
    game.hub.register(bob.player_id, 'sid-bob')
    game.submit_score(alice.player_id, 300)
    game.submit_score(bob.player_id, 800)

    game.clock.advance(13 * HOURS)
    rollover.tick()

    record = game.winners.get('2026-03-10')
    assert record.player_id == bob.player_id
    assert record.score == 800
    assert record.prize == 100

    won = emitter.events('youWon', to='sid-bob')
    assert len(won) == 1
    assert won[0]['claimCode'] == record.claim_code
    assert won[0]['day'] == '2026-03-10'
    verified = game.verify_claim(bob.player_id, record.claim_code, won[0]['claimSecret'])
    assert verified.verified is True


def test_winner_not_connected_still_gets_record(game, rollover, emitter):
    player = admin(game)
    game.submit_score(player.player_id, 50)

    game.clock.advance(13 * HOURS)
    rollover.tick()

    assert game.winners.get('2026-03-10').player_id == player.player_id
    assert emitter.events('youWon') == []


def test_empty_day_creates_no_winner(game, rollover):
    game.clock.advance(13 * HOURS)
    rollover.tick()

    assert len(game.winners) == 0
    assert game.latest_winner() is None


def test_save_from_reset_carries_score_once_per_rollover(game, rollover):
    saver = admin(game, 'saver')
    plain = admin(game, 'plain')
    saver.save_from_reset = 2
    game.submit_score(saver.player_id, 500)
    game.submit_score(plain.player_id, 400)

    game.clock.advance(13 * HOURS)
    rollover.tick()
    assert [e.to_dict() for e in game.top_entries()] == [
        {'playerId': saver.player_id, 'name': 'saver', 'score': 500}
    ]
    assert saver.save_from_reset == 1

    game.clock.advance(24 * HOURS)
    rollover.tick()
    assert game.current_day == '2026-03-12'
    assert [e.score for e in game.top_entries()] == [500]
    assert saver.save_from_reset == 0

    game.clock.advance(24 * HOURS)
    rollover.tick()
    assert game.top_entries() == []
    assert saver.save_from_reset == 0


def test_save_from_reset_needs_a_positive_score(game, rollover):
    player = admin(game)
    player.save_from_reset = 1
    game.submit_score(player.player_id, 0)

    game.clock.advance(13 * HOURS)
    rollover.tick()

    assert game.top_entries() == []
    assert player.save_from_reset == 1


def test_stable_tick_sweeps_stale_runs(game, rollover):
    player = game.register('runner')
    game.start_run(player.player_id)
    game.clock.advance(30 * 60)
    fresh = game.start_run(player.player_id)

    game.clock.advance(31 * 60)
    rollover.tick()

    assert list(game.runs.runs) == [fresh.run_id]


def test_scheduler_jobs_run_rollover_and_flush(game, rollover):
    flushed = []
    game.save_snapshot = lambda: flushed.append(True)
    scheduler = BackgroundScheduler(game, rollover=rollover, rollover_interval=1, snapshot_interval=1)

    scheduler.check_epoch()
    scheduler.flush_snapshot()

    assert flushed == [True]
    assert len(scheduler.scheduler.jobs) == 2
    scheduler.stop()
    assert scheduler.scheduler.jobs == []


def test_scheduler_survives_job_errors(game, caplog):
    def broken():
        raise RuntimeError("disk full")
    game.save_snapshot = broken
    scheduler = BackgroundScheduler(game)

    with caplog.at_level(logging.ERROR, logger='taxrunner.tasks.scheduled'):
        scheduler.flush_snapshot()

    assert any('Snapshot flush failed: disk full' in r.getMessage() for r in caplog.records)


def test_scheduler_thread_runs_jobs_until_stopped(game, rollover):
    flushed = threading.Event()
    game.save_snapshot = flushed.set
    scheduler = BackgroundScheduler(game, rollover=rollover, rollover_interval=1,
                                    snapshot_interval=1, poll_interval=0.01)

    thread = scheduler.start()
    assert scheduler.start() is thread
    try:
        assert flushed.wait(5)
    finally:
        scheduler.stop(timeout=5)

    assert not thread.is_alive()


def test_rollover_waits_for_the_server_lock(game, rollover):
    player = admin(game)
    game.submit_score(player.player_id, 100)
    game.clock.advance(13 * HOURS)

    results = []
    with game.lock:
        worker = threading.Thread(target=lambda: results.append(rollover.tick()))
        worker.start()
        worker.join(0.2)
        assert worker.is_alive()
        assert game.current_day == '2026-03-10'
        assert results == []

    worker.join(5)
    assert results == [True]
    assert game.current_day == '2026-03-11'


def test_submission_is_not_seen_half_way_through_a_rollover(game, rollover):
    player = admin(game)
    game.clock.advance(13 * HOURS)

    results = []
    with game.lock:
        rollover.tick()
        worker = threading.Thread(target=lambda: results.append(game.submit_score(player.player_id, 250)))
        worker.start()
        worker.join(0.2)
        assert worker.is_alive()
        assert game.top_entries() == []

    worker.join(5)
    assert results == [250]
    assert [e.score for e in game.leaderboard.entries_for('2026-03-11')] == [250]
    assert game.leaderboard.entries_for('2026-03-10') == []


def test_verified_at_follows_the_server_clock(game, rollover, emitter):
    player = admin(game)
    game.hub.register(player.player_id, 'sid-admin')
    game.submit_score(player.player_id, 100)
    game.clock.advance(13 * HOURS)
    rollover.tick()
    won = emitter.events('youWon', to='sid-admin')[0]

    game.clock.advance(90)
    record = game.verify_claim(player.player_id, won['claimCode'], won['claimSecret'])

    assert record.verified_at.timestamp() == game.now()
    assert record.to_dict()['verifiedAt'] == '2026-03-11T00:01:30+00:00'
