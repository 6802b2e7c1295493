from datetime import datetime, timezone

from taxrunner.utils.clock import day_key, now_ms


def utc_ts(*args):
    return datetime(*args, tzinfo=timezone.utc).timestamp()


def test_day_key_uses_reference_timezone_not_utc():
    # 23:30 UTC is already the next day in Zagreb (UTC+1 in winter)
    assert day_key(utc_ts(2026, 3, 10, 23, 30)) == '2026-03-11'
    assert day_key(utc_ts(2026, 3, 10, 22, 59)) == '2026-03-10'


def test_day_key_across_daylight_saving_start():
    # Clocks go forward on 2026-03-29; midnight is 22:00 UTC afterwards
    assert day_key(utc_ts(2026, 3, 28, 23, 30)) == '2026-03-29'
    assert day_key(utc_ts(2026, 3, 29, 21, 59)) == '2026-03-29'
    assert day_key(utc_ts(2026, 3, 29, 22, 0)) == '2026-03-30'


def test_day_key_across_daylight_saving_end():
    # Clocks go back on 2026-10-25; midnight is 23:00 UTC afterwards
    assert day_key(utc_ts(2026, 10, 24, 21, 59)) == '2026-10-24'
    assert day_key(utc_ts(2026, 10, 24, 22, 0)) == '2026-10-25'
    assert day_key(utc_ts(2026, 10, 25, 22, 59)) == '2026-10-25'
    assert day_key(utc_ts(2026, 10, 25, 23, 0)) == '2026-10-26'


def test_day_key_other_timezone():
    assert day_key(utc_ts(2026, 3, 10, 3, 0), 'America/New_York') == '2026-03-09'


def test_now_ms():
    assert now_ms(12.3456) == 12345
