from datetime import timedelta

import pytest

from ebuskit.determinism.retry import (
    InvalidRetryCountError,
    InvalidRetryDelayError,
    InvalidRetryFactorError,
    RetrySchedule,
    exponential_retry_schedule,
    fixed_retry_schedule,
)
from ebuskit.errors import BusTimeoutError, NoSuchDeviceError

MS = timedelta(milliseconds=1)


def test_new_retry_schedule():
    schedule = RetrySchedule([timedelta(0), 25 * MS, timedelta(seconds=1)])
    assert schedule.retries() == 3
    assert schedule.delays() == [timedelta(0), 25 * MS, timedelta(seconds=1)]

    copy = schedule.delays()
    copy[0] = timedelta(hours=1)
    assert schedule.delays()[0] == timedelta(0)

    with pytest.raises(InvalidRetryDelayError):
        RetrySchedule([timedelta(microseconds=-1)])


def test_empty_schedule():
    schedule = RetrySchedule()
    assert schedule.retries() == 0
    assert schedule.delay(0) is None


def test_fixed_retry_schedule():
    schedule = fixed_retry_schedule(3, 200 * MS)
    assert schedule.delays() == [200 * MS, 200 * MS, 200 * MS]

    with pytest.raises(InvalidRetryCountError):
        fixed_retry_schedule(-1, timedelta(seconds=1))
    with pytest.raises(InvalidRetryDelayError):
        fixed_retry_schedule(1, -timedelta(seconds=1))


def test_exponential_retry_schedule():
    schedule = exponential_retry_schedule(4, 100 * MS, 2, 350 * MS)
    assert schedule.delays() == [100 * MS, 200 * MS, 350 * MS, 350 * MS]

    with pytest.raises(InvalidRetryCountError):
        exponential_retry_schedule(-1, MS, 2, timedelta(0))
    with pytest.raises(InvalidRetryDelayError):
        exponential_retry_schedule(1, -MS, 2, timedelta(0))
    with pytest.raises(InvalidRetryFactorError):
        exponential_retry_schedule(1, MS, 0, timedelta(0))


def test_exponential_factor_one_is_constant():
    schedule = exponential_retry_schedule(3, 100 * MS, 1)
    assert schedule.delays() == [100 * MS] * 3


def test_exponential_growth_saturates_without_overflow():
    schedule = exponential_retry_schedule(200, MS, 10)
    delays = schedule.delays()
    assert len(delays) == 200
    assert delays == sorted(delays)
    assert delays[-1] == delays[-2]


def test_delay_and_next_retry():
    schedule = RetrySchedule([10 * MS, 20 * MS])

    assert schedule.delay(-1) is None
    assert schedule.delay(2) is None
    assert schedule.delay(1) == 20 * MS

    assert schedule.next_retry(BusTimeoutError(), 0) == 10 * MS
    assert schedule.next_retry(BusTimeoutError(), 3) is None
    assert schedule.next_retry(NoSuchDeviceError(), 0) is None
    assert schedule.next_retry(None, 0) is None


def test_schedules_compare_by_delays():
    assert fixed_retry_schedule(2, 5 * MS) == RetrySchedule([5 * MS, 5 * MS])
    assert fixed_retry_schedule(2, 5 * MS) != RetrySchedule([5 * MS])