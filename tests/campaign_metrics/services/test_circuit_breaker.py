"""Tests for campaign_metrics.services.circuit_breaker — CircuitBreaker class and registry."""
import time
import pytest
from unittest.mock import MagicMock

from campaign_metrics.services.circuit_breaker import (
    CircuitBreaker, CircuitOpenError, CLOSED, OPEN, HALF_OPEN,
    get_breaker, init_breakers, _registry,
)


class FakeRedis:
    """Dict-backed stand-in for the Redis commands the breaker uses."""

    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value):
        self.store[key] = str(value)

    def incr(self, key):
        val = int(self.store.get(key, 0)) + 1
        self.store[key] = str(val)
        return val

    def pipeline(self):
        return FakePipeline(self)


class FakePipeline:
    """Fake Redis pipeline that executes on execute()."""

    def __init__(self, redis):
        self._redis = redis
        self._ops = []

    def set(self, key, value):
        self._ops.append((key, value))
        return self

    def execute(self):
        for key, value in self._ops:
            self._redis.set(key, value)
        self._ops = []


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def breaker(fake_redis):
    """Breaker with a low threshold over the fake Redis."""
    return CircuitBreaker('insights_api', fake_redis, failure_threshold=3, reset_timeout=10)


def _fail():
    raise ValueError("upstream 500")


def _trip(breaker):
    for _ in range(breaker.failure_threshold):
        with pytest.raises(ValueError):
            breaker.call(_fail)


class TestStateMachine:
    """closed → open → half_open → closed transitions."""

    def test_starts_closed(self, breaker):
        assert breaker.state == CLOSED

    def test_passes_result_through(self, breaker):
        assert breaker.call(lambda x: x * 2, 21) == 42

    def test_stays_closed_below_threshold(self, breaker, fake_redis):
        for _ in range(2):
            with pytest.raises(ValueError):
                breaker.call(_fail)
        assert breaker.state == CLOSED
        assert fake_redis.get('breaker:insights_api:failures') == '2'

    def test_opens_at_threshold(self, breaker):
        _trip(breaker)
        assert breaker.state == OPEN

    def test_open_rejects_calls(self, breaker):
        _trip(breaker)
        func = MagicMock()
        with pytest.raises(CircuitOpenError) as exc_info:
            breaker.call(func)
        func.assert_not_called()
        assert exc_info.value.name == 'insights_api'
        assert 0 <= exc_info.value.retry_after <= 10

    def test_half_open_after_timeout(self, breaker, fake_redis):
        _trip(breaker)
        fake_redis.store['breaker:insights_api:opened_at'] = str(time.time() - 20)
        assert breaker.state == HALF_OPEN

    def test_success_in_half_open_closes(self, breaker, fake_redis):
        _trip(breaker)
        fake_redis.store['breaker:insights_api:opened_at'] = str(time.time() - 20)
        assert breaker.call(lambda: 'recovered') == 'recovered'
        assert breaker.state == CLOSED
        assert fake_redis.get('breaker:insights_api:failures') == '0'

    def test_success_resets_failure_count(self, breaker, fake_redis):
        with pytest.raises(ValueError):
            breaker.call(_fail)
        breaker.call(lambda: 'ok')
        assert fake_redis.get('breaker:insights_api:failures') == '0'


class TestRedisUnavailable:
    """A broken Redis never blocks calls."""

    def test_fails_open(self):
        broken = MagicMock()
        broken.get.side_effect = ConnectionError('redis down')
        broken.incr.side_effect = ConnectionError('redis down')
        broken.pipeline.side_effect = ConnectionError('redis down')
        breaker = CircuitBreaker('svc', broken)
        assert breaker.state == CLOSED
        assert breaker.call(lambda: 'ok') == 'ok'
        with pytest.raises(ValueError):
            breaker.call(_fail)


class TestRegistry:
    """init_breakers() and get_breaker()."""

    def test_init_breakers(self, fake_redis):
        breakers = init_breakers(fake_redis)
        assert list(breakers) == ['openai']
        assert breakers['openai'].failure_threshold == 5
        assert _registry['openai'] is breakers['openai']

    def test_get_breaker_creates_on_demand(self, fake_redis):
        _registry.pop('slack', None)
        breaker = get_breaker('slack', fake_redis, failure_threshold=5)
        assert breaker.name == 'slack'
        assert breaker.failure_threshold == 5
        assert get_breaker('slack') is breaker


class TestOpenError:

    def test_carries_service_and_retry_after(self):
        err = CircuitOpenError('openai', retry_after=12.5)
        assert err.name == 'openai'
        assert err.retry_after == 12.5
        assert 'openai' in str(err)
