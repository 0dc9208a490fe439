"""
Redis-backed circuit breaker for outbound API calls (currently OpenAI).

State lives in Redis so the web process and RQ workers trip and recover
together:

    closed ──(failure_threshold consecutive errors)──> open
    open ──(reset_timeout elapsed)──> half_open ──(probe ok)──> closed
                                          └──────(probe fails)──> open

Redis trouble never blocks a call; the breaker then behaves as closed.
"""
import logging
import time

logger = logging.getLogger('services.circuit_breaker')

CLOSED = 'closed'
OPEN = 'open'
HALF_OPEN = 'half_open'


class CircuitOpenError(Exception):
    """Raised instead of calling a service whose breaker is open."""
    def __init__(self, name, retry_after=None):
        self.name = name
        self.retry_after = retry_after
        super().__init__(f"Service '{name}' is unavailable (circuit open)")


class CircuitBreaker:
    """
    Wraps calls to one named service:

        breaker = CircuitBreaker('openai', redis_client, failure_threshold=5, reset_timeout=60)
        response = breaker.call(client.chat.completions.create, model=..., messages=...)
    """

    KEY_PREFIX = 'breaker'

    def __init__(self, name, redis_client, failure_threshold=3, reset_timeout=300):
        self.name = name
        self.redis = redis_client
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout

    def _key(self, field):
        return f'{self.KEY_PREFIX}:{self.name}:{field}'

    def _opened_at(self):
        raw = self.redis.get(self._key('opened_at'))
        return float(raw) if raw else None

    @property
    def state(self):
        """Current state; an expired open breaker moves to half_open on read."""
        try:
            current = self.redis.get(self._key('state')) or CLOSED
            if current != OPEN:
                return current
            opened_at = self._opened_at()
            if opened_at is not None and time.time() - opened_at > self.reset_timeout:
                self.redis.set(self._key('state'), HALF_OPEN)
                logger.info("Circuit '%s' half-open, allowing a probe call", self.name)
                return HALF_OPEN
            return OPEN
        except Exception as e:
            logger.debug("Circuit '%s' state unavailable (%s), treating as closed", self.name, e)
            return CLOSED

    def _retry_after(self):
        try:
            opened_at = self._opened_at()
        except Exception:
            return None
        if opened_at is None:
            return None
        return max(0.0, self.reset_timeout - (time.time() - opened_at))

    def call(self, func, *args, **kwargs):
        """Run func(*args, **kwargs) unless the breaker is open."""
        if self.state == OPEN:
            raise CircuitOpenError(self.name, retry_after=self._retry_after())
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            self._record_failure(e)
            raise
        self._record_success()
        return result

    def _record_success(self):
        try:
            pipe = self.redis.pipeline()
            pipe.set(self._key('state'), CLOSED)
            pipe.set(self._key('failures'), 0)
            pipe.execute()
        except Exception as e:
            logger.debug("Circuit '%s' could not record success: %s", self.name, e)

    def _record_failure(self, error):
        try:
            failures = self.redis.incr(self._key('failures'))
        except Exception as e:
            logger.debug("Circuit '%s' could not record failure: %s", self.name, e)
            return
        if failures < self.failure_threshold:
            logger.info("Circuit '%s' failure %d/%d: %s",
                        self.name, failures, self.failure_threshold, error)
            return
        try:
            pipe = self.redis.pipeline()
            pipe.set(self._key('state'), OPEN)
            pipe.set(self._key('opened_at'), time.time())
            pipe.execute()
        except Exception as e:
            logger.debug("Circuit '%s' could not open: %s", self.name, e)
            return
        logger.warning("Circuit '%s' opened after %d consecutive failures: %s",
                       self.name, failures, error)


# ── Named breakers ────────────────────────────────────────────────────────────

_registry = {}


def get_breaker(name, redis_client=None, **kwargs):
    """The breaker registered under name, created on first use."""
    breaker = _registry.get(name)
    if breaker is None:
        if redis_client is None:
            from campaign_metrics.extensions import redis_client
        breaker = _registry[name] = CircuitBreaker(name, redis_client, **kwargs)
    return breaker


def init_breakers(redis_client):
    """Register the breakers for every external API the app calls."""
    breakers = {
        'openai': CircuitBreaker('openai', redis_client, failure_threshold=5, reset_timeout=60),
    }
    _registry.update(breakers)
    return breakers
