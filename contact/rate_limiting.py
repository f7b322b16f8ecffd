"""
Rate Limiting Utilities for Contact Form

Prevents spam and abuse of the contact form.
"""
import logging
import threading
import time
from dataclasses import dataclass
from functools import wraps

from django.conf import settings
from django.core.cache import caches
from rest_framework.response import Response

from .exceptions import RateLimited

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """Get client IP address from request."""
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def get_rate_limit_key(request):
    """
    Client address the quota is counted against.

    X-Forwarded-For is client controlled, so it is only used when the app
    sits behind a proxy that sets it (CONTACT_TRUST_FORWARDED_FOR).
    """
    if getattr(settings, 'CONTACT_TRUST_FORWARDED_FOR', False):
        return get_client_ip(request)
    return request.META.get('REMOTE_ADDR') or None


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    count: int
    retry_after: int = 0


class RateLimiter:
    """
    Fixed-quota limiter over a rolling window per client identifier.

    A window opens with the first request from an identifier and lasts
    ``window_seconds``. Every request within the window is counted, denied
    ones included; only the first ``max_requests`` are allowed.

    Counters live in the Django cache so ``add``/``incr`` give atomic
    increments (LocMemCache in-process, Redis when enabled).

    Usage:
        limiter = RateLimiter(max_requests=5, window_seconds=3600)
        decision = limiter.hit('203.0.113.7')
        if not decision.allowed:
            ...
    """

    _reset_lock = threading.Lock()

    def __init__(self, max_requests=5, window_seconds=3600, cache=None,
                 key_prefix='contact-rate', clock=time.time):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.cache = cache if cache is not None else caches['default']
        self.key_prefix = key_prefix
        self.clock = clock

    @classmethod
    def from_settings(cls, **kwargs):
        kwargs.setdefault(
            'max_requests',
            getattr(settings, 'CONTACT_FORM_RATE_LIMIT_PER_HOUR', 5)
        )
        kwargs.setdefault(
            'window_seconds',
            getattr(settings, 'CONTACT_FORM_RATE_LIMIT_WINDOW', 3600)
        )
        return cls(**kwargs)

    def _keys(self, identifier):
        base = f"{self.key_prefix}:{identifier}"
        return f"{base}:start", f"{base}:count"

    def _window_start(self, identifier, now):
        """Return the start of the current window, opening a new one if needed."""
        start_key, count_key = self._keys(identifier)
        started = self.cache.get(start_key)

        if started is not None and now - started < self.window_seconds:
            return started

        with self._reset_lock:
            started = self.cache.get(start_key)
            if started is None or now - started >= self.window_seconds:
                # Counter first: readers only trust the count once start is set
                self.cache.set(count_key, 0, timeout=self.window_seconds)
                self.cache.set(start_key, now, timeout=self.window_seconds)
                started = now
        return started

    def hit(self, identifier):
        """
        Count a request from identifier and decide whether it may proceed.

        Returns:
            RateLimitDecision
        """
        now = self.clock()
        started = self._window_start(identifier, now)
        _, count_key = self._keys(identifier)

        self.cache.add(count_key, 0, timeout=self.window_seconds)
        try:
            count = self.cache.incr(count_key)
        except ValueError:
            # Counter evicted between add and incr
            self.cache.set(count_key, 1, timeout=self.window_seconds)
            count = 1

        if count > self.max_requests:
            retry_after = max(int(started + self.window_seconds - now), 0)
            return RateLimitDecision(False, count, retry_after)

        return RateLimitDecision(True, count)

    def reset(self, identifier):
        self.cache.delete_many(list(self._keys(identifier)))


def rate_limit_contact_form(view_func):
    """
    Decorator for rate limiting contact form submissions.

    Runs before the view touches the request body. The view supplies its
    limiter through ``get_rate_limiter()``.
    """
    @wraps(view_func)
    def wrapped_view(self, request, *args, **kwargs):
        ip = get_rate_limit_key(request)
        decision = self.get_rate_limiter().hit(ip or 'unknown')

        if not decision.allowed:
            logger.warning(
                f"Contact form rate limit exceeded for {ip} "
                f"({decision.count} requests, retry after {decision.retry_after}s)"
            )
            error = RateLimited(retry_after=decision.retry_after)
            return Response(
                error.as_payload(),
                status=error.status_code,
                headers={'Retry-After': str(error.retry_after)}
            )

        return view_func(self, request, *args, **kwargs)

    return wrapped_view
