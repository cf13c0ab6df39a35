"""
Reliability Module

Circuit breaker, rate limiter and timeout helpers wrapped around every
external dependency.
"""

from .circuit import CircuitBreaker, CircuitBreakerConfig, CircuitState
from .rate_limiter import RateLimiter
from .timeout import call_with_timeout

__all__ = [
    'CircuitBreaker',
    'CircuitBreakerConfig',
    'CircuitState',
    'RateLimiter',
    'call_with_timeout',
]
