"""
Pluggable retry policies and the retry driver used by every retrying component
"""

# Standard
from typing import Callable, Optional, TypeVar
import abc
import random
import time

# First Party
import alog

# Local
from . import config
from .exceptions import ReconkitError, assert_config
from .utils import to_seconds

log = alog.use_channel("BCKOF")

T = TypeVar("T")

## Interface ###################################################################


class BackOff(abc.ABC):
    """A BackOff produces the wait before each successive retry. A return of
    None from next_back_off means no further retries should be attempted.
    """

    @abc.abstractmethod
    def next_back_off(self) -> Optional[float]:
        """Get the number of seconds to wait before the next retry

        Returns:
            interval:  Optional[float]
                The seconds to wait or None to stop retrying
        """

    def reset(self):
        """Reset to the initial state. Called before every new operation."""


## Policies ####################################################################


class ZeroBackOff(BackOff):
    """Retry immediately, forever"""

    def next_back_off(self) -> Optional[float]:
        return 0.0


class StopBackOff(BackOff):
    """Never retry"""

    def next_back_off(self) -> Optional[float]:
        return None


class ConstantBackOff(BackOff):
    """Retry forever with a fixed interval"""

    def __init__(self, interval: float):
        self.interval = to_seconds(interval)
        assert_config(self.interval >= 0, "interval must not be negative")

    def next_back_off(self) -> Optional[float]:
        return self.interval


class MaxRetriesBackOff(BackOff):
    """Retry up to max_retries times with a fixed interval"""

    def __init__(self, max_retries: int, interval: float = 0.0):
        assert_config(max_retries >= 0, "max_retries must not be negative")
        self.max_retries = max_retries
        self.interval = to_seconds(interval)
        self._retries = 0

    def next_back_off(self) -> Optional[float]:
        if self._retries >= self.max_retries:
            return None
        self._retries += 1
        return self.interval

    def reset(self):
        self._retries = 0


class CappedRetriesBackOff(BackOff):
    """Wrap another BackOff and stop after max_retries retries since the last
    reset
    """

    def __init__(self, backoff: BackOff, max_retries: int):
        assert_config(backoff is not None, "backoff must not be None")
        assert_config(max_retries >= 0, "max_retries must not be negative")
        self.backoff = backoff
        self.max_retries = max_retries
        self._retries = 0

    def next_back_off(self) -> Optional[float]:
        if self._retries >= self.max_retries:
            return None
        interval = self.backoff.next_back_off()
        if interval is not None:
            self._retries += 1
        return interval

    def reset(self):
        self._retries = 0
        self.backoff.reset()


class MaxElapsedBackOff(BackOff):
    """Wrap another BackOff and stop once max_elapsed_time seconds have passed
    since the last reset
    """

    def __init__(
        self,
        backoff: BackOff,
        max_elapsed_time: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.backoff = backoff
        self.max_elapsed_time = to_seconds(max_elapsed_time)
        self._clock = clock
        self._start = clock()

    def next_back_off(self) -> Optional[float]:
        if self._clock() - self._start > self.max_elapsed_time:
            return None
        return self.backoff.next_back_off()

    def reset(self):
        self._start = self._clock()
        self.backoff.reset()


class ExponentialBackOff(BackOff):
    """Randomized exponential backoff. Each interval is the current interval
    scaled by a random factor in [1 - randomization_factor, 1 +
    randomization_factor]. The current interval grows by multiplier until it
    reaches max_interval. Once max_elapsed_time seconds have passed since the
    last reset, no further retries are allowed. A max_elapsed_time of None
    retries forever.
    """

    def __init__(
        self,
        initial_interval: float = 0.5,
        multiplier: float = 1.5,
        randomization_factor: float = 0.5,
        max_interval: float = 60.0,
        max_elapsed_time: Optional[float] = 900.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.initial_interval = to_seconds(initial_interval)
        self.max_interval = to_seconds(max_interval)
        self.max_elapsed_time = to_seconds(max_elapsed_time)
        self.multiplier = multiplier
        self.randomization_factor = randomization_factor
        assert_config(self.initial_interval >= 0, "initial_interval must be >= 0")
        assert_config(multiplier >= 1, "multiplier must be >= 1")
        assert_config(
            0 <= randomization_factor <= 1, "randomization_factor must be in [0, 1]"
        )
        self._clock = clock
        self._current_interval = self.initial_interval
        self._start = clock()

    def next_back_off(self) -> Optional[float]:
        if (
            self.max_elapsed_time is not None
            and self._clock() - self._start > self.max_elapsed_time
        ):
            return None
        delta = self.randomization_factor * self._current_interval
        interval = random.uniform(
            self._current_interval - delta, self._current_interval + delta
        )
        self._current_interval = min(
            self._current_interval * self.multiplier, self.max_interval
        )
        return interval

    def reset(self):
        self._current_interval = self.initial_interval
        self._start = self._clock()


## Factories ###################################################################


def new_exponential(
    max_elapsed_time: Optional[float] = None,
    max_interval: Optional[float] = None,
) -> ExponentialBackOff:
    """Construct the default exponential backoff used for retried resource
    operations. Unset values come from the retry library config.
    """
    return ExponentialBackOff(
        max_elapsed_time=to_seconds(
            max_elapsed_time
            if max_elapsed_time is not None
            else config.retry.max_elapsed_time
        ),
        max_interval=to_seconds(
            max_interval if max_interval is not None else config.retry.max_interval
        ),
    )


def new_max_retries(max_retries: Optional[int] = None) -> CappedRetriesBackOff:
    """Construct the default bounded backoff used when decorating a list of
    resources: the default exponential backoff, stopped after max_retries
    retries. Unset values come from the retry library config.
    """
    return CappedRetriesBackOff(
        new_exponential(),
        max_retries if max_retries is not None else config.retry.wrap_max_retries,
    )


## Driver ######################################################################


def retry_notify(
    operation: Callable[[], T],
    backoff: BackOff,
    notify: Optional[Callable[[Exception, float], None]] = None,
    wait: Optional[Callable[[float], bool]] = None,
    is_retryable: Optional[Callable[[Exception], bool]] = None,
) -> T:
    """Run operation until it succeeds or the backoff is exhausted

    Fatal reconkit errors are never retried. When the backoff gives up, the
    last error is re-raised unchanged.

    Args:
        operation:  Callable[[], T]
            The operation to attempt
        backoff:  BackOff
            The policy deciding the wait between attempts. It is reset before
            the first attempt.
        notify:  Optional[Callable[[Exception, float], None]]
            Called with the error and the upcoming wait before each retry
        wait:  Optional[Callable[[float], bool]]
            Sleep function. If it returns True the wait was interrupted and the
            last error is re-raised without further attempts.
        is_retryable:  Optional[Callable[[Exception], bool]]
            If given, errors for which it returns False are raised immediately

    Returns:
        result:  T
            The result of the first successful attempt
    """
    backoff.reset()
    while True:
        try:
            return operation()
        except Exception as err:  # pylint: disable=broad-exception-caught
            if isinstance(err, ReconkitError) and err.is_fatal_error:
                raise
            if is_retryable is not None and not is_retryable(err):
                raise
            interval = backoff.next_back_off()
            if interval is None:
                log.debug2("Backoff exhausted, giving up: %s", err)
                raise
            if notify is not None:
                notify(err, interval)
            if wait is not None:
                if wait(interval):
                    log.debug2("Retry wait interrupted, giving up: %s", err)
                    raise
            elif interval > 0:
                time.sleep(interval)
