"""
Common utilities shared across reconkit
"""

# Standard
from datetime import timedelta
from typing import Any, Optional, Union
import re

# First Party
import alog

# Local
from . import constants

log = alog.use_channel("UTILS")

__MISSING__ = "__MISSING__"


## Time Functions ##############################################################

_duration_regex = re.compile(
    r"^((?P<hours>\d+?)hr)?((?P<minutes>\d+?)m)?((?P<seconds>\d*\.?\d+?)s)?$"
)


def parse_time_delta(
    time_str: str,
) -> Optional[timedelta]:  # pylint: disable=inconsistent-return-statements
    """Parse a string into a timedelta. Accepts values in the
    following formats: 1hr, 5m, 10s, 1m30s, 0.5s

    Args:
        time_str: str
            The string representation of a timedelta

    Returns:
        result: Optional[timedelta]
            The parsed timedelta if one could be found
    """
    parts = _duration_regex.match(time_str)
    if not parts or all(part is None for part in parts.groupdict().values()):
        return None
    time_params = {}
    for name, param in parts.groupdict().items():
        if param:
            time_params[name] = float(param)
    return timedelta(**time_params)


def to_seconds(value: Union[str, int, float, timedelta, None]) -> Optional[float]:
    """Normalize a duration given as a config string, a number of seconds, or a
    timedelta into a float number of seconds

    Args:
        value:  Union[str, int, float, timedelta, None]
            The duration to normalize

    Returns:
        seconds:  Optional[float]
            The number of seconds or None if value is None
    """
    if value is None:
        return None
    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, str):
        delta = parse_time_delta(value)
        if delta is not None:
            return delta.total_seconds()
    raise ValueError(f"Cannot parse duration: {value!r}")


## Dict Functions ##############################################################


def nested_get(dct: dict, key: str, dflt=None) -> Any:
    """Helper to get values from a dict using 'foo.bar' key notation

    Args:
        dct:  dict
            The dict to search
        key:  str
            Key that may contain '.' notation indicating dict nesting

    Returns:
        val:  Any
            Whatever is found at the given key or None if the key is not found.
            This includes missing intermediate dicts.
    """
    parts = key.split(constants.NESTED_DICT_DELIM)
    for i, part in enumerate(parts[:-1]):
        dct = dct.get(part, __MISSING__)
        if dct is __MISSING__:
            return dflt
        if not isinstance(dct, dict):
            raise TypeError(
                f"Intermediate key {constants.NESTED_DICT_DELIM.join(parts[:i])} is not a dict"
            )
    return dct.get(parts[-1], dflt)


## String Functions ############################################################

_word_split_regex = re.compile(r"[-+ _]+")


def to_camel_case(name: str) -> str:
    """Convert a service name into lower camel case so that "foo-bar",
    "foo+bar", "foo bar", "foo_bar", and "fooBar" all become "fooBar"
    """
    words = [word for word in _word_split_regex.split(name) if word]
    if not words:
        return ""
    first, rest = words[0], words[1:]
    return first[:1].lower() + first[1:] + "".join(
        word[:1].upper() + word[1:] for word in rest
    )
