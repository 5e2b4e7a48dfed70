"""Time-ordered unique key generation.

Keys are 20 characters: 8 characters encoding the creation time in
milliseconds followed by 12 random characters, all drawn from an alphabet
whose ASCII order matches its numeric order. Keys therefore sort
lexicographically by creation time. When two keys are generated within the
same millisecond the random suffix of the previous key is incremented instead
of re-rolled, so keys from one generator are strictly increasing.
"""

from __future__ import annotations

import secrets
from collections.abc import Callable

from yappin.db.time import now_ms

PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"
TIME_CHARS = 8
RANDOM_CHARS = 12


class PushIdGenerator:
    """Stateful generator of monotonically increasing push keys."""

    def __init__(self, clock: Callable[[], int] = now_ms) -> None:
        self._clock = clock
        self._last_time = -1
        self._last_random = [0] * RANDOM_CHARS

    def __call__(self) -> str:
        now = self._clock()
        duplicate_time = now <= self._last_time
        if duplicate_time:
            # Never go backwards even if the wall clock does.
            now = self._last_time
        self._last_time = now

        time_chars = []
        remaining = now
        for _ in range(TIME_CHARS):
            time_chars.append(PUSH_CHARS[remaining % 64])
            remaining //= 64
        if remaining:
            raise ValueError("Timestamp does not fit in a push key")
        key = "".join(reversed(time_chars))

        if not duplicate_time:
            self._last_random = [secrets.randbelow(64) for _ in range(RANDOM_CHARS)]
        else:
            index = RANDOM_CHARS - 1
            while index >= 0 and self._last_random[index] == 63:
                self._last_random[index] = 0
                index -= 1
            if index < 0:
                # Exhausted the suffix space for this millisecond; borrow the next one.
                self._last_time += 1
                return self()
            self._last_random[index] += 1

        return key + "".join(PUSH_CHARS[value] for value in self._last_random)


def decode_push_time(key: str) -> int:
    """Return the millisecond timestamp embedded in a push key."""
    value = 0
    for char in key[:TIME_CHARS]:
        value = value * 64 + PUSH_CHARS.index(char)
    return value
