"""Fixed pacing for sequential provider calls.

Synthesis and sound-effect generation call the speech provider once per item
in a plain loop; a `CallPacer` inserts the same cooldown after each call.
"""

from __future__ import annotations

from dataclasses import dataclass
from time import sleep
from typing import Callable


@dataclass(slots=True)
class CallPacer:
    """Count paced calls and wait `delay_seconds` after each one.

    The delay is not adaptive: it is paid even when the provider answered
    quickly, and a zero or negative delay disables waiting.
    """

    delay_seconds: float = 0.5
    sleeper: Callable[[float], None] = sleep
    calls: int = 0

    def after_call(self) -> None:
        self.calls += 1
        if self.delay_seconds > 0.0:
            self.sleeper(self.delay_seconds)
