from __future__ import annotations
import asyncio
import logging
from typing import Optional
from cooking_mode.models import TimerState

logger = logging.getLogger(__name__)


class TimerController:
    """Countdown for the current step.

    A step without an estimated duration has no timer. Expiry is reported once
    per transition of the remaining time from above zero to zero.
    """

    def __init__(self):
        self.state: Optional[TimerState] = None

    @property
    def expired(self) -> bool:
        return self.state is not None and self.state.remaining_time == 0

    def start(self, seconds: int) -> TimerState:
        self.state = TimerState(total_time=seconds, remaining_time=seconds, is_running=True)
        return self.state

    def discard(self) -> None:
        self.state = None

    def tick(self) -> bool:
        """Advance one second. Returns True only on the tick that reaches zero."""
        if self.state is None or not self.state.is_running or self.state.remaining_time <= 0:
            return False
        self.state.remaining_time -= 1
        if self.state.remaining_time == 0:
            self.state.is_running = False
            return True
        return False

    def add_time(self, seconds: int) -> None:
        if self.state is None:
            return
        self.state.remaining_time += seconds
        self.state.total_time = max(self.state.total_time + seconds, self.state.remaining_time)
        if self.state.remaining_time > 0:
            self.state.is_running = True


def format_clock(seconds: int) -> str:
    minutes, secs = divmod(max(seconds, 0), 60)
    return f"{minutes}:{secs:02d}"


def progress(state: TimerState) -> float:
    if state.total_time <= 0:
        return 0.0
    return state.remaining_time / state.total_time


async def run_clock(session, interval: float = 1.0) -> None:
    """Tick the session's timer once per interval until the session closes."""
    while not session.closed:
        await asyncio.sleep(interval)
        if session.closed:
            break
        session.tick()
    logger.debug("Clock stopped for recipe %s", session.recipe.id)
