from __future__ import annotations
import asyncio
import logging
import re
from typing import AsyncIterable, Literal, Optional
from pydantic import BaseModel
from cooking_mode.models import Phase

logger = logging.getLogger(__name__)

Action = Literal["theme", "go_to", "finish", "restart", "skip"]

THEME_PHRASES = ["light", "dark"]
ADVANCE_PHRASES = ["next", "go forward", "proceed", "alright", "got it", "what's next", "continue"]
RETREAT_PHRASES = ["previous", "back"]
FINISH_PHRASES = ["complete", "done", "finished"]
RESTART_PHRASES = ["start over", "restart"]
SKIP_PHRASES = ["skip"]

PUNCTUATION = re.compile(r"[.,!?]")


class VoiceCommand(BaseModel):
    phrase: str
    action: Action
    target: Optional[int] = None
    theme: Optional[str] = None


def normalize(transcript: str) -> str:
    return re.sub(r"\s+", " ", PUNCTUATION.sub("", transcript.lower())).strip()


def _heard(phrase: str, text: str) -> bool:
    return re.search(rf"(?<![\w']){re.escape(phrase)}(?![\w'])", text) is not None


class VoiceCommandRouter:
    """Phrase table for the current phase and step position.

    Rebuilt whenever the phase, step index or step count changes so that
    step targets are always clamped to the current bounds.
    """

    def __init__(self):
        self.commands: list[VoiceCommand] = []
        self.rebuild("ingredients", 0, 0)

    def rebuild(self, phase: Phase, current_step: int, total_steps: int) -> None:
        commands = [VoiceCommand(phrase=p, action="theme", theme=p) for p in THEME_PHRASES]
        if phase == "cooking":
            last = max(total_steps - 1, 0)
            forward = min(last, current_step + 1)
            backward = max(0, current_step - 1)
            commands += [VoiceCommand(phrase=p, action="go_to", target=forward) for p in ADVANCE_PHRASES]
            commands += [VoiceCommand(phrase=p, action="go_to", target=backward) for p in RETREAT_PHRASES]
            commands += [VoiceCommand(phrase=p, action="finish", target=last) for p in FINISH_PHRASES]
            commands += [VoiceCommand(phrase=p, action="restart", target=0) for p in RESTART_PHRASES]
            commands += [VoiceCommand(phrase=p, action="skip") for p in SKIP_PHRASES]
        # Multi-word phrases first so "start over" is not shadowed by a single word.
        self.commands = sorted(commands, key=lambda c: " " not in c.phrase)

    @property
    def phrases(self) -> list[str]:
        return [c.phrase for c in self.commands]

    def match(self, transcript: str) -> Optional[VoiceCommand]:
        text = normalize(transcript)
        if not text:
            return None
        for command in self.commands:
            if _heard(command.phrase, text):
                logger.debug("Matched voice command %r in %r", command.phrase, text)
                return command
        logger.debug("No voice command matched %r", text)
        return None


class VoiceListener:
    """Feeds recognised transcripts into a session until stopped or the session closes."""

    def __init__(self, session, transcripts: AsyncIterable[str]):
        self.session = session
        self.transcripts = transcripts
        self.task: Optional[asyncio.Task] = None

    async def _consume(self) -> None:
        async for transcript in self.transcripts:
            if self.session.closed:
                break
            self.session.handle_transcript(transcript)

    def start(self) -> asyncio.Task:
        self.task = self.session.run_in_background(self._consume())
        return self.task

    async def stop(self) -> None:
        if self.task is None:
            return
        self.task.cancel()
        try:
            await self.task
        except asyncio.CancelledError:
            pass
        self.task = None
