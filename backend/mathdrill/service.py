from __future__ import annotations
import asyncio
import logging
import time
import uuid
from dataclasses import replace
from functools import partial
from typing import Callable, Dict, List, Optional, Set

from . import context as ctxops
from .coaching import build_summary, request_coaching
from .context import SessionContext
from .drill import DrillPhase
from .gemini_client import GeminiClient
from .models import Question, QuestionType
from .questions import fetch_questions
from .settings import settings

logger = logging.getLogger(__name__)


class SessionNotFound(LookupError):
    pass


def needs_coaching(before: SessionContext, after: SessionContext) -> bool:
    """True when ``after`` is the step that finished a drill."""
    return (
        after.coaching_loading
        and after.last_result is not None
        and (before.last_result is None or before.last_result.id != after.last_result.id)
    )


class DrillService:
    """Holds every live SessionContext and runs the async work around it.

    Contexts are replaced wholesale; nothing between reading a context and
    storing its successor awaits, so events for one session apply in order.
    """

    def __init__(
        self,
        *,
        client_factory: Optional[Callable[[], GeminiClient]] = None,
        clock: Callable[[], float] = time.monotonic,
        countdown: Optional[bool] = None,
        tick_interval: float = 1.0,
        question_count: Optional[int] = None,
        seconds_per_question: Optional[int] = None,
        idle_timeout: Optional[float] = None,
    ) -> None:
        self._sessions: Dict[str, SessionContext] = {}
        self._client_factory = client_factory
        self._clock = clock
        self._countdown = settings.drill_countdown_enabled if countdown is None else countdown
        self._tick_interval = tick_interval
        self.question_count = question_count or settings.drill_question_count
        self.seconds_per_question = seconds_per_question or settings.drill_seconds_per_question
        self.idle_timeout = idle_timeout or settings.session_idle_minutes * 60
        self._tasks: Set[asyncio.Task] = set()
        self._countdowns: Dict[str, asyncio.Task] = {}

    @property
    def countdown_enabled(self) -> bool:
        return self._countdown

    # ---- session store ----

    def get(self, session_id: str) -> SessionContext:
        ctx = self._sessions.get(session_id)
        if ctx is None:
            raise SessionNotFound(session_id)
        return ctx

    def has_session(self, session_id: str) -> bool:
        return session_id in self._sessions

    def touch(self, session_id: str) -> bool:
        """Mark the session as seen now. False when it no longer exists."""
        ctx = self._sessions.get(session_id)
        if ctx is None:
            return False
        self._sessions[session_id] = replace(ctx, last_seen=self._clock())
        return True

    def _put(self, ctx: SessionContext) -> SessionContext:
        self._sessions[ctx.session_id] = ctx
        return ctx

    def login(self, name: str) -> SessionContext:
        ctx = ctxops.login(SessionContext(session_id=uuid.uuid4().hex, last_seen=self._clock()), name)
        logger.info("Session %s opened for %s", ctx.session_id, ctx.user.name)
        return self._put(ctx)

    def logout(self, session_id: str) -> None:
        # In-flight loads and coaching find no session and drop their results
        self.get(session_id)
        self._stop_countdown(session_id)
        self._sessions.pop(session_id, None)

    def purge_idle(self) -> int:
        """Drop sessions not seen for ``idle_timeout`` seconds; returns how many."""
        cutoff = self._clock() - self.idle_timeout
        stale = [sid for sid, ctx in self._sessions.items() if ctx.last_seen < cutoff]
        for session_id in stale:
            self._stop_countdown(session_id)
            del self._sessions[session_id]
        if stale:
            logger.info("Dropped %d idle session(s), %d left", len(stale), len(self._sessions))
        return len(stale)

    # ---- drill lifecycle ----

    async def start_drill(self, session_id: str, topic: QuestionType, *, timed: bool = True) -> SessionContext:
        ctx = self._put(ctxops.start_drill(self.get(session_id), topic, timed=timed, time_budget=self.seconds_per_question))
        self._stop_countdown(session_id)
        return await self._load(ctx)

    async def retry(self, session_id: str) -> SessionContext:
        ctx = self._put(ctxops.retry(self.get(session_id), time_budget=self.seconds_per_question))
        self._stop_countdown(session_id)
        if ctx.drill is None:
            return ctx
        return await self._load(ctx)

    async def _load(self, ctx: SessionContext) -> SessionContext:
        generation = ctx.generation
        questions = await self._fetch(ctx.topic)
        current = self._sessions.get(ctx.session_id)
        if current is None:
            return ctx
        loaded = self._put(ctxops.drill_loaded(current, generation, questions, self._clock()))
        if not loaded.is_current(generation):
            return loaded
        if not questions:
            logger.info("No questions for %s; session %s back on dashboard", ctx.topic.value, ctx.session_id)
        self._arm_countdown(loaded)
        return loaded

    async def _fetch(self, topic: QuestionType) -> List[Question]:
        if self._client_factory is None:
            return await fetch_questions(topic, self.question_count)
        client = self._client_factory()
        try:
            return await fetch_questions(topic, self.question_count, client=client)
        finally:
            await client.aclose()

    def submit(
        self,
        session_id: str,
        answer: Optional[str],
        *,
        question_id: Optional[str] = None,
        option_index: Optional[int] = None,
    ) -> SessionContext:
        before = self.get(session_id)
        after = ctxops.submit_answer(before, answer, self._clock(), question_id=question_id, option_index=option_index)
        return self._advance(before, after)

    def skip(self, session_id: str, *, question_id: Optional[str] = None) -> SessionContext:
        before = self.get(session_id)
        return self._advance(before, ctxops.skip_question(before, self._clock(), question_id=question_id))

    def _advance(self, before: SessionContext, after: SessionContext) -> SessionContext:
        self._put(after)
        if after.drill is not before.drill:
            # Each question gets its own full countdown
            self._arm_countdown(after)
        return after

    def tick(self, session_id: str) -> SessionContext:
        ctx = self.get(session_id)
        return self._put(ctxops.countdown_tick(ctx, ctx.generation, self._clock()))

    def cancel(self, session_id: str) -> SessionContext:
        ctx = self._put(ctxops.cancel_drill(self.get(session_id)))
        self._stop_countdown(session_id)
        return ctx

    def home(self, session_id: str) -> SessionContext:
        ctx = self._put(ctxops.home(self.get(session_id)))
        self._stop_countdown(session_id)
        return ctx

    # ---- async completions ----

    async def run_coaching(self, session_id: str, generation: int, result_id: str) -> None:
        ctx = self._sessions.get(session_id)
        if ctx is None or ctx.last_result is None or ctx.last_result.id != result_id:
            return
        summary = build_summary(ctx.last_result)
        if self._client_factory is None:
            text = await request_coaching(summary)
        else:
            client = self._client_factory()
            try:
                text = await request_coaching(summary, client=client)
            finally:
                await client.aclose()
        current = self._sessions.get(session_id)
        if current is not None:
            self._put(ctxops.coaching_ready(current, generation, result_id, text))

    def _arm_countdown(self, ctx: SessionContext) -> None:
        """Restart the countdown from a full second for the question ``ctx`` shows."""
        self._stop_countdown(ctx.session_id)
        drill = ctx.drill
        if not self._countdown or drill is None or drill.phase is not DrillPhase.ACTIVE or drill.remaining is None:
            return
        task = self._spawn(self._run_countdown(ctx.session_id, ctx.generation, drill.index))
        self._countdowns[ctx.session_id] = task
        task.add_done_callback(partial(self._forget_countdown, ctx.session_id))

    def _forget_countdown(self, session_id: str, task: asyncio.Task) -> None:
        if self._countdowns.get(session_id) is task:
            del self._countdowns[session_id]

    def _stop_countdown(self, session_id: str) -> None:
        task = self._countdowns.pop(session_id, None)
        if task is not None:
            task.cancel()

    async def _run_countdown(self, session_id: str, generation: int, index: int) -> None:
        while True:
            await asyncio.sleep(self._tick_interval)
            before = self._sessions.get(session_id)
            if (
                before is None
                or not before.is_current(generation)
                or before.drill is None
                or before.drill.index != index
            ):
                return
            after = self._put(ctxops.countdown_tick(before, generation, self._clock()))
            if needs_coaching(before, after):
                await self.run_coaching(session_id, after.generation, after.last_result.id)
                return
            # An expiry lands on a tick boundary, so the next question keeps this cadence
            if after.drill is not None:
                index = after.drill.index

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def aclose(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        self._countdowns.clear()


service = DrillService()


def get_service() -> DrillService:
    return service
