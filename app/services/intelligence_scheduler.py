"""
DocuMind - Daily Intelligence Scheduler

Once a day, at a fixed local wall-clock hour, ask the generative model for a
batch of recent industry news and append it to the intelligence feed.

State machine:
    IDLE --start()--> SCHEDULED --timer fires--> GENERATING --success/failure--> SCHEDULED
    any --stop()--> IDLE

- Exactly one timer task is live while running; start() on a running
  scheduler is a no-op.
- A failed cycle is logged and the next attempt is the following day; there
  is no sooner retry.
- trigger() generates immediately, leaves the timer alone, and lets failures
  propagate to the caller.
"""

import asyncio
import json
import logging
import re
from datetime import datetime, time, timedelta, tzinfo
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from app.core.config import Settings, get_settings
from app.core.database import get_session_factory
from app.core.errors import GenerationError
from app.core.utc import app_timezone, localize, to_utc, utc_now
from app.models.models import IntelCategory
from app.services.ai_service import GenerativeTextService, get_ai_service
from app.services.intelligence import bulk_insert

logger = logging.getLogger(__name__)

POST_STAGGER = timedelta(minutes=30)

_FENCE_OPEN = re.compile(r"^```[a-zA-Z]*\s*")
_FENCE_CLOSE = re.compile(r"\s*```$")


# =============================================================================
# Generation routine
# =============================================================================

def build_prompt(count: int, recency_days: int, industry: str) -> str:
    categories = ", ".join(f'"{c.value}"' for c in IntelCategory)
    return f"""You are a senior analyst covering the {industry} industry.
Produce exactly {count} intelligence items for a company-internal "intelligence radar".
Only use news published within the last {recency_days} days.

Each item is a JSON object with these fields:
- category: one of {categories}
- title: specific headline with concrete figures
- source: name of the publishing outlet
- summary: 80-150 words of facts and numbers
- aiInsight: 50-100 words of actionable advice for the sales team
- tags: array of 3-4 keyword strings

Cover at least two different categories and avoid repeating a topic.

Return only the JSON array, with no other text and no Markdown:
[
  {{"category": "...", "title": "...", "source": "...", "summary": "...", "aiInsight": "...", "tags": ["...", "..."]}}
]"""


def strip_code_fences(text: str) -> str:
    """Remove an optional ```json ... ``` wrapper."""
    text = text.strip()
    if text.startswith("```"):
        text = _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", text))
    return text.strip()


def _coerce_category(value: Any) -> str:
    try:
        return IntelCategory(value).value
    except ValueError:
        return IntelCategory.industry.value


def parse_posts(raw: str, now: datetime) -> list[dict]:
    """
    Turn raw model output into rows for `intelligence_posts`.

    Item i is published at now - i * 30 minutes so the batch reads as a
    staggered feed.

    Raises:
        GenerationError: not JSON, not a non-empty array, or an item lacks
            a title or summary
    """
    try:
        items = json.loads(strip_code_fences(raw))
    except json.JSONDecodeError as e:
        raise GenerationError(f"AI returned invalid JSON: {e}") from e

    if not isinstance(items, list) or not items:
        raise GenerationError("AI returned invalid format: expected a non-empty JSON array")

    rows = []
    for idx, item in enumerate(items):
        if not isinstance(item, dict) or not item.get("title") or not item.get("summary"):
            raise GenerationError(f"AI returned an incomplete item at position {idx}")
        tags = item.get("tags") or []
        rows.append({
            "category": _coerce_category(item.get("category") or IntelCategory.industry.value),
            "title": str(item["title"])[:255],
            "source": str(item.get("source") or "")[:255],
            "summary": str(item["summary"]),
            "ai_insight": item.get("aiInsight") or item.get("ai_insight") or None,
            "tags": [str(t) for t in tags] if isinstance(tags, list) else [],
            "published_at": now - idx * POST_STAGGER,
            "created_at": now,
        })
    return rows


async def generate_intelligence(
    ai_service: GenerativeTextService,
    session_factory=None,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
) -> int:
    """
    Run one generation cycle: prompt, parse, single bulk insert.

    Returns the number of posts written. Any failure propagates and leaves
    the feed untouched.
    """
    settings = settings or get_settings()
    session_factory = session_factory or get_session_factory()
    now = to_utc(now or utc_now())

    logger.info("Starting AI intelligence generation")
    prompt = build_prompt(
        settings.intelligence_post_count,
        settings.intelligence_recency_days,
        settings.intelligence_industry,
    )
    raw = await ai_service.generate(prompt, search=True)
    rows = parse_posts(raw, now)

    async with session_factory() as db:
        await bulk_insert(db, rows)
        await db.commit()

    logger.info("Generated %s intelligence posts", len(rows))
    return len(rows)


# =============================================================================
# Scheduler
# =============================================================================

class SchedulerState(str, Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    GENERATING = "generating"


class IntelligenceScheduler:
    """
    Owns the daily timer and the last-generation bookkeeping.

    `clock` returns the current aware datetime, `sleep` waits a number of
    seconds, and `generator` runs one generation cycle; all three are
    injectable for tests.
    """

    def __init__(
        self,
        session_factory=None,
        ai_service: Optional[GenerativeTextService] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        generator: Optional[Callable[[], Awaitable[int]]] = None,
    ):
        self.settings = settings or get_settings()
        self._session_factory = session_factory
        self._ai_service = ai_service
        self._tz: Optional[tzinfo] = app_timezone(self.settings.app_timezone)
        self._clock = clock or (lambda: utc_now().astimezone(self._tz))
        self._sleep = sleep
        self._generator = generator

        self._task: Optional[asyncio.Task] = None
        self.state = SchedulerState.IDLE
        self.next_fire_at: Optional[datetime] = None
        self.last_generated_at: Optional[datetime] = None

    @property
    def hour(self) -> int:
        return self.settings.intelligence_schedule_hour

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def next_fire_time(self, now: datetime) -> datetime:
        """Today at HH:00 local if `now` is strictly before it, else tomorrow."""
        local = now.astimezone(self._tz)
        target = localize(datetime.combine(local.date(), time(self.hour)), self._tz)
        if local >= target:
            target = localize(datetime.combine(local.date() + timedelta(days=1), time(self.hour)), self._tz)
        return target

    @staticmethod
    def _seconds_until(target: datetime, now: datetime) -> float:
        # same-zone subtraction is wall-clock arithmetic; go through UTC
        return (to_utc(target) - to_utc(now)).total_seconds()

    def schedule_next(self) -> datetime:
        self.next_fire_at = self.next_fire_time(self._clock())
        self.state = SchedulerState.SCHEDULED
        now = self._clock()
        hours = self._seconds_until(self.next_fire_at, now) / 3600
        logger.info(
            "Next intelligence update scheduled at %s (in %.1fh)",
            self.next_fire_at.isoformat(), hours,
        )
        return self.next_fire_at

    async def _generate(self, ai_service: Optional[GenerativeTextService] = None) -> int:
        if self._generator is not None:
            count = await self._generator()
        else:
            count = await generate_intelligence(
                ai_service or self._ai_service or get_ai_service(),
                session_factory=self._session_factory,
                settings=self.settings,
            )
        self.last_generated_at = utc_now()
        return count

    async def run_cycle(self) -> None:
        """Wait for the scheduled time, generate, reschedule. Never raises on generation failure."""
        if self.next_fire_at is None:
            self.schedule_next()
        delay = max(0.0, self._seconds_until(self.next_fire_at, self._clock()))
        await self._sleep(delay)

        self.state = SchedulerState.GENERATING
        try:
            await self._generate()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Scheduled intelligence generation failed; next attempt tomorrow")
        finally:
            self.state = SchedulerState.SCHEDULED
        self.schedule_next()

    async def _loop(self) -> None:
        while True:
            await self.run_cycle()

    def start(self) -> None:
        if self.running:
            return
        logger.info("Intelligence scheduler started - updates daily at %02d:00", self.hour)
        self.schedule_next()
        self._task = asyncio.create_task(self._loop(), name="intelligence-scheduler")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            logger.info("Intelligence scheduler stopped")
        self.state = SchedulerState.IDLE
        self.next_fire_at = None

    async def trigger(self, ai_service: Optional[GenerativeTextService] = None) -> int:
        """Manual generation. Leaves the timer alone; failures propagate."""
        logger.info("Manual intelligence generation triggered")
        return await self._generate(ai_service)

    def status(self) -> dict:
        next_fire = self.next_fire_at or self.next_fire_time(self._clock())
        return {
            "running": self.running,
            "state": self.state.value,
            "next_update_at": to_utc(next_fire).isoformat(),
            "last_generated_at": self.last_generated_at.isoformat() if self.last_generated_at else None,
            "schedule": f"daily at {self.hour:02d}:00",
        }
