import asyncio
import json
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

import pytest
from sqlalchemy.orm import sessionmaker

from daily_alchemy import models  # noqa: F401
from daily_alchemy.core.config import Settings
from daily_alchemy.core.database import Base, build_engine
from daily_alchemy.llm.oracle_adapter import OracleAdapter, RetryPolicy

ADMIN_TOKEN = "test-admin-token"


class FakeClock:
    """Settable UTC clock"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class FakeOracleClient:
    """
    Stands in for an LLM client. `answers` maps a combination key ("a|b") to
    (name, emoji); anything else gets `default`. Raw strings or exceptions can
    be queued in `script` and are served first.
    """

    def __init__(self, answers=None, default=("Mystery", "❓"), delay: float = 0.0, paths=None):
        self.answers = dict(answers or {})
        self.default = default
        self.delay = delay
        self.paths = paths or []
        self.script = []
        self.calls = []

    async def complete_json(self, prompt: dict) -> str:
        self.calls.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.script:
            item = self.script.pop(0)
            if isinstance(item, BaseException):
                raise item
            return item
        if self._is_path_prompt(prompt):
            return json.dumps({"paths": self.paths})
        name, emoji = self._answer_for(prompt["user_prompt"])
        return json.dumps({"resultName": name, "resultEmoji": emoji})

    @staticmethod
    def _is_path_prompt(prompt: dict) -> bool:
        return "target element" in prompt["user_prompt"]

    def _answer_for(self, user_prompt: str):
        text = user_prompt.lower()
        for key, answer in self.answers.items():
            a, b = key.split("|")
            if (f"combine {a} " in text and f"+ {b} " in text) or (f"combine {b} " in text and f"+ {a} " in text):
                return answer
        return self.default

    @property
    def combination_calls(self) -> int:
        return sum(1 for prompt in self.calls if not self._is_path_prompt(prompt))


async def no_sleep(_seconds):
    await asyncio.sleep(0)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'daily_alchemy_test.db'}",
        ADMIN_TOKEN=ADMIN_TOKEN,
        LEASE_MAX_WAIT_SECONDS=10.0,
        LEASE_BACKOFF_INITIAL_SECONDS=0.001,
        LEASE_BACKOFF_MAX_SECONDS=0.01,
        PUZZLE_EPOCH=date(2026, 1, 23),
        PUZZLE_TIME_ZONE="America/New_York",
    )


@pytest.fixture
def engine(settings):
    engine = build_engine(settings.DATABASE_URL)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock() -> FakeClock:
    # 2026-01-25 noon in New York
    return FakeClock(datetime(2026, 1, 25, 17, 0, tzinfo=timezone.utc))


@pytest.fixture
def oracle_client() -> FakeOracleClient:
    return FakeOracleClient(answers={
        "fire|water": ("Steam", "💨"),
        "earth|water": ("Mud", "🟫"),
        "earth|fire": ("Lava", "🌋"),
        "fire|wind": ("Smoke", "🌫️"),
        "lava|water": ("Stone", "🪨"),
    })


@pytest.fixture
def oracle(oracle_client) -> OracleAdapter:
    return OracleAdapter(oracle_client, RetryPolicy(timeout_seconds=5.0), sleep=no_sleep)
