"""Shared fixtures: a seeded SQLite database per test and a recording notifier."""

from __future__ import annotations

import pytest
import pytest_asyncio

from authcore.config import Settings
from authcore.context import AppContext
from authcore.database.engine import init_db
from authcore.database.seed import seed_catalog
from authcore.models.otp import OtpPurpose
from authcore.services.notifier import Notifier

PASSWORD = "Str0ng!Pass"


class RecordingNotifier(Notifier):
    """Keeps every dispatched code in memory instead of sending it."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, OtpPurpose]] = []

    async def send_otp(self, identifier: str, code: str, purpose: OtpPurpose) -> None:
        self.sent.append((identifier, code, purpose))

    def last_code(self, identifier: str, purpose: OtpPurpose | None = None) -> str:
        for sent_to, code, sent_for in reversed(self.sent):
            if sent_to == identifier and (purpose is None or sent_for == purpose):
                return code
        raise LookupError(f"no code sent to {identifier}")


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'authcore.db'}",
        jwt_access_secret="test-access-secret-" + "a" * 40,
        jwt_refresh_secret="test-refresh-secret-" + "b" * 40,
        blacklist_sweep_interval=0,
    )


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest_asyncio.fixture
async def ctx(settings: Settings, notifier: RecordingNotifier):
    """Fresh schema with the built-in roles and privileges."""
    context = AppContext.build(settings, notifier=notifier)
    await init_db(context.engine)
    await seed_catalog(context.session_factory)
    yield context
    await context.dispose()


async def register(ctx: AppContext, n: int = 1, password: str = PASSWORD):
    return await ctx.auth.register(
        f"User {n}", f"user{n}@example.com", f"+6281200000{n:03d}", password
    )
