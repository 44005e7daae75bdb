"""Process-wide service context — built once at startup, disposed on shutdown.

Holds the storage handle, the email notifier and the tip generator so that
services receive them explicitly instead of reaching for module globals.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .config import Settings, settings as default_settings
from .db import create_db_engine, init_db, make_session_factory
from .services.alerts import Notifier, build_notifier
from .services.budget_monitor import AlertPolicy
from .services.failures import ErrorTracker
from .services.tips import GeminiTipGenerator, TipGenerator


@dataclass
class AppContext:
    settings: Settings
    engine: Engine
    session_factory: sessionmaker
    notifier: Notifier
    tip_generator: TipGenerator
    error_tracker: ErrorTracker = field(default_factory=ErrorTracker)

    @property
    def policy(self) -> AlertPolicy:
        return AlertPolicy.from_settings(self.settings)

    @property
    def kwh_rate(self) -> float:
        return self.settings.kwh_rate

    def session(self) -> Session:
        return self.session_factory()

    def init_db(self) -> None:
        init_db(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()


def build_context(
    settings: Settings | None = None,
    engine: Engine | None = None,
    notifier: Notifier | None = None,
    tip_generator: TipGenerator | None = None,
) -> AppContext:
    """Wire up the context; any collaborator can be swapped (tests pass fakes)."""
    settings = settings or default_settings
    engine = engine or create_db_engine(settings.effective_database_url, echo=settings.debug)
    return AppContext(
        settings=settings,
        engine=engine,
        session_factory=make_session_factory(engine),
        notifier=notifier or build_notifier(settings),
        tip_generator=tip_generator or GeminiTipGenerator(settings.gemini_api_key, settings.gemini_model),
    )
