from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.engine import Engine

from src.rpm_backend.config import settings
from src.rpm_backend.infra.db import inmemory as inmemory_repos
from src.rpm_backend.infra.db.models import Base
from src.rpm_backend.infra.db.session import create_engine_for_url, create_sqlalchemy_session_factory
from src.rpm_backend.infra.db.sql_accounts import SqlInstitutionRepository, SqlUserRepository
from src.rpm_backend.infra.db.sql_monitoring import (
    SqlAlertRepository,
    SqlRiskScoreRepository,
    SqlVitalReadingRepository,
)
from src.rpm_backend.infra.db.sql_patients import SqlPatientRepository

logger = logging.getLogger(__name__)


def install_sql_repositories(engine: Engine) -> None:
    """Point every repository singleton at SQL-backed implementations on ``engine``.

    Code that reads repositories through the ``inmemory`` module (rather than
    binding the objects at import time) picks up the swap immediately.
    """

    # Convenient for early setups; real deployments should own the schema
    # through migrations.
    Base.metadata.create_all(engine)

    session_factory = create_sqlalchemy_session_factory(engine)

    inmemory_repos.patient_repository = SqlPatientRepository(session_factory)
    inmemory_repos.alert_repository = SqlAlertRepository(session_factory)
    inmemory_repos.vital_reading_repository = SqlVitalReadingRepository(session_factory)
    inmemory_repos.risk_score_repository = SqlRiskScoreRepository(session_factory)
    inmemory_repos.user_repository = SqlUserRepository(session_factory)
    inmemory_repos.institution_repository = SqlInstitutionRepository(session_factory)


def init_sql_repositories(database_url: Optional[str] = None) -> None:
    """Optionally switch in-memory repositories to SQL-backed implementations.

    If USE_SQL_REPOS is not enabled this is a no-op and the in-memory
    repositories remain active.
    """

    if not settings.use_sql_repos:
        return

    db_url = database_url or settings.database_url
    if not db_url:
        logger.warning("USE_SQL_REPOS is true but DATABASE_URL is not set; keeping in-memory repositories")
        return

    install_sql_repositories(create_engine_for_url(db_url))
    logger.info("SQL repositories installed")
