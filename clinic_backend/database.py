from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from clinic_backend.core import config

# Shared by the model definition and the migration below so both produce the same index.
ACTIVE_SLOT_INDEX_NAME = 'uq_appointments_active_slot'
ACTIVE_SLOT_CONDITION = "status IN ('scheduled', 'rescheduled')"


def build_engine(database_url: str) -> Engine:
    if database_url.startswith('sqlite'):
        return create_engine(
            database_url,
            connect_args={
                'check_same_thread': False,
                'timeout': config.DATABASE_CONNECT_TIMEOUT_SECONDS,
            },
            echo=config.DATABASE_ECHO,
        )

    return create_engine(
        database_url,
        connect_args={'connect_timeout': config.DATABASE_CONNECT_TIMEOUT_SECONDS},
        pool_pre_ping=True,
        echo=config.DATABASE_ECHO,
    )


engine = build_engine(config.DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_checked_engines: set[str] = set()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_scheduling_schema(bind: Engine | None = None) -> None:
    """Bring an existing database up to the current scheduling schema.

    ``create_all`` skips indexes on tables that already exist, so the partial
    unique index that guards active slots and the lookup indexes are created
    here.
    """
    bind = bind or engine
    engine_key = str(bind.url)

    if engine_key in _checked_engines:
        return

    with _schema_lock:
        if engine_key in _checked_engines:
            return

        inspector = inspect(bind)

        if 'appointments' not in inspector.get_table_names():
            _checked_engines.add(engine_key)
            return

        with bind.begin() as connection:
            connection.execute(
                text(
                    f'CREATE UNIQUE INDEX IF NOT EXISTS {ACTIVE_SLOT_INDEX_NAME} '
                    'ON appointments(provider_id, appointment_date, appointment_time) '
                    f'WHERE {ACTIVE_SLOT_CONDITION}'
                )
            )
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_appointments_patient_status '
                    'ON appointments(patient_id, status)'
                )
            )
            if 'blackouts' in inspector.get_table_names():
                connection.execute(
                    text(
                        'CREATE INDEX IF NOT EXISTS idx_blackouts_provider_date '
                        'ON blackouts(provider_id, blackout_date)'
                    )
                )

        _checked_engines.add(engine_key)
