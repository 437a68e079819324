from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from studio_crm.core import config


engine = create_engine(config.DATABASE_URL or "sqlite:///./studio_crm.db", echo=config.DATABASE_ECHO)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_appointment_schema_checked = False
_chat_schema_checked = False


def ensure_appointment_schema() -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(engine)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('duration_minutes', 'ALTER TABLE appointments ADD COLUMN duration_minutes INTEGER'),
            ('bg_color', 'ALTER TABLE appointments ADD COLUMN bg_color VARCHAR'),
            ('group_id', 'ALTER TABLE appointments ADD COLUMN group_id VARCHAR'),
            ('country_code', 'ALTER TABLE appointments ADD COLUMN country_code VARCHAR'),
            ('location', 'ALTER TABLE appointments ADD COLUMN location VARCHAR'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_specialist_start ON appointments(specialist, appointment_at)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_status_start ON appointments(status, appointment_at)')
            )

        _appointment_schema_checked = True


def ensure_chat_schema() -> None:
    global _chat_schema_checked

    if _chat_schema_checked:
        return

    with _schema_lock:
        if _chat_schema_checked:
            return

        inspector = inspect(engine)

        if 'chat_sessions' not in inspector.get_table_names():
            _chat_schema_checked = True
            return

        with engine.begin() as connection:
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_chat_sessions_status_updated ON chat_sessions(status, updated_at)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_chat_messages_phone_created ON chat_messages(client_phone, created_at)')
            )

        _chat_schema_checked = True
