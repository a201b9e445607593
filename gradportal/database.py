import os
from dotenv import load_dotenv
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker


load_dotenv()
DATABASE_URL = os.getenv("DATABASE_URL")


def build_engine(url: str, **kwargs):
    if url.startswith("sqlite"):
        # Backend calls run on the thread pool, not the thread that opened the connection.
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(url, **kwargs)


engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_profile_schema_checked = False


def ensure_profile_schema(bind=None) -> None:
    """Bring a pre-existing ``profiles`` table up to the current column set."""
    global _profile_schema_checked

    if _profile_schema_checked:
        return

    bind = bind or engine

    with _schema_lock:
        if _profile_schema_checked:
            return

        inspector = inspect(bind)

        if 'profiles' not in inspector.get_table_names():
            _profile_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('profiles')}
        migration_steps = [
            ('role', "ALTER TABLE profiles ADD COLUMN role VARCHAR NOT NULL DEFAULT 'student'"),
            ('student_id', 'ALTER TABLE profiles ADD COLUMN student_id VARCHAR'),
            ('graduation_status', "ALTER TABLE profiles ADD COLUMN graduation_status VARCHAR DEFAULT 'pending'"),
            ('created_at', 'ALTER TABLE profiles ADD COLUMN created_at TIMESTAMP'),
        ]

        with bind.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE UNIQUE INDEX IF NOT EXISTS idx_profiles_student_id ON profiles(student_id)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_profiles_role_student_id ON profiles(role, student_id)')
            )

        _profile_schema_checked = True
