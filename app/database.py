"""
Database connection and session.

Schema source of truth: app.models. On startup, Base.metadata.create_all(bind=engine)
creates all tables and columns from the current models, so a fresh database needs
no migration step. SQLite URLs are accepted for local runs and the test suite.
"""
from sqlalchemy import JSON, Text, create_engine
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.types import TypeDecorator
from app.config import get_settings
from app.services.encryption import decrypt_value, encrypt_value

settings = get_settings()

if settings.database_url.startswith("sqlite"):
    # One shared connection so in-memory databases survive across sessions
    engine = create_engine(
        settings.database_url,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
else:
    engine = create_engine(
        settings.database_url,
        pool_pre_ping=True,
    )
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


class EncryptedString(TypeDecorator):
    """Text encrypted with ENCRYPTION_KEY on write and decrypted on read."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else encrypt_value(value)

    def process_result_value(self, value, dialect):
        return None if value is None else decrypt_value(value)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
