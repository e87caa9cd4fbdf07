from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import Config

SQLALCHEMY_DATABASE_URL = Config.DATABASE_URL

engine_options = {"pool_pre_ping": True, "echo": Config.DATABASE_ECHO}
if SQLALCHEMY_DATABASE_URL.startswith("sqlite"):
    # SQLite connections are shared between the request threads
    engine_options["connect_args"] = {"check_same_thread": False}
    if SQLALCHEMY_DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
        engine_options["poolclass"] = StaticPool

# Create database engine
engine = create_engine(SQLALCHEMY_DATABASE_URL, **engine_options)

# Create declarative base
Base = declarative_base()


# Create SessionLocal class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Dependency for database session
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
