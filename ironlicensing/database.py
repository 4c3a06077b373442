from pathlib import Path

from sqlalchemy import Column, Integer, String, DateTime, JSON, UniqueConstraint, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


# Database Models
class LocalLicenseCache(Base):
    __tablename__ = "local_license_cache"
    __table_args__ = (
        UniqueConstraint("product_slug", "license_key", name="uq_license_cache_product_key"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_slug = Column(String(255), nullable=False, index=True)
    license_key = Column(String(255), nullable=False)
    license_data = Column(JSON, nullable=False)  # Full license object from the server

    # Validation (naive UTC)
    cached_at = Column(DateTime, nullable=False)
    validated_offline_until = Column(DateTime, nullable=False)

    # Policy windows in force at write time
    cache_validation_minutes = Column(Integer, nullable=False)
    offline_grace_days = Column(Integer, nullable=False)


def create_cache_engine(db_path: Path) -> Engine:
    """
    Create the SQLite engine backing the offline cache and make sure
    the schema exists. Raises OSError / SQLAlchemyError when the
    location is not usable.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False, "timeout": 5},
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
