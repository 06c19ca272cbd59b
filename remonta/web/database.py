"""Database models for contractor profiles."""

import os
import uuid
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import Boolean, Column, DateTime, Float, Index, Integer, String, Text, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker


def get_database_url() -> str:
    """
    Get database URL based on environment.

    DATABASE_URL wins when set; otherwise ./remonta.db in the working directory.
    """
    if os.environ.get("DATABASE_URL"):
        return os.environ["DATABASE_URL"]
    return "sqlite:///./remonta.db"


def create_db_engine(url: Optional[str] = None) -> Engine:
    """Create an engine, applying SQLite-specific connection settings."""
    url = url or get_database_url()

    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    return create_engine(url, connect_args=connect_args)


def create_session_factory(engine: Engine) -> Callable[[], Session]:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


Base = declarative_base()


def _new_id() -> str:
    return uuid.uuid4().hex


class ContractorProfile(Base):
    """Contractor profile synced from the CRM, searchable in the directory."""
    __tablename__ = "contractor_profiles"

    id = Column(String(32), primary_key=True, default=_new_id)
    zoho_contact_id = Column(String(64), unique=True, nullable=True)

    # Basic information
    first_name = Column(String(255), nullable=False, default="")
    last_name = Column(String(255), nullable=False, default="")
    email = Column(String(255), unique=True, nullable=False)
    phone = Column(String(50))
    gender = Column(String(20))

    # Location
    city = Column(String(255), index=True)
    state = Column(String(50), index=True)
    postal_zip_code = Column(String(10), index=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    # Professional details
    title_role = Column(String(255))
    years_of_experience = Column(Integer, nullable=True)
    about_you = Column(Text)

    # Qualifications & skills
    qualifications_and_certifications = Column(Text)
    language_spoken = Column(Text)
    has_vehicle_access = Column(Boolean, nullable=True)

    # Personal details
    fun_fact = Column(Text)
    hobbies_and_interests = Column(Text)
    what_makes_business_unique = Column(Text)
    additional_information = Column(Text)

    profile_picture = Column(String(500))

    # System fields
    last_synced_at = Column(DateTime, default=datetime.utcnow)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = Column(DateTime, nullable=True, index=True)  # soft delete marker

    __table_args__ = (
        Index("ix_contractor_profiles_lat_lng", "latitude", "longitude"),
    )

    def __repr__(self):
        return f"<ContractorProfile {self.first_name} {self.last_name}: {self.city}, {self.state}>"


def init_db(engine: Engine):
    """Initialize database tables."""
    Base.metadata.create_all(bind=engine)
