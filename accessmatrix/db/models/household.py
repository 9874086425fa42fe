from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer
from sqlalchemy.orm import relationship

from accessmatrix.db.base import Base


class Household(Base):
    __tablename__ = "households"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=True)
    # Revision counter for optimistic concurrency; bumped by every committed batch
    version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    members = relationship("HouseholdMember", back_populates="household", cascade="all, delete-orphan")
    access_overrides = relationship("FeatureAccessOverride", back_populates="household", cascade="all, delete-orphan")
    setting_permissions = relationship("SettingPermissionOverride", back_populates="household", cascade="all, delete-orphan")
    kill_switches = relationship("FeatureKillSwitch", back_populates="household", cascade="all, delete-orphan")
