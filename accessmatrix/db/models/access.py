from datetime import datetime
from sqlalchemy import Column, String, DateTime, Boolean, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from accessmatrix.db.base import Base


class FeatureAccessOverride(Base):
    __tablename__ = "feature_access_overrides"
    __table_args__ = (
        UniqueConstraint("household_id", "feature_key", "role", name="uq_feature_access_override"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    household_id = Column(String(64), ForeignKey("households.id"), nullable=False, index=True)
    feature_key = Column(String(100), nullable=False)
    role = Column(String(20), nullable=False)
    allowed = Column(Boolean, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    household = relationship("Household", back_populates="access_overrides")


class SettingPermissionOverride(Base):
    __tablename__ = "setting_permission_overrides"
    __table_args__ = (
        UniqueConstraint("household_id", "setting_key", "role", name="uq_setting_permission_override"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    household_id = Column(String(64), ForeignKey("households.id"), nullable=False, index=True)
    setting_key = Column(String(100), nullable=False)
    role = Column(String(20), nullable=False)
    can_view = Column(Boolean, nullable=False)
    can_edit = Column(Boolean, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    household = relationship("Household", back_populates="setting_permissions")


class FeatureKillSwitch(Base):
    __tablename__ = "feature_kill_switches"
    __table_args__ = (
        UniqueConstraint("household_id", "feature_key", name="uq_feature_kill_switch"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    household_id = Column(String(64), ForeignKey("households.id"), nullable=False, index=True)
    feature_key = Column(String(100), nullable=False)
    enabled_globally = Column(Boolean, nullable=False, default=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    household = relationship("Household", back_populates="kill_switches")
