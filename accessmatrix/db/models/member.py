from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from accessmatrix.db.base import Base


class HouseholdMember(Base):
    __tablename__ = "household_members"
    __table_args__ = (
        # One user id may belong to several households
        UniqueConstraint("household_id", "user_id", name="uq_household_member"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    household_id = Column(String(64), ForeignKey("households.id"), nullable=False, index=True)
    user_id = Column(String(64), nullable=False)
    name = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default="member")
    # Stored permission booleans only; missing keys fall back to role defaults
    permissions = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    household = relationship("Household", back_populates="members")
