from sqlalchemy import Column, DateTime, Integer, String

from storefront_auth.database import Base


class VerificationEntry(Base):
    __tablename__ = "otp_verifications"

    id = Column(Integer, primary_key=True)
    identifier = Column(String(255), nullable=False, unique=True)
    verified_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
