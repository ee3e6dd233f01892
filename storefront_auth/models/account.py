from sqlalchemy import Column, DateTime, Integer, String

from storefront_auth.database import Base


class AccountEntry(Base):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), nullable=True, unique=True)
    phone_number = Column(String(16), nullable=True, unique=True)
    name = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
