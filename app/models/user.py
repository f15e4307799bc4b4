from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text

from app.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    # Login credentials
    phone = Column(String(20), unique=True, index=True, nullable=True)  # null until linked after OAuth
    phone_verified = Column(Boolean, default=False, nullable=False)
    password_hash = Column(String(255), nullable=True)
    auth_provider = Column(String(20), default="phone", nullable=False)  # phone, google, facebook
    google_id = Column(String(255), unique=True, nullable=True)
    facebook_id = Column(String(255), unique=True, nullable=True)

    # Profile fields (name, batch_year, state, district are mandatory for completion)
    name = Column(String(200), nullable=True)
    email = Column(String(255), index=True, nullable=True)
    email_verified = Column(Boolean, default=False, nullable=False)
    batch_year = Column(Integer, nullable=True)
    state = Column(String(100), nullable=True)     # JNV state
    district = Column(String(100), nullable=True)  # JNV district
    profession = Column(String(200), nullable=True)
    bio = Column(Text, nullable=True)
    profile_image = Column(String, nullable=True)

    # Expert-only attributes
    is_expert = Column(Boolean, default=False, nullable=False)
    expertise_areas = Column(JSON, default=list, nullable=True)
    daily_request_limit = Column(Integer, default=3, nullable=False)
    phone_visible = Column(Boolean, default=False, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    last_active = Column(DateTime, default=datetime.utcnow, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)

    def __repr__(self):
        return f"<User {self.id} {self.phone}>"
