import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text
from sqlalchemy.orm import relationship, validates
from vidtube.core.security import hash_password, verify_password
from vidtube.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username = Column(String(50), unique=True, nullable=False, index=True)  # always lower-case
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(100), nullable=False)
    password = Column(String(255), nullable=False)  # argon2 hash
    avatar = Column(String(512), nullable=False)  # remote URL
    cover_image = Column(String(512), nullable=False, default="")
    refresh_token = Column(Text, nullable=True)  # single active refresh token
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    videos = relationship("Video", back_populates="owner", passive_deletes=True)

    @validates("password")
    def _hash_on_write(self, key, value):
        return hash_password(value)

    def is_password_correct(self, plain: str) -> bool:
        return verify_password(plain, self.password)
