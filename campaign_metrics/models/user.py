"""
User model — owner of uploads and metrics; role decides data visibility.
"""
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, Text, DateTime
from sqlalchemy.sql import func
from werkzeug.security import generate_password_hash, check_password_hash

from campaign_metrics.config import ROLE_ADMIN, ROLE_CLIENT
from campaign_metrics.database import Base


class User(Base):
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(Text, nullable=False, unique=True)
    password_hash = Column(Text, nullable=False)
    email = Column(Text, nullable=False, default='')
    first_name = Column(Text, nullable=False, default='')
    last_name = Column(Text, nullable=False, default='')
    role = Column(Text, nullable=False, default=ROLE_CLIENT)   # admin / client
    status = Column(Text, nullable=False, default='active')    # active / inactive
    last_login = Column(DateTime(timezone=True), nullable=True)
    expiration_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return bool(self.password_hash) and check_password_hash(self.password_hash, password)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def can_log_in(self, now: datetime = None) -> bool:
        """Inactive or expired accounts are refused at login."""
        if self.status != 'active':
            return False
        if self.expiration_date is None:
            return True
        now = now or datetime.now(timezone.utc)
        expires = self.expiration_date
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return expires > now

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'role': self.role,
            'status': self.status,
            'lastLogin': self.last_login.isoformat() if self.last_login else None,
        }
