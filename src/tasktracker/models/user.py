from sqlalchemy import Column, DateTime, Integer, String

from ..database import Base, utcnow


class User(Base):
    """SQLAlchemy model for application users."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def summary(self) -> dict:
        """Public view of the user; the password hash never leaves the store."""
        return {"id": self.id, "username": self.username, "email": self.email}
