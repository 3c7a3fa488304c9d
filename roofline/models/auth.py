"""
Roofline Project Tracker
User model.

Users receive workflow alerts. The line item's ``responsible_role`` is
mapped onto these roles by the alerting service.
"""

from datetime import datetime, timezone

from roofline.models import db


USER_ROLES = {"ADMIN", "MANAGER", "PROJECT_MANAGER", "FOREMAN", "WORKER", "OFFICE"}


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(200), nullable=False, unique=True)
    first_name = db.Column(db.String(100), nullable=False, default="")
    last_name = db.Column(db.String(100), nullable=False, default="")
    role = db.Column(db.String(40), nullable=False, default="WORKER", index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "role": self.role,
            "is_active": self.is_active,
        }

    def __repr__(self) -> str:
        return f"<User {self.id}: {self.email}>"
