from datetime import datetime

from flask_login import UserMixin
from extensions import db


class User(UserMixin, db.Model):
    """Local mirror of the backend account; tokens live in the session, not here."""

    __tablename__ = "user"

    id = db.Column(db.Integer, primary_key=True)
    # id assigned by the LMS backend (userId in the login response)
    backend_id = db.Column(db.Integer, unique=True, nullable=False, index=True)
    email = db.Column(db.String(150), nullable=True)
    name = db.Column(db.String(120), nullable=True)
    user_type = db.Column(db.String(32), nullable=True)  # STUDENT | PROFESSOR | ADMIN
    department_name = db.Column(db.String(120), nullable=True)
    last_login_at = db.Column(db.DateTime, default=datetime.utcnow)

    # relationships (explicit instead of backref)
    exam_results = db.relationship(
        "ExamResultCache",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy=True,
    )
    exams_in_progress = db.relationship(
        "ExamInProgressCache",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy=True,
    )

    @property
    def is_professor(self) -> bool:
        return (self.user_type or "").upper() == "PROFESSOR"

    @classmethod
    def sync_from_login(cls, payload: dict) -> "User":
        """Create or refresh the mirror row from a login response. Caller commits."""
        backend_id = payload.get("userId")
        if backend_id is None:
            raise ValueError("login response has no userId")

        user = cls.query.filter_by(backend_id=backend_id).first()
        if user is None:
            user = cls(backend_id=backend_id)
            db.session.add(user)

        user.email = payload.get("email") or user.email
        user.name = payload.get("name") or user.name
        user.user_type = payload.get("userType") or user.user_type
        user.department_name = payload.get("departmentName") or user.department_name
        user.last_login_at = datetime.utcnow()
        return user

    def __repr__(self) -> str:
        return f"<User {self.backend_id} {self.email}>"
