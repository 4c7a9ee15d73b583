from datetime import datetime
from extensions import db


class ExamResultCache(db.Model):
    """Permanent "already completed" record per (user, exam)."""

    __tablename__ = "exam_result_cache"
    __table_args__ = (db.UniqueConstraint("user_id", "exam_id", name="uq_exam_result_user_exam"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    exam_id = db.Column(db.String(64), nullable=False)

    # {attemptId, score, isLate, latePenaltyRate, submittedAt} serialized as text
    payload_json = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = db.relationship("User", back_populates="exam_results", lazy=True)

    def __repr__(self) -> str:
        return f"<ExamResultCache user={self.user_id} exam={self.exam_id}>"


class ExamInProgressCache(db.Model):
    """Open attempt per (user, exam), removed on submit."""

    __tablename__ = "exam_in_progress_cache"
    __table_args__ = (db.UniqueConstraint("user_id", "exam_id", name="uq_exam_progress_user_exam"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    exam_id = db.Column(db.String(64), nullable=False)

    # {attemptId, startedAt, endAt, remainingSeconds, answers}
    payload_json = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = db.relationship("User", back_populates="exams_in_progress", lazy=True)

    def __repr__(self) -> str:
        return f"<ExamInProgressCache user={self.user_id} exam={self.exam_id}>"
