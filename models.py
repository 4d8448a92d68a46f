from extensions import db
from flask_login import UserMixin
from datetime import datetime, timezone

TASK_STATUSES = ("todo", "in_progress", "done")


def _now():
    return datetime.now(timezone.utc)


class User(UserMixin, db.Model):                     # Model for storing user data
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    username = db.Column(db.String(255), unique=True, nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password = db.Column(db.String(200), nullable=False)   # bcrypt hash, never plaintext

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "username": self.username,
            "email": self.email,
        }

    def summary(self):
        return {"id": self.id, "name": self.name, "username": self.username}


class Task(db.Model):                                 # Model for storing the details of a task
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.Enum(*TASK_STATUSES, name="task_status", validate_strings=True),
                       nullable=False, default="todo")
    deadline = db.Column(db.Date, nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="CASCADE"),
                        nullable=False)   # owner / assignee
    created_by = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="CASCADE"),
                           nullable=False)   # who created the task
    created_at = db.Column(db.DateTime(timezone=True), default=_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=_now, onupdate=_now)

    owner = db.relationship("User", foreign_keys=[user_id])
    creator = db.relationship("User", foreign_keys=[created_by])

    __table_args__ = (db.Index("ix_task_status_deadline", "status", "deadline"),)

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "user_id": self.user_id,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "user": self.owner.summary() if self.owner else None,
            "creator": self.creator.summary() if self.creator else None,
        }
