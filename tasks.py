import logging

from sqlalchemy.orm import joinedload

from errors import NotFoundError
from extensions import db
from models import Task
from validation import validate_task

logger = logging.getLogger(__name__)

TASK_NOT_FOUND = "Task not found"


class TaskService:
    """Task operations performed on behalf of an explicit identity."""

    def __init__(self, policy):
        self.policy = policy

    def list(self, identity, status=None, sort=None):
        query = self.policy.list_query(identity, status, sort)
        return query.options(joinedload(Task.owner), joinedload(Task.creator)).all()

    def show(self, identity, task_id):
        if not self.policy.allows_show:
            raise NotFoundError(errors=TASK_NOT_FOUND)
        return self._get(identity, task_id)

    def create(self, identity, data):
        cleaned = validate_task(data, require_owner=self.policy.accepts_owner)
        task = Task(
            title=cleaned["title"],
            description=cleaned["description"],
            status=cleaned["status"],
            deadline=cleaned["deadline"],
            user_id=self.policy.resolve_owner(identity, cleaned.get("user_id")),
            created_by=identity.id,
        )
        db.session.add(task)
        db.session.commit()
        logger.info("User %s created task %s for user %s", identity.id, task.id, task.user_id)
        return task

    def update(self, identity, task_id, data):
        task = self._get(identity, task_id)
        cleaned = validate_task(data, require_owner=self.policy.accepts_owner)
        task.title = cleaned["title"]
        task.description = cleaned["description"]
        task.status = cleaned["status"]
        task.deadline = cleaned["deadline"]
        if self.policy.accepts_owner:
            task.user_id = self.policy.resolve_owner(identity, cleaned["user_id"])
        db.session.commit()
        logger.info("User %s updated task %s", identity.id, task.id)
        return task

    def delete(self, identity, task_id):
        task = self._get(identity, task_id)
        db.session.delete(task)
        db.session.commit()
        logger.info("User %s deleted task %s", identity.id, task_id)

    def _get(self, identity, task_id):
        task = self.policy.find(identity, task_id)
        if task is None:
            raise NotFoundError(errors=TASK_NOT_FOUND)
        return task
