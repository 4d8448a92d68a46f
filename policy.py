"""Task access policies.

A policy answers two questions for an identity: which tasks it may see
(and therefore update or delete), and who owns a task it creates. Listing,
single fetch, update and delete all go through the same visible set, so a
task outside it looks exactly like a task that does not exist.
"""

from sqlalchemy import or_

from errors import ValidationError
from extensions import db
from models import TASK_STATUSES, Task, User

SORT_DIRECTIONS = ("asc", "desc")


def normalize_status(value):
    """Lowercased status, or None when absent or not one of the known values."""
    if not isinstance(value, str):
        return None
    value = value.strip().lower()
    return value if value in TASK_STATUSES else None


def normalize_sort(value):
    if isinstance(value, str) and value.strip().lower() in SORT_DIRECTIONS:
        return value.strip().lower()
    return "asc"


class TaskAccessPolicy:
    name = None
    # Whether a single task may be fetched on its own (GET /task/<id>).
    allows_show = False
    # Whether create/update take an explicit assignee.
    accepts_owner = False

    def visible(self, identity):
        """SQL predicate selecting the tasks ``identity`` may access."""
        raise NotImplementedError

    def can_access(self, identity, task):
        raise NotImplementedError

    def resolve_owner(self, identity, owner_id=None):
        raise NotImplementedError

    def list_query(self, identity, status=None, sort=None):
        query = Task.query.filter(self.visible(identity))
        status = normalize_status(status)
        if status is not None:
            query = query.filter(Task.status == status)
        # NULL deadlines count as the lowest value in both directions.
        if normalize_sort(sort) == "desc":
            order = Task.deadline.desc().nulls_last()
        else:
            order = Task.deadline.asc().nulls_first()
        return query.order_by(order, Task.id.asc())

    def find(self, identity, task_id):
        task = db.session.get(Task, task_id)
        if task is None or not self.can_access(identity, task):
            return None
        return task


class OwnerOnlyPolicy(TaskAccessPolicy):
    """Tasks belong to one user; creating always assigns to yourself."""

    name = "owner_only"

    def visible(self, identity):
        return Task.user_id == identity.id

    def can_access(self, identity, task):
        return task.user_id == identity.id

    def resolve_owner(self, identity, owner_id=None):
        return identity.id


class OwnerOrCreatorPolicy(TaskAccessPolicy):
    """Tasks may be assigned to another user; both the assignee and the
    creator can see, edit and delete them."""

    name = "owner_or_creator"
    allows_show = True
    accepts_owner = True

    def visible(self, identity):
        return or_(Task.user_id == identity.id, Task.created_by == identity.id)

    def can_access(self, identity, task):
        return identity.id in (task.user_id, task.created_by)

    def resolve_owner(self, identity, owner_id=None):
        if owner_id is None:
            raise ValidationError({"user_id": ["The user id field is required."]})
        if db.session.get(User, owner_id) is None:
            raise ValidationError({"user_id": ["The selected user id is invalid."]})
        return owner_id


POLICIES = {
    OwnerOnlyPolicy.name: OwnerOnlyPolicy,
    OwnerOrCreatorPolicy.name: OwnerOrCreatorPolicy,
}


def get_policy(name):
    try:
        return POLICIES[name]()
    except KeyError:
        raise ValueError(f"Unknown task access policy: {name!r}") from None
