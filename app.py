from flask import Blueprint, Flask, current_app, request
from flask_login import current_user, login_required

import auth
from config import Config
from errors import AuthenticationError, register_error_handlers
from extensions import bcrypt, db, login_manager, tokens
from frontend import frontend
from logging_setup import setup_logging
from policy import get_policy
from responses import success
from tasks import TaskService

api = Blueprint("api", __name__)


def create_app(config=Config):
    app = Flask(__name__)
    app.config.from_object(config)

    # Initialize extensions
    db.init_app(app)
    bcrypt.init_app(app)
    login_manager.init_app(app)
    tokens.init_app(app)

    policy = get_policy(app.config["TASK_ACCESS_POLICY"])
    app.extensions["task_service"] = TaskService(policy)

    register_error_handlers(app)
    app.register_blueprint(api, url_prefix=app.config.get("API_PREFIX", "/api"))
    app.register_blueprint(frontend)

    with app.app_context():
        db.create_all()

    app.logger.info("Task access policy: %s", policy.name)
    return app


def task_service():
    return current_app.extensions["task_service"]


def identity():
    # The authenticated user is resolved once here and passed on explicitly.
    return current_user._get_current_object()


@api.route("/auth/register", methods=["POST"])   # This function is used to register a new user
def register():
    user = auth.register(request.get_json(silent=True))
    return success({"user": user.to_dict()}, "User registered successfully")


@api.route("/auth/login", methods=["POST"])   # This function is used to log in and get a token
def login():
    bundle = auth.login(request.get_json(silent=True))
    return success(bundle, "Login successful")


@api.route("/auth/refresh", methods=["POST"])
def refresh():
    token = auth.bearer_token(request)
    if token is None:
        raise AuthenticationError("Token not provided")
    return success(auth.refresh(token), "Token refreshed")


@api.route("/auth/me")
@login_required
def me():
    return success(identity().to_dict(), "Profile retrieved")


@api.route("/user/list")
@login_required
def list_users():
    return success([user.to_dict() for user in auth.list_users()], "Users retrieved")


@api.route("/task")   # List of tasks visible to the current user
@login_required
def list_tasks():
    tasks = task_service().list(
        identity(),
        status=request.args.get("status"),
        sort=request.args.get("sort"),
    )
    return success([task.to_dict() for task in tasks], "Tasks retrieved")


@api.route("/task/<int:task_id>")
@login_required
def show_task(task_id):
    task = task_service().show(identity(), task_id)
    return success(task.to_dict(), "Task retrieved")


@api.route("/task", methods=["POST"])   # This function is used to add a new task
@login_required
def create_task():
    task = task_service().create(identity(), request.get_json(silent=True))
    return success(task.to_dict(), "Task created", 201)


@api.route("/task/<int:task_id>", methods=["PUT"])   # This is the function to edit the task
@login_required
def update_task(task_id):
    task = task_service().update(identity(), task_id, request.get_json(silent=True))
    return success(task.to_dict(), "Task updated")


@api.route("/task/<int:task_id>", methods=["DELETE"])   # This is the function used to delete a task
@login_required
def delete_task(task_id):
    task_service().delete(identity(), task_id)
    return success(None, "Task deleted")


if __name__ == "__main__":
    setup_logging(Config.LOG_LEVEL)
    create_app().run(debug=True)
