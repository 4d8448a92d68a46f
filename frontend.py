"""Server-rendered pages.

The browser keeps the bearer token in a ``token`` cookie; these routes only
look at whether that cookie is present to decide where to send the visitor.
The pages talk to the JSON API through ``static/app.js``, which logs in,
registers, lists and edits tasks, and sets or clears the cookie.
"""

from flask import Blueprint, redirect, render_template, request, url_for

frontend = Blueprint("frontend", __name__)

TOKEN_COOKIE = "token"


def _has_token():
    return bool(request.cookies.get(TOKEN_COOKIE))


@frontend.route("/")  # This the starting page
def start():
    return redirect(url_for("frontend.login_page"))


@frontend.route("/login")
def login_page():
    if _has_token():
        return redirect(url_for("frontend.task_page"))
    return render_template("login.html")


@frontend.route("/register")
def register_page():
    if _has_token():
        return redirect(url_for("frontend.task_page"))
    return render_template("register.html")


@frontend.route("/task")
def task_page():
    if not _has_token():
        return redirect(url_for("frontend.login_page"))
    return render_template("task.html")
