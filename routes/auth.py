import logging

from flask import Blueprint, render_template, redirect, flash

import context
from auth_state import Role
from errors import BackendError
from forms import LoginForm
from route_guard import dashboard_for

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)


# ================= LOGIN / SIGNUP =================
@auth_bp.route("/login/<any(student, employer):role>", methods=["GET", "POST"])
def login(role):
    form = LoginForm()

    if form.validate_on_submit():
        client = context.auth_client()
        try:
            if form.sign_up.data:
                client.sign_up(form.email.data, form.password.data, Role(role))
                flash("Account created successfully", "success")
            else:
                client.sign_in(form.email.data, form.password.data)
        except BackendError as e:
            flash(str(e), "error")
            return render_template("login.html", form=form, role=role)

        return redirect(dashboard_for(context.auth_state().role))

    return render_template("login.html", form=form, role=role)


# ================= LOGOUT =================
@auth_bp.route("/signout", methods=["POST"])
def signout():
    try:
        context.auth_client().sign_out()
    except BackendError as e:
        logger.warning("Sign out failed: %s", e)
        flash(str(e) or "Failed to sign out", "error")
        return redirect(dashboard_for(context.auth_state().role))
    return redirect("/")
