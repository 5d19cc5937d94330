from flask import Blueprint, render_template, request, redirect, flash

import context
from auth_state import Role
from errors import BackendError
from forms import StudentProfileForm, TAG_CHOICES, stripped
from loaders import load

student_bp = Blueprint("student", __name__, url_prefix="/student")
student_bp.before_request(context.require_role(Role.STUDENT))


# ================= STUDENT DASHBOARD =================
@student_bp.route("")
def dashboard():
    backend = context.backend()
    tag = request.args.get("tag") or None
    search = request.args.get("q") or None

    jobs = load(
        backend.list_jobs, tag=tag, search=search, signal=context.view_signal(),
        default=[], fallback="Failed to load jobs",
    )
    applications = load(
        backend.list_my_applications, signal=context.view_signal(),
        default=[], fallback="Failed to load applications",
    )
    statuses = {application.job_id: application.status for application in applications.data}

    return render_template(
        "student_dashboard.html",
        jobs=jobs,
        applications=applications,
        statuses=statuses,
        tags=TAG_CHOICES,
        tag=tag,
        search=search or "",
    )


# ================= STUDENT PROFILE =================
@student_bp.route("/profile", methods=["GET", "POST"])
def profile():
    backend = context.backend()
    loaded = load(backend.ensure_profile, fallback="Failed to load profile")
    form = StudentProfileForm(obj=loaded.data)

    if form.validate_on_submit():
        try:
            backend.update_profile(
                name=stripped(form.name),
                bio=stripped(form.bio),
                location=stripped(form.location),
                phone=stripped(form.phone),
                experience=stripped(form.experience),
                interests=form.interests.data,
            )
        except BackendError as e:
            flash(str(e) or "Failed to update profile", "error")
            return render_template("student_profile.html", form=form, profile=loaded)

        flash("Profile updated successfully!", "success")
        return redirect("/student/profile")

    return render_template("student_profile.html", form=form, profile=loaded)
