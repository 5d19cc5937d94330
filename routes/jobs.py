import logging

from flask import Blueprint, render_template, redirect, flash, abort

import context
from errors import BackendError, NotFound
from forms import ApplicationForm, stripped
from loaders import load

logger = logging.getLogger(__name__)

jobs_bp = Blueprint("jobs", __name__, url_prefix="/jobs")


def _job_or_404(backend, job_id):
    try:
        return backend.get_job(job_id)
    except NotFound:
        abort(404)


def _render_detail(backend, job, form):
    status = load(backend.application_status, job.id, fallback="Failed to check application status")
    return render_template("job_detail.html", job=job, form=form, status=status)


# ================= JOB DETAIL =================
@jobs_bp.route("/<int:job_id>")
def detail(job_id):
    backend = context.backend()
    job = _job_or_404(backend, job_id)
    return _render_detail(backend, job, ApplicationForm())


# ================= APPLY JOB =================
@jobs_bp.route("/<int:job_id>/apply", methods=["POST"])
def apply(job_id):
    backend = context.backend()
    form = ApplicationForm()
    if not form.validate_on_submit():
        job = _job_or_404(backend, job_id)
        return _render_detail(backend, job, form), 400

    try:
        backend.submit_application(
            job_id,
            note=stripped(form.note),
            contact_email=stripped(form.contact_email),
            contact_phone=stripped(form.contact_phone),
        )
    except BackendError as e:
        logger.info("Application for job %s failed: %s", job_id, e)
        flash(str(e) or "Failed to apply for job", "error")
        return redirect(f"/jobs/{job_id}")

    flash("Application submitted", "success")
    return redirect("/student")
