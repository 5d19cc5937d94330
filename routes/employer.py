import logging

from flask import Blueprint, render_template, request, redirect, flash, abort

import context
from auth_state import Role
from errors import BackendError, NotFound
from forms import CompanyForm, JobForm, StatusForm, stripped
from loaders import load

logger = logging.getLogger(__name__)

employer_bp = Blueprint("employer", __name__, url_prefix="/employer")
employer_bp.before_request(context.require_role(Role.EMPLOYER))


def _save_company(backend, form, company):
    backend.ensure_profile(Role.EMPLOYER.value)
    return backend.save_company(
        company_id=company.id if company else None,
        name=stripped(form.name),
        description=stripped(form.description),
        location=stripped(form.location) or None,
        email=stripped(form.email) or None,
        phone=stripped(form.phone) or None,
    )


# ================= EMPLOYER DASHBOARD =================
@employer_bp.route("")
def dashboard():
    backend = context.backend()
    company = load(backend.get_own_company, fallback="Failed to load company")
    jobs = load(
        backend.list_own_jobs, signal=context.view_signal(),
        default=[], fallback="Failed to load jobs",
    )
    return render_template("employer_dashboard.html", company=company, jobs=jobs)


# ================= COMPANY SETUP =================
@employer_bp.route("/company-setup", methods=["GET", "POST"])
def company_setup():
    backend = context.backend()
    company = load(backend.get_own_company, fallback="Failed to load company")
    form = CompanyForm(obj=company.data)

    if form.validate_on_submit():
        try:
            _save_company(backend, form, company.data)
        except BackendError as e:
            flash(str(e), "error")
            return render_template("company_setup.html", form=form, company=company)

        flash("Company saved", "success")
        return redirect("/employer")

    return render_template("company_setup.html", form=form, company=company)


# ================= EMPLOYER PROFILE =================
@employer_bp.route("/profile", methods=["GET", "POST"])
def profile():
    backend = context.backend()
    company = load(backend.get_own_company, fallback="Failed to load company")
    form = CompanyForm(obj=company.data)

    if form.validate_on_submit():
        try:
            _save_company(backend, form, company.data)
        except BackendError as e:
            flash(str(e) or "Failed to update company profile", "error")
            return render_template("employer_profile.html", form=form, company=company)

        flash("Company profile updated successfully!", "success")
        return redirect("/employer/profile")

    return render_template("employer_profile.html", form=form, company=company)


# ================= POST JOB =================
@employer_bp.route("/jobs/new", methods=["GET", "POST"])
def post_job():
    backend = context.backend()
    company = load(backend.get_own_company, fallback="Failed to load company")
    if company.error:
        flash(company.error, "error")
        return redirect("/employer")
    if company.data is None:
        flash("Please set up your company first", "error")
        return redirect("/employer/company-setup")

    form = JobForm()
    if form.validate_on_submit():
        try:
            job = backend.create_job(
                company_id=company.data.id,
                title=stripped(form.title),
                description=stripped(form.description),
                location=stripped(form.location) or None,
                tags=form.tags.data,
                is_paid=form.is_paid.data,
                stipend_amount=form.stipend_amount.data,
            )
        except BackendError as e:
            flash(str(e), "error")
            return render_template("post_job.html", form=form)

        # Job and its images are separate writes; a failed upload leaves the job without images
        files = form.image_files()
        if files:
            try:
                urls = [backend.upload_job_image(f) for f in files]
                backend.attach_job_images(job.id, urls)
            except BackendError as e:
                logger.warning("Image upload for job %s failed: %s", job.id, e)
                flash(f"Job posted, but images were not saved: {e}", "error")
                return redirect("/employer")

        flash("Job posted successfully", "success")
        return redirect("/employer")

    return render_template("post_job.html", form=form)


# ================= APPLICANTS =================
@employer_bp.route("/jobs/<int:job_id>/applicants")
def applicants(job_id):
    backend = context.backend()
    try:
        job = backend.get_job(job_id)
    except NotFound:
        abort(404)

    applications = load(
        backend.list_applicants, job_id, signal=context.view_signal(),
        default=[], fallback="Failed to load applications",
    )
    return render_template(
        "applicants.html", job=job, applications=applications,
        form=StatusForm(), next_url=request.path,
    )


@employer_bp.route("/applications")
def applications():
    backend = context.backend()
    loaded = load(
        backend.list_employer_applications, signal=context.view_signal(),
        default=[], fallback="Failed to load applications",
    )
    return render_template(
        "employer_applications.html", applications=loaded,
        form=StatusForm(), next_url=request.path,
    )


# ================= ACCEPT / REJECT =================
@employer_bp.route("/applications/<int:application_id>/status", methods=["POST"])
def update_status(application_id):
    form = StatusForm()
    next_url = request.form.get("next", "")
    if not next_url.startswith("/employer"):
        next_url = "/employer/applications"

    if not form.validate_on_submit():
        flash("Choose accept or reject", "error")
        return redirect(next_url)

    try:
        context.backend().update_application_status(application_id, form.status.data)
    except BackendError as e:
        flash(str(e), "error")
        return redirect(next_url)

    flash(f"Application {form.status.data} successfully", "success")
    return redirect(next_url)
