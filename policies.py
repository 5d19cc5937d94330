"""Row-level authorization policies.

Each policy is keyed on the id of the calling user and either returns a
SQLAlchemy filter expression that restricts the rows the caller may touch,
or answers whether an insert is allowed. The backend applies them to every
query; screens never check ownership themselves.
"""
from sqlalchemy import or_, select

from models import db, Application, Company, Job, Profile

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}
ALLOWED_IMAGE_EXTENSIONS = {"jpeg", "jpg", "png", "webp", "gif"}


# ================= PROFILES =================
def profile_rows(caller_id):
    return Profile.id == caller_id


# ================= COMPANIES =================
def company_update_rows(caller_id):
    return Company.owner_user_id == caller_id


def can_insert_company(caller_id, owner_user_id):
    return caller_id is not None and caller_id == owner_user_id


# ================= JOBS =================
def owned_job_ids(caller_id):
    return (
        select(Job.id)
        .join(Company, Job.company_id == Company.id)
        .where(Company.owner_user_id == caller_id)
    )


def job_update_rows(caller_id):
    return Job.id.in_(owned_job_ids(caller_id))


def can_insert_job(caller_id, company_id):
    if caller_id is None:
        return False
    company = db.session.get(Company, company_id)
    return company is not None and company.owner_user_id == caller_id


# ================= APPLICATIONS =================
def application_rows(caller_id):
    """Students see their own applications, employers those on their jobs."""
    return or_(
        Application.student_user_id == caller_id,
        Application.job_id.in_(owned_job_ids(caller_id)),
    )


def application_update_rows(caller_id):
    # Employers can update applications for their jobs
    return Application.job_id.in_(owned_job_ids(caller_id))


def can_insert_application(caller_id, student_user_id):
    if caller_id is None or caller_id != student_user_id:
        return False
    profile = db.session.get(Profile, caller_id)
    return profile is not None and profile.role == "student"


# ================= STORAGE =================
def can_write_job_image(caller_id):
    # Authenticated users can upload job images
    return caller_id is not None


def allowed_image(filename, mimetype):
    if "." not in filename:
        return False
    extension = filename.rsplit(".", 1)[1].lower()
    return extension in ALLOWED_IMAGE_EXTENSIONS and mimetype in ALLOWED_IMAGE_TYPES
