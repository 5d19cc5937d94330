"""The hosted backend: auth endpoints, policy-checked tables and the
job-images storage bucket.

Screens talk to it through a ``BackendClient`` bound to the signed-in
caller. Ownership and uniqueness are enforced here (see ``policies``),
never by the screens.
"""
import functools
import logging
import os
import secrets
import uuid
from datetime import timedelta

from flask import url_for
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.security import generate_password_hash, check_password_hash

from config import JOB_IMAGE_MAX_BYTES
import policies
from errors import AlreadyApplied, AuthError, BackendError, NotFound, PermissionDenied, TransientError
from models import db, utcnow, APPLICATION_STATUSES, Application, AuthSession, Company, Job, Profile, User

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("name", "bio", "location", "phone", "experience", "interests", "avatar_url")
COMPANY_FIELDS = ("name", "description", "location", "email", "phone")
REVIEW_STATUSES = APPLICATION_STATUSES[1:]


def backend_call(func):
    """Turn connectivity failures into ``TransientError``."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except OperationalError as e:
            db.session.rollback()
            logger.error("Backend unreachable during %s: %s", func.__name__, e)
            raise TransientError() from e

    return wrapper


def _check(signal):
    if signal is not None:
        signal.raise_if_cancelled()


def _pick(fields, allowed):
    return {key: value for key, value in fields.items() if key in allowed}


def _file_size(file):
    stream = file.stream
    position = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(position)
    return size


# ================= AUTH =================
class AuthService:
    """Authentication endpoint family. One instance per process."""

    def __init__(self, lifetime_seconds=3600, refresh_window_seconds=300):
        self.lifetime = timedelta(seconds=lifetime_seconds)
        self.refresh_window = timedelta(seconds=refresh_window_seconds)

    @backend_call
    def sign_up(self, email, password, metadata=None):
        email = email.strip().lower()
        if User.query.filter_by(email=email).first():
            raise AuthError("User already registered")

        user = User(
            email=email,
            password_hash=generate_password_hash(password),
            user_metadata=dict(metadata or {}),
        )
        db.session.add(user)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise AuthError("User already registered")

        logger.info("Registered user %s with metadata %s", user.id, user.user_metadata)
        return self._issue(user)

    @backend_call
    def sign_in(self, email, password):
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user or not check_password_hash(user.password_hash, password):
            logger.info("Rejected sign in for %s", email)
            raise AuthError("Invalid login credentials")
        return self._issue(user)

    @backend_call
    def sign_out(self, access_token):
        if not access_token:
            return
        AuthSession.query.filter_by(access_token=access_token).delete()
        db.session.commit()

    @backend_call
    def get_session(self, access_token):
        if not access_token:
            return None
        session = db.session.get(AuthSession, access_token)
        if session is None:
            return None
        if session.is_expired():
            db.session.delete(session)
            db.session.commit()
            logger.info("Session for user %s expired", session.user_id)
            return None
        return session

    def needs_refresh(self, session):
        return session.expires_at - utcnow() <= self.refresh_window

    @backend_call
    def refresh_session(self, access_token):
        session = self.get_session(access_token)
        if session is None:
            raise AuthError("Session expired, please sign in again")
        user = session.user
        db.session.delete(session)
        return self._issue(user)

    def _issue(self, user):
        session = AuthSession(
            access_token=secrets.token_urlsafe(32),
            user_id=user.id,
            expires_at=utcnow() + self.lifetime,
        )
        db.session.add(session)
        db.session.commit()
        return session


# ================= TABLES + STORAGE =================
class Backend:
    def __init__(self, upload_folder, max_image_bytes=JOB_IMAGE_MAX_BYTES):
        self.upload_folder = upload_folder
        self.max_image_bytes = max_image_bytes

    def as_caller(self, user_id):
        return BackendClient(user_id, self.upload_folder, self.max_image_bytes)


class BackendClient:
    """Row access on behalf of one caller; ``caller_id`` is None when signed out."""

    def __init__(self, caller_id, upload_folder, max_image_bytes=JOB_IMAGE_MAX_BYTES):
        self.caller_id = caller_id
        self.upload_folder = upload_folder
        self.max_image_bytes = max_image_bytes

    def _require_caller(self):
        if self.caller_id is None:
            raise AuthError("No authenticated user")

    # ---------- profiles ----------
    @backend_call
    def get_profile(self):
        self._require_caller()
        return Profile.query.filter(policies.profile_rows(self.caller_id)).first()

    @backend_call
    def ensure_profile(self, role=None):
        """Create the caller's profile if it does not exist yet.

        The role defaults to the one recorded at signup.
        """
        profile = self.get_profile()
        if profile is not None:
            return profile

        user = db.session.get(User, self.caller_id)
        role = role or (user.user_metadata or {}).get("role") or "student"
        profile = Profile(
            id=self.caller_id,
            role=role,
            name=user.email.split("@")[0] or role.title(),
            interests=[],
        )
        db.session.add(profile)
        db.session.commit()
        logger.info("Created %s profile for user %s", role, self.caller_id)
        return profile

    @backend_call
    def update_profile(self, **fields):
        self._require_caller()
        values = _pick(fields, PROFILE_FIELDS)
        if not values:
            return self.get_profile()
        updated = (
            Profile.query
            .filter(policies.profile_rows(self.caller_id))
            .update(values, synchronize_session="fetch")
        )
        db.session.commit()
        if not updated:
            raise NotFound("Profile not found")
        return self.get_profile()

    # ---------- companies ----------
    @backend_call
    def get_own_company(self):
        self._require_caller()
        return (
            Company.query
            .filter_by(owner_user_id=self.caller_id)
            .order_by(Company.id)
            .first()
        )

    @backend_call
    def save_company(self, company_id=None, **fields):
        self._require_caller()
        values = _pick(fields, COMPANY_FIELDS)

        if company_id is None:
            if not policies.can_insert_company(self.caller_id, self.caller_id):
                raise PermissionDenied()
            company = Company(owner_user_id=self.caller_id, **values)
            db.session.add(company)
            db.session.commit()
            logger.info("Created company %s for user %s", company.id, self.caller_id)
            return company

        updated = (
            Company.query
            .filter(Company.id == company_id, policies.company_update_rows(self.caller_id))
            .update(values, synchronize_session="fetch")
        )
        db.session.commit()
        if not updated:
            logger.warning("Company update %s blocked for user %s", company_id, self.caller_id)
            raise PermissionDenied("Update blocked - you may not have permission to update this company")
        return db.session.get(Company, company_id)

    # ---------- jobs ----------
    @backend_call
    def list_jobs(self, tag=None, search=None, signal=None):
        query = Job.query.order_by(Job.created_at.desc(), Job.id.desc())
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(Job.title.ilike(pattern), Job.description.ilike(pattern)))
        jobs = query.all()
        if tag:
            jobs = [job for job in jobs if tag in (job.tags or [])]
        _check(signal)
        return jobs

    @backend_call
    def get_job(self, job_id):
        job = db.session.get(Job, job_id)
        if job is None:
            raise NotFound("Job not found")
        return job

    @backend_call
    def list_own_jobs(self, signal=None):
        self._require_caller()
        jobs = (
            Job.query
            .filter(policies.job_update_rows(self.caller_id))
            .order_by(Job.created_at.desc(), Job.id.desc())
            .all()
        )
        _check(signal)
        return jobs

    @backend_call
    def create_job(self, company_id, title, description, location=None, tags=(),
                   is_paid=False, stipend_amount=None, images=()):
        self._require_caller()
        if not policies.can_insert_job(self.caller_id, company_id):
            raise PermissionDenied("You can only post jobs for your own company")

        job = Job(
            company_id=company_id,
            title=title,
            description=description,
            location=location,
            tags=list(tags),
            is_paid=is_paid,
            stipend_amount=stipend_amount if is_paid else None,
            images=list(images),
        )
        db.session.add(job)
        db.session.commit()
        logger.info("Created job %s for company %s", job.id, company_id)
        return job

    @backend_call
    def attach_job_images(self, job_id, urls):
        self._require_caller()
        updated = (
            Job.query
            .filter(Job.id == job_id, policies.job_update_rows(self.caller_id))
            .update({"images": list(urls)}, synchronize_session="fetch")
        )
        db.session.commit()
        if not updated:
            raise PermissionDenied("Update blocked - you may not have permission to update this job")
        return db.session.get(Job, job_id)

    # ---------- applications ----------
    @backend_call
    def list_my_applications(self, job_id=None, signal=None):
        self._require_caller()
        query = Application.query.filter(
            policies.application_rows(self.caller_id),
            Application.student_user_id == self.caller_id,
        )
        if job_id is not None:
            query = query.filter(Application.job_id == job_id)
        applications = query.order_by(Application.created_at.desc(), Application.id.desc()).all()
        _check(signal)
        return applications

    @backend_call
    def application_status(self, job_id):
        if self.caller_id is None:
            return None
        application = (
            Application.query
            .filter(
                policies.application_rows(self.caller_id),
                Application.student_user_id == self.caller_id,
                Application.job_id == job_id,
            )
            .first()
        )
        return application.status if application else None

    @backend_call
    def submit_application(self, job_id, note=None, contact_email=None, contact_phone=None):
        """Insert a ``submitted`` application, failing on a duplicate.

        The unique index on (job_id, student_user_id) decides; concurrent
        submissions cannot both succeed.
        """
        self._require_caller()
        self.ensure_profile()
        if not policies.can_insert_application(self.caller_id, self.caller_id):
            raise PermissionDenied("Only students can apply for jobs")
        if db.session.get(Job, job_id) is None:
            raise NotFound("Job not found")

        application = Application(
            job_id=job_id,
            student_user_id=self.caller_id,
            note=note or None,
            contact_email=contact_email or None,
            contact_phone=contact_phone or None,
            status="submitted",
        )
        db.session.add(application)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            logger.info("Duplicate application by user %s for job %s", self.caller_id, job_id)
            raise AlreadyApplied()

        logger.info("Application %s submitted for job %s", application.id, job_id)
        return application

    @backend_call
    def list_applicants(self, job_id, signal=None):
        self._require_caller()
        applications = (
            Application.query
            .filter(Application.job_id == job_id, policies.application_update_rows(self.caller_id))
            .order_by(Application.created_at.desc(), Application.id.desc())
            .all()
        )
        _check(signal)
        return applications

    @backend_call
    def list_employer_applications(self, signal=None):
        self._require_caller()
        applications = (
            Application.query
            .filter(policies.application_update_rows(self.caller_id))
            .order_by(Application.created_at.desc(), Application.id.desc())
            .all()
        )
        _check(signal)
        return applications

    @backend_call
    def update_application_status(self, application_id, status):
        if status not in REVIEW_STATUSES:
            raise ValueError(f"Unsupported application status: {status}")
        self._require_caller()

        updated = (
            Application.query
            .filter(Application.id == application_id, policies.application_update_rows(self.caller_id))
            .update({"status": status}, synchronize_session="fetch")
        )
        db.session.commit()
        if not updated:
            # No rows means the policy filtered the row out, not that it is missing
            logger.warning("Status update on application %s blocked for user %s", application_id, self.caller_id)
            raise PermissionDenied("Update blocked - you may not have permission to update this application")

        logger.info("Application %s marked %s", application_id, status)
        return db.session.get(Application, application_id)

    # ---------- storage ----------
    @backend_call
    def upload_job_image(self, file):
        if not policies.can_write_job_image(self.caller_id):
            raise PermissionDenied("Sign in to upload images")
        if not file or not file.filename or not policies.allowed_image(file.filename, file.mimetype):
            raise BackendError("Images must be JPEG, PNG, WebP or GIF")
        if _file_size(file) > self.max_image_bytes:
            raise BackendError(f"Images must be {self.max_image_bytes // (1024 * 1024)} MB or smaller")

        extension = policies.ALLOWED_IMAGE_TYPES[file.mimetype]
        name = f"{self.caller_id}-{uuid.uuid4().hex}.{extension}"
        os.makedirs(self.upload_folder, exist_ok=True)
        file.save(os.path.join(self.upload_folder, name))
        return url_for("storage.job_image", name=name)
