from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

APPLICATION_STATUSES = ("submitted", "accepted", "rejected")


def utcnow():
    """Current UTC time as a naive datetime, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(200), nullable=False)
    # Signup-time metadata; holds the role and is never rewritten
    user_metadata = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, default=utcnow)

    # Relationship: a user can hold many sessions
    sessions = db.relationship("AuthSession", backref="user", lazy=True)


class AuthSession(db.Model):
    __tablename__ = "auth_sessions"

    access_token = db.Column(db.String(128), primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    def is_expired(self, now=None):
        return (now or utcnow()) >= self.expires_at


class Profile(db.Model):
    __tablename__ = "profiles"

    id = db.Column(db.Integer, db.ForeignKey("users.id"), primary_key=True)
    role = db.Column(db.String(20), nullable=False)
    name = db.Column(db.String(100))
    bio = db.Column(db.Text)
    location = db.Column(db.String(100))
    phone = db.Column(db.String(40))
    experience = db.Column(db.Text)
    interests = db.Column(db.JSON, default=list)
    avatar_url = db.Column(db.String(255))

    # Relationship: a student can have many applications
    applications = db.relationship("Application", backref="student", lazy=True)


class Company(db.Model):
    __tablename__ = "companies"

    id = db.Column(db.Integer, primary_key=True)
    owner_user_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    location = db.Column(db.String(100))
    email = db.Column(db.String(120))
    phone = db.Column(db.String(40))

    # Relationship: a company can post many jobs
    jobs = db.relationship("Job", backref="company", lazy=True)


class Job(db.Model):
    __tablename__ = "jobs"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    location = db.Column(db.String(100))
    tags = db.Column(db.JSON, default=list)
    is_paid = db.Column(db.Boolean, default=False)
    stipend_amount = db.Column(db.Float)
    images = db.Column(db.JSON, default=list)
    created_at = db.Column(db.DateTime, default=utcnow)

    # Relationship: a job can have many applications
    applications = db.relationship("Application", backref="job", lazy=True)


class Application(db.Model):
    __tablename__ = "applications"
    __table_args__ = (
        db.UniqueConstraint("job_id", "student_user_id", name="uq_application_job_student"),
        db.CheckConstraint(
            "status IN ({})".format(", ".join(f"'{s}'" for s in APPLICATION_STATUSES)),
            name="ck_application_status",
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.Integer, db.ForeignKey("jobs.id"), nullable=False)
    student_user_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=False)
    note = db.Column(db.Text)
    contact_email = db.Column(db.String(120))
    contact_phone = db.Column(db.String(40))
    status = db.Column(db.String(20), nullable=False, default="submitted")
    created_at = db.Column(db.DateTime, default=utcnow)
