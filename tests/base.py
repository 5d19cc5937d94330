import shutil
import tempfile
import unittest
from urllib.parse import urlparse

from app import create_app
from config import TestConfig
from models import db

PASSWORD = "secret123"


class AppTestCase(unittest.TestCase):
    """Fresh app and in-memory database per test.

    Backend tests keep an app context pushed; view tests leave it off so
    every request gets its own context and database session.
    """

    push_context = True

    def setUp(self):
        self.upload_dir = tempfile.mkdtemp()
        self.app = create_app(TestConfig, UPLOAD_FOLDER=self.upload_dir, **self.config_overrides())
        self.auth = self.app.extensions["auth"]
        self.backend = self.app.extensions["backend"]
        self.app_context = None
        if self.push_context:
            self.app_context = self.app.app_context()
            self.app_context.push()

    def tearDown(self):
        if self.app_context is not None:
            self.app_context.pop()
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
        shutil.rmtree(self.upload_dir, ignore_errors=True)

    def config_overrides(self):
        return {}

    # ---------- fixtures ----------
    def _in_context(self, func, *args, **kwargs):
        if self.push_context:
            return func(*args, **kwargs)
        with self.app.app_context():
            return func(*args, **kwargs)

    def make_user(self, email, role):
        def create():
            return self.auth.sign_up(email, PASSWORD, {"role": role}).user_id
        return self._in_context(create)

    def make_company(self, owner_id, name="Campus Cafe"):
        def create():
            client = self.backend.as_caller(owner_id)
            client.ensure_profile("employer")
            return client.save_company(name=name, description="Coffee shop next to the library").id
        return self._in_context(create)

    def make_job(self, owner_id, company_id, title="Weekend Barista", tags=("barista",)):
        def create():
            return self.backend.as_caller(owner_id).create_job(
                company_id=company_id,
                title=title,
                description="Pull espresso shots and keep the counter tidy.",
                tags=list(tags),
                is_paid=True,
                stipend_amount=15.0,
            ).id
        return self._in_context(create)

    def apply(self, student_id, job_id, note="I love coffee"):
        def create():
            return self.backend.as_caller(student_id).submit_application(job_id, note=note).id
        return self._in_context(create)

    # ---------- assertions ----------
    def assertRedirects(self, response, path):
        self.assertIn(response.status_code, (301, 302, 303, 307, 308))
        self.assertEqual(urlparse(response.location).path, path)
