import io
import os
import unittest
from unittest.mock import patch

from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.datastructures import FileStorage

from backend import Backend
from config import Config, JOB_IMAGE_MAX_BYTES, MAX_JOB_IMAGES
from errors import AlreadyApplied, AuthError, BackendError, Cancelled, NotFound, PermissionDenied, TransientError
from loaders import CancelSignal
from models import db, Application, Job, Profile
from tests.base import AppTestCase


class BackendTestCase(AppTestCase):
    def setUp(self):
        super().setUp()
        self.owner_id = self.make_user("owner@cafe.com", "employer")
        self.rival_id = self.make_user("owner@books.com", "employer")
        self.student_id = self.make_user("ana@uni.edu", "student")
        self.company_id = self.make_company(self.owner_id)
        self.rival_company_id = self.make_company(self.rival_id, name="Book Nook")
        self.job_id = self.make_job(self.owner_id, self.company_id)

    def as_caller(self, user_id):
        return self.backend.as_caller(user_id)


class TestProfiles(BackendTestCase):
    def test_ensure_profile_uses_signup_role_and_email_name(self):
        profile = self.as_caller(self.student_id).ensure_profile()
        self.assertEqual(profile.role, "student")
        self.assertEqual(profile.name, "ana")
        self.assertEqual(profile.interests, [])

    def test_ensure_profile_is_idempotent(self):
        client = self.as_caller(self.student_id)
        first = client.ensure_profile()
        second = client.ensure_profile()
        self.assertEqual(first.id, second.id)
        self.assertEqual(Profile.query.filter_by(id=self.student_id).count(), 1)

    def test_update_own_profile(self):
        client = self.as_caller(self.student_id)
        client.ensure_profile()
        profile = client.update_profile(name="Ana", bio="Second year CS", interests=["tutoring"], role="employer")
        self.assertEqual(profile.name, "Ana")
        self.assertEqual(profile.interests, ["tutoring"])
        # role is not an updatable field
        self.assertEqual(profile.role, "student")

    def test_update_missing_profile(self):
        with self.assertRaises(NotFound):
            self.as_caller(self.student_id).update_profile(name="Ana")

    def test_signed_out_caller(self):
        with self.assertRaises(AuthError):
            self.as_caller(None).get_profile()


class TestCompanies(BackendTestCase):
    def test_owner_updates_company(self):
        company = self.as_caller(self.owner_id).save_company(
            company_id=self.company_id, name="Campus Cafe & Bakery", description="Now with pastries",
        )
        self.assertEqual(company.name, "Campus Cafe & Bakery")

    def test_non_owner_update_is_denied(self):
        with self.assertRaises(PermissionDenied):
            self.as_caller(self.rival_id).save_company(
                company_id=self.company_id, name="Taken over", description="Mine now",
            )
        self.assertEqual(self.as_caller(self.owner_id).get_own_company().name, "Campus Cafe")

    def test_get_own_company(self):
        self.assertEqual(self.as_caller(self.rival_id).get_own_company().id, self.rival_company_id)
        self.assertIsNone(self.as_caller(self.student_id).get_own_company())


class TestJobs(BackendTestCase):
    def test_cannot_post_for_someone_elses_company(self):
        with self.assertRaises(PermissionDenied):
            self.as_caller(self.rival_id).create_job(
                company_id=self.company_id, title="Fake listing", description="x" * 30,
            )

    def test_unpaid_job_drops_stipend(self):
        job = self.as_caller(self.owner_id).create_job(
            company_id=self.company_id, title="Volunteer Greeter", description="Welcome guests at the door.",
            tags=["front desk"], is_paid=False, stipend_amount=20.0,
        )
        self.assertIsNone(job.stipend_amount)

    def test_list_jobs_filters(self):
        self.make_job(self.rival_id, self.rival_company_id, title="Shelf Stocker", tags=("inventory", "retail"))
        client = self.as_caller(self.student_id)

        self.assertEqual(len(client.list_jobs()), 2)
        self.assertEqual([job.title for job in client.list_jobs(tag="retail")], ["Shelf Stocker"])
        self.assertEqual([job.title for job in client.list_jobs(search="barista")], ["Weekend Barista"])
        self.assertEqual(client.list_jobs(tag="retail", search="barista"), [])

    def test_list_own_jobs(self):
        self.make_job(self.rival_id, self.rival_company_id, title="Shelf Stocker")
        self.assertEqual([job.id for job in self.as_caller(self.owner_id).list_own_jobs()], [self.job_id])

    def test_get_missing_job(self):
        with self.assertRaises(NotFound):
            self.as_caller(self.student_id).get_job(999)

    def test_attach_images_only_to_own_jobs(self):
        job = self.as_caller(self.owner_id).attach_job_images(self.job_id, ["/storage/job-images/a.png"])
        self.assertEqual(job.images, ["/storage/job-images/a.png"])
        with self.assertRaises(PermissionDenied):
            self.as_caller(self.rival_id).attach_job_images(self.job_id, [])

    def test_cancelled_fetch(self):
        signal = CancelSignal()
        signal.cancel()
        with self.assertRaises(Cancelled):
            self.as_caller(self.student_id).list_jobs(signal=signal)


class TestApplications(BackendTestCase):
    def test_submit_creates_submitted_application(self):
        application_id = self.apply(self.student_id, self.job_id)
        application = db.session.get(Application, application_id)
        self.assertEqual(application.status, "submitted")
        self.assertEqual(application.note, "I love coffee")
        self.assertEqual(self.as_caller(self.student_id).application_status(self.job_id), "submitted")

    def test_second_submission_is_already_applied(self):
        self.apply(self.student_id, self.job_id)
        with self.assertRaises(AlreadyApplied) as ctx:
            self.apply(self.student_id, self.job_id, note="Again")
        self.assertEqual(str(ctx.exception), "You have already applied for this position")
        self.assertEqual(Application.query.filter_by(job_id=self.job_id).count(), 1)

    def test_unique_index_blocks_racing_inserts(self):
        # Two submissions that both passed any earlier read still cannot both land
        self.apply(self.student_id, self.job_id)
        db.session.add(Application(job_id=self.job_id, student_user_id=self.student_id, status="submitted"))
        with self.assertRaises(IntegrityError):
            db.session.commit()
        db.session.rollback()

    def test_employer_cannot_apply(self):
        with self.assertRaises(PermissionDenied):
            self.apply(self.rival_id, self.job_id)

    def test_apply_to_missing_job(self):
        with self.assertRaises(NotFound):
            self.apply(self.student_id, 999)

    def test_owner_accepts_application(self):
        application_id = self.apply(self.student_id, self.job_id)
        application = self.as_caller(self.owner_id).update_application_status(application_id, "accepted")
        self.assertEqual(application.status, "accepted")

        # Still mutable afterwards
        application = self.as_caller(self.owner_id).update_application_status(application_id, "rejected")
        self.assertEqual(application.status, "rejected")

    def test_non_owner_update_is_permission_error(self):
        application_id = self.apply(self.student_id, self.job_id)
        for caller in (self.rival_id, self.student_id):
            with self.assertRaises(PermissionDenied) as ctx:
                self.as_caller(caller).update_application_status(application_id, "accepted")
            self.assertIn("Update blocked", str(ctx.exception))
        self.assertEqual(db.session.get(Application, application_id).status, "submitted")

    def test_update_missing_application_is_permission_error(self):
        with self.assertRaises(PermissionDenied):
            self.as_caller(self.owner_id).update_application_status(999, "accepted")

    def test_unknown_status(self):
        application_id = self.apply(self.student_id, self.job_id)
        with self.assertRaises(ValueError):
            self.as_caller(self.owner_id).update_application_status(application_id, "submitted")

    def test_applicant_lists_follow_ownership(self):
        application_id = self.apply(self.student_id, self.job_id)

        self.assertEqual([a.id for a in self.as_caller(self.owner_id).list_applicants(self.job_id)], [application_id])
        self.assertEqual(self.as_caller(self.rival_id).list_applicants(self.job_id), [])
        self.assertEqual([a.id for a in self.as_caller(self.owner_id).list_employer_applications()], [application_id])
        self.assertEqual(self.as_caller(self.rival_id).list_employer_applications(), [])

    def test_my_applications(self):
        other_job = self.make_job(self.rival_id, self.rival_company_id, title="Shelf Stocker")
        self.apply(self.student_id, self.job_id)
        self.apply(self.student_id, other_job)
        client = self.as_caller(self.student_id)

        self.assertEqual(len(client.list_my_applications()), 2)
        self.assertEqual([a.job_id for a in client.list_my_applications(job_id=other_job)], [other_job])
        self.assertEqual(self.as_caller(self.owner_id).list_my_applications(), [])

    def test_status_for_signed_out_caller(self):
        self.assertIsNone(self.as_caller(None).application_status(self.job_id))


class TestTransientErrors(BackendTestCase):
    def test_operational_error_becomes_transient(self):
        error = OperationalError("SELECT 1", {}, Exception("connection refused"))
        with patch.object(Job, "query") as query:
            query.order_by.side_effect = error
            with self.assertRaises(TransientError) as ctx:
                self.as_caller(self.student_id).list_jobs()
        self.assertEqual(str(ctx.exception), "Network error, please try again")


class TestStorage(BackendTestCase):
    def image(self, filename="photo.png", content_type="image/png"):
        return FileStorage(stream=io.BytesIO(b"\x89PNG\r\n"), filename=filename, content_type=content_type)

    def test_upload_saves_into_bucket(self):
        with self.app.test_request_context():
            url = self.as_caller(self.owner_id).upload_job_image(self.image())
        self.assertTrue(url.startswith("/storage/job-images/"))
        with open(os.path.join(self.upload_dir, url.rsplit("/", 1)[1]), "rb") as f:
            self.assertEqual(f.read(), b"\x89PNG\r\n")

    def test_upload_requires_authentication(self):
        with self.app.test_request_context():
            with self.assertRaises(PermissionDenied):
                self.as_caller(None).upload_job_image(self.image())

    def test_upload_rejects_other_types(self):
        with self.app.test_request_context():
            with self.assertRaises(BackendError):
                self.as_caller(self.owner_id).upload_job_image(self.image("notes.pdf", "application/pdf"))

    def test_size_limit_applies_per_image(self):
        client = Backend(self.upload_dir, max_image_bytes=4).as_caller(self.owner_id)
        with self.app.test_request_context():
            with self.assertRaises(BackendError):
                client.upload_job_image(self.image())
        self.assertEqual(os.listdir(self.upload_dir), [])

    def test_request_limit_fits_every_image_at_full_size(self):
        self.assertEqual(self.backend.max_image_bytes, JOB_IMAGE_MAX_BYTES)
        self.assertGreaterEqual(Config.MAX_CONTENT_LENGTH, MAX_JOB_IMAGES * JOB_IMAGE_MAX_BYTES)


class TestBackendClients(unittest.TestCase):
    def test_as_caller_carries_storage_settings(self):
        client = Backend("/srv/job-images", max_image_bytes=1024).as_caller(7)
        self.assertEqual(client.caller_id, 7)
        self.assertEqual(client.upload_folder, "/srv/job-images")
        self.assertEqual(client.max_image_bytes, 1024)


if __name__ == '__main__':
    unittest.main()
