from flask import Blueprint, current_app, send_from_directory

storage_bp = Blueprint("storage", __name__)


# Public read access for job images
@storage_bp.route("/storage/job-images/<path:name>")
def job_image(name):
    return send_from_directory(current_app.extensions["backend"].upload_folder, name)
