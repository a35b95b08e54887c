# Overview: Flask API route for image uploads into the temp dir.

from flask import Blueprint, request

from ..services import file_service
from ..models import ROLE_ADMIN
from ..decorators import require_auth, require_roles

upload_bp = Blueprint("upload", __name__, url_prefix="/upload")


@upload_bp.post("")
@require_auth
@require_roles(ROLE_ADMIN)
def upload_route():
    """
    multipart/form-data with a single "file" part.

    Returns 201 with {"fileName", "originalName"}; fileName is what a product
    should reference in image.fileName.
    """
    return file_service.save_upload(request.files.get("file")), 201
