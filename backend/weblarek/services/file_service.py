# Overview: Image file lifecycle on local disk (temp upload -> permanent, delete).

"""
File store adapter

Uploads land in PUBLIC_DIR/UPLOAD_PATH_TEMP. When a product references an
image it is moved to PUBLIC_DIR/UPLOAD_PATH. Deleting or replacing a product
image deletes the stored file.

move_file() and delete_file() are fire-and-forget: failures are logged with
the application logger and never raised to the request.
"""

from __future__ import annotations

import os
import uuid

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from ..errors import BadRequestError

ALLOWED_IMAGE_TYPES = {
    "image/png",
    "image/jpg",
    "image/jpeg",
    "image/gif",
    "image/svg+xml",
}


def public_dir() -> str:
    return current_app.config["PUBLIC_DIR"]


def temp_dir() -> str:
    return os.path.join(public_dir(), current_app.config["UPLOAD_PATH_TEMP"])


def permanent_dir() -> str:
    return os.path.join(public_dir(), current_app.config["UPLOAD_PATH"])


def stored_path(file_name: str) -> str:
    """
    Absolute path of a stored file name such as "/images/a.png".

    Only the base name is used, so the result always lies in permanent_dir().
    """
    return os.path.join(permanent_dir(), os.path.basename(file_name))


def move_file(file_name: str, from_dir: str, to_dir: str) -> bool:
    """
    Move basename(file_name) from from_dir to to_dir.

    Returns True on success. Missing source files and OS errors are logged,
    not raised.
    """
    base = os.path.basename(file_name)
    source = os.path.join(from_dir, base)
    target = os.path.join(to_dir, base)
    try:
        if not os.path.exists(source):
            raise FileNotFoundError(f"File not found: {source}")
        os.makedirs(to_dir, exist_ok=True)
        os.replace(source, target)
    except OSError as exc:
        current_app.logger.warning("Failed to move file %s: %s", file_name, exc)
        return False
    current_app.logger.info("File moved: %s -> %s", source, target)
    return True


def move_to_permanent(file_name: str) -> bool:
    return move_file(file_name, temp_dir(), permanent_dir())


def delete_file(path: str) -> bool:
    """Delete a file. Returns True on success; failures are logged."""
    try:
        os.remove(path)
    except OSError as exc:
        current_app.logger.warning("Failed to delete file %s: %s", path, exc)
        return False
    return True


def delete_stored_image(file_name: str | None) -> bool:
    if not file_name:
        return False
    return delete_file(stored_path(file_name))


def save_upload(upload: FileStorage | None) -> dict:
    """
    Store an uploaded image in the temp dir.

    Returns {"fileName", "originalName"} where fileName is the path the
    product will reference once the file is moved to the permanent dir.
    """
    if upload is None or not upload.filename:
        raise BadRequestError("File was not uploaded")
    if upload.mimetype not in ALLOWED_IMAGE_TYPES:
        raise BadRequestError("Unsupported file type")

    original_name = upload.filename
    safe_name = secure_filename(original_name) or "upload"
    stored_name = f"{uuid.uuid4().hex}_{safe_name}"

    os.makedirs(temp_dir(), exist_ok=True)
    upload.save(os.path.join(temp_dir(), stored_name))

    upload_path = current_app.config["UPLOAD_PATH"]
    file_name = f"/{upload_path}/{stored_name}" if upload_path else f"/{stored_name}"
    return {"fileName": file_name, "originalName": original_name}
