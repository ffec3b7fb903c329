"""Image upload storage.

Uploaded cover images and member photos are stored flat under
``UPLOAD_FOLDER`` and served from ``/uploads/<name>``.
"""
import logging
import os
import random
import time
from typing import Optional, Tuple

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

UPLOAD_URL_PREFIX = '/uploads/'


def file_extension(filename: Optional[str]) -> str:
    """Lower-case extension without the dot, or ''."""
    name = secure_filename(filename or '')
    if '.' not in name:
        return ''
    return name.rsplit('.', 1)[1].lower()


def allowed_image(file: FileStorage) -> bool:
    """True for an allowed image extension with an ``image/*`` mimetype."""
    extension = file_extension(file.filename)
    return (extension in current_app.config['ALLOWED_IMAGE_EXTENSIONS']
            and (file.mimetype or '').startswith('image/'))


def _stream_size(file: FileStorage) -> int:
    stream = file.stream
    position = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(position)
    return size


def unique_upload_name(filename: Optional[str]) -> str:
    """``<epoch-ms>-<random 9 digits>.<ext>``"""
    extension = file_extension(filename)
    stem = f'{int(time.time() * 1000)}-{random.randint(0, 999_999_999):09d}'
    return f'{stem}.{extension}' if extension else stem


def save_image_upload(file: Optional[FileStorage]) -> Tuple[Optional[str], str]:
    """Validate and store an uploaded image.

    Args:
        file: The multipart file, or None when the field was missing.

    Returns:
        Tuple of (public URL or None, error message).
    """
    if file is None or not file.filename:
        return None, 'No file uploaded'
    if _stream_size(file) > current_app.config['MAX_IMAGE_SIZE']:
        return None, 'File too large'
    if not allowed_image(file):
        return None, 'Only image files are allowed'

    folder = current_app.config['UPLOAD_FOLDER']
    os.makedirs(folder, exist_ok=True)
    name = unique_upload_name(file.filename)
    file.save(os.path.join(folder, name))
    logger.info('Stored upload %s', name)
    return UPLOAD_URL_PREFIX + name, ''


def delete_upload(url: Optional[str]) -> bool:
    """Remove a previously uploaded file, best effort.

    Only ``/uploads/...`` URLs are touched; external URLs are left alone.

    Returns:
        True if a file was removed.
    """
    if not url or not isinstance(url, str) or not url.startswith(UPLOAD_URL_PREFIX):
        return False
    name = secure_filename(url[len(UPLOAD_URL_PREFIX):])
    if not name:
        return False
    path = os.path.join(current_app.config['UPLOAD_FOLDER'], name)
    try:
        if os.path.exists(path):
            os.remove(path)
            return True
    except OSError as e:
        logger.warning('Could not delete upload %s: %s', path, e)
    return False
