"""Object backends the gateway can serve from

A backend turns a request path into a response: the S3 backend redirects the
client to a presigned URL, the local backend serves a file from disk.
"""

import logging
import os

from starlette.responses import FileResponse, JSONResponse, RedirectResponse

from presigners import create_presigner
from sign_s3 import ConstructionError

logger = logging.getLogger(__name__)


class S3Backend:
    def __init__(self, presigner, prefix='', expires_in=900):
        self.presigner = presigner
        self.prefix = prefix
        self.expires_in = expires_in

    def get(self, path):
        key = self.prefix + path
        try:
            url = self.presigner.presign_get(key, self.expires_in)
        except ConstructionError as e:
            logger.warning("Cannot presign %r: %s", key, e)
            return JSONResponse({"error": f"Unable to generate presigned URL: {e}"}, status_code=400)
        return RedirectResponse(url, status_code=307)


class LocalBackend:
    def __init__(self, directory):
        self.directory = os.path.realpath(directory)

    def resolve(self, path):
        """Return the absolute file path for ``path``, or None if it is outside the directory or not a file"""
        candidate = os.path.realpath(os.path.join(self.directory, path))
        if os.path.commonpath([self.directory, candidate]) != self.directory:
            return None
        if not os.path.isfile(candidate):
            return None
        return candidate

    def get(self, path):
        file_path = self.resolve(path)
        if file_path is None:
            return JSONResponse({"error": f"Not found: {path}"}, status_code=404)
        return FileResponse(file_path)


def create_backend(config):
    if config.service == 'local':
        logger.info("Serving files from %s", config.directory)
        return LocalBackend(config.directory)
    if config.service == 's3':
        return S3Backend(create_presigner(config), prefix=config.prefix, expires_in=config.expires_in)
    raise ValueError(f"Invalid configuration: Service {config.service} is unknown")
