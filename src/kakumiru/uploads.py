"""Image hosting collaborator used when publishing posts."""

from __future__ import annotations

import logging
import os
from typing import BinaryIO, Optional, Union

import requests

from .errors import ConfigurationError, UploadError

UPLOAD_URL_TEMPLATE = "https://api.cloudinary.com/v1_1/{cloud_name}/image/upload"

ImageSource = Union[bytes, BinaryIO, str, "os.PathLike[str]"]


class ImageUploader:
    """Upload images to Cloudinary with an unsigned upload preset.

    Instances are callables returning the hosted image URL, which is the
    shape :meth:`kakumiru.resources.posts.Posts.publish` expects.
    """

    def __init__(
        self,
        cloud_name: Optional[str],
        upload_preset: Optional[str],
        *,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.cloud_name = cloud_name
        self.upload_preset = upload_preset
        self.timeout = timeout
        self._session = session
        self._logger = logging.getLogger(__name__)

    @classmethod
    def from_env(cls, **kwargs) -> "ImageUploader":
        return cls(
            os.environ.get("KAKUMIRU_CLOUDINARY_CLOUD_NAME"),
            os.environ.get("KAKUMIRU_CLOUDINARY_UPLOAD_PRESET"),
            **kwargs,
        )

    def __call__(self, image: ImageSource) -> str:
        return self.upload(image)

    def upload(self, image: ImageSource, *, filename: str = "upload") -> str:
        """Upload ``image`` and return its ``secure_url``.

        Parameters
        ----------
        image
            Raw bytes, an open binary file, or a filesystem path.
        filename
            Name sent with the multipart part when ``image`` has none.

        Raises
        ------
        ConfigurationError
            When the cloud name or upload preset is not set.
        UploadError
            When the host rejects the upload or returns no URL.
        """
        if not self.cloud_name or not self.upload_preset:
            raise ConfigurationError("Cloudinary configuration missing")

        url = UPLOAD_URL_TEMPLATE.format(cloud_name=self.cloud_name)
        requester = self._session or requests
        if isinstance(image, (str, os.PathLike)):
            with open(image, "rb") as handle:
                return self._send(requester, url, (os.path.basename(os.fspath(image)), handle))
        name = getattr(image, "name", None)
        return self._send(requester, url, (os.path.basename(name) if isinstance(name, str) else filename, image))

    def _send(self, requester, url: str, file_part: tuple) -> str:
        try:
            response = requester.post(
                url,
                files={"file": file_part},
                data={"upload_preset": self.upload_preset},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            self._logger.warning("Image upload to %s failed: %s", url, exc)
            raise UploadError("Failed to upload image") from exc

        if not 200 <= response.status_code < 300:
            self._logger.warning("Image upload to %s failed: %s %s", url, response.status_code, response.reason)
            raise UploadError("Failed to upload image")
        try:
            payload = response.json()
        except ValueError as exc:
            raise UploadError("Image host returned a non-JSON response") from exc
        secure_url = payload.get("secure_url") if isinstance(payload, dict) else None
        if not isinstance(secure_url, str) or not secure_url:
            raise UploadError("Image host response missing secure_url")
        return secure_url


__all__ = ["ImageUploader"]
