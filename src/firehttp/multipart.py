"""Multipart/form-data bodies for file uploads."""

from __future__ import annotations

import io
import logging
import mimetypes
import os
import shutil
from typing import IO, Mapping, Sequence

from urllib3.filepost import choose_boundary

from .errors import FileUploadError
from .options import FileUpload

logger = logging.getLogger(__name__)

DEFAULT_FILE_NAME = "filename"
DEFAULT_MIME_TYPE = "application/octet-stream"


def escape_quotes(value: str) -> str:
    """Escape backslashes and double quotes for a quoted header parameter."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def content_disposition(field_name: str, file_name: str) -> str:
    return 'form-data; name="%s"; filename="%s"' % (
        escape_quotes(field_name),
        escape_quotes(file_name),
    )


class MultipartWriter:
    """Write parts into an in-memory multipart/form-data body.

    Parts are written sequentially: ``create_part`` emits the boundary and
    part headers and returns the buffer to copy the part payload into.
    ``close`` appends the closing boundary and returns the body.
    """

    def __init__(self, boundary: str | None = None) -> None:
        self.boundary = boundary or choose_boundary()
        self._buffer = io.BytesIO()
        self._parts = 0
        self._closed = False

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; boundary={self.boundary}"

    def create_part(self, headers: Mapping[str, str]) -> IO[bytes]:
        if self._closed:
            raise ValueError("multipart writer is closed")
        lines = [f"--{self.boundary}"]
        if self._parts:
            lines[0] = f"\r\n--{self.boundary}"
        lines.extend(f"{key}: {value}" for key, value in headers.items())
        self._buffer.write(("\r\n".join(lines) + "\r\n\r\n").encode("utf-8"))
        self._parts += 1
        return self._buffer

    def create_form_file(self, field_name: str, file_name: str) -> IO[bytes]:
        """Start a file part with a content type guessed from the filename."""
        mime_type, _ = mimetypes.guess_type(file_name)
        return self.create_part(
            {
                "Content-Disposition": content_disposition(
                    field_name, file_name
                ),
                "Content-Type": mime_type or DEFAULT_MIME_TYPE,
            }
        )

    def close(self) -> bytes:
        if not self._closed:
            prefix = "\r\n" if self._parts else ""
            closing = f"{prefix}--{self.boundary}--\r\n"
            self._buffer.write(closing.encode("ascii"))
            self._closed = True
        return self._buffer.getvalue()


def field_names(files: Sequence[FileUpload]) -> list[str]:
    """Return the form field name used for each upload.

    Explicit names are kept. A sole unnamed upload is called ``file``;
    otherwise unnamed uploads are numbered ``file1``, ``file2``... in order.
    """
    names: list[str] = []
    unnamed = 0
    for upload in files:
        if upload.field_name:
            names.append(upload.field_name)
        elif len(files) == 1:
            names.append("file")
        else:
            unnamed += 1
            names.append(f"file{unnamed}")
    return names


def _open_source(upload: FileUpload) -> IO[bytes]:
    if upload.stream is not None:
        return upload.stream
    try:
        return open(upload.file_name, "rb")
    except OSError as exc:
        raise FileUploadError(upload.file_name, "open", exc) from exc


def _close_source(source: IO[bytes], file_name: str) -> None:
    try:
        source.close()
    except OSError as exc:
        raise FileUploadError(file_name, "close", exc) from exc


def _write_upload(
    writer: MultipartWriter, upload: FileUpload, field_name: str
) -> None:
    file_name = upload.file_name or DEFAULT_FILE_NAME
    display_name = os.path.basename(file_name) or DEFAULT_FILE_NAME
    source = _open_source(upload)
    try:
        if upload.mime_type:
            part = writer.create_part(
                {
                    "Content-Disposition": content_disposition(
                        field_name, display_name
                    ),
                    "Content-Type": upload.mime_type,
                }
            )
        else:
            part = writer.create_form_file(field_name, display_name)
        shutil.copyfileobj(source, part)
    # Closed or text-mode streams fail with ValueError or TypeError.
    except (OSError, ValueError, TypeError) as exc:
        raise FileUploadError(file_name, "copy", exc) from exc
    finally:
        _close_source(source, file_name)


def _discard_streams(uploads: Sequence[FileUpload]) -> None:
    for upload in uploads:
        if upload.stream is None:
            continue
        try:
            upload.stream.close()
        except OSError as exc:
            logger.warning(
                "Failed to close unsent upload %r: %s", upload.file_name, exc
            )


def build_multipart_body(
    files: Sequence[FileUpload], boundary: str | None = None
) -> tuple[bytes, str]:
    """Build a multipart body from ``files``.

    Returns the body and its ``Content-Type`` header value. The first upload
    that fails aborts the build; streams of the uploads after it are closed
    unsent.
    """
    writer = MultipartWriter(boundary)
    names = field_names(files)
    for index, upload in enumerate(files):
        logger.debug(
            "Adding upload %r as field %r", upload.file_name, names[index]
        )
        try:
            _write_upload(writer, upload, names[index])
        except FileUploadError:
            _discard_streams(files[index + 1 :])
            raise
    return writer.close(), writer.content_type
