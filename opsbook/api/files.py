"""Helpers shared by endpoints that return or accept file content."""

from __future__ import annotations

import mimetypes

from fastapi.responses import Response

from opsbook.services.date_ranges import current_month_token


def resolve_month(month: str | None) -> str:
    """Requested ``YYYY-MM`` token, defaulting to the current month."""

    return month or current_month_token()


def attachment_response(*, filename: str, content: bytes, media_type: str | None = None) -> Response:
    if media_type is None:
        media_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
