from fastapi import HTTPException, status

from ..kobo_client import KoboRemoteError

__all__ = [
    "missing_required_fields",
    "raise_if_missing_fields",
    "remote_error",
    "remote_unreachable",
    "remote_bad_response",
]


def missing_required_fields(missing: list[str]) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"error": "Missing required fields", "missing": missing},
    )


def raise_if_missing_fields(req) -> None:
    # Checked before any call to KoboToolbox is made
    if missing := req.missing_fields():
        raise missing_required_fields(missing)


def remote_error(e: KoboRemoteError, message: str | None = None) -> HTTPException:
    # Relay KoboToolbox's own status code and body
    return HTTPException(
        status_code=e.status,
        detail={"error": message or e.message, "status": e.status, "body": e.body},
    )


def remote_unreachable(e: Exception) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={"error": f"Could not reach KoboToolbox: {e!r}"},
    )


def remote_bad_response(e: Exception) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={"error": f"Unexpected response from KoboToolbox: {e}"},
    )
