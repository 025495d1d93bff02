import json
from pydantic import BaseModel

__all__ = [
    "last_path_segment",
    "json_model_dump_kwargs",
]


def last_path_segment(reference: str) -> str:
    """
    Recovers the trailing identifier of a KoboToolbox API reference, e.g.
    https://kf.example.org/api/v2/users/alice/ -> alice. Returns an empty string if there are no non-empty segments.
    """
    segments = [s for s in reference.split("/") if s]
    return segments[-1] if segments else ""


def json_model_dump_kwargs(x: BaseModel, **kwargs) -> str:
    return json.dumps(x.model_dump(mode="json", exclude_none=True), **kwargs)
