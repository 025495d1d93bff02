from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from typing import Any

from .constants import FALSE_MARKER

__all__ = [
    # Tabular:
    "PermissionRow",
    # Remote:
    "PartialPermissionAssignment",
    "PermissionAssignment",
    "BulkAssignmentResult",
    # Requests / responses:
    "ExportRequest",
    "UpdateRequest",
    "UpdatePermissionsResponse",
]


class BaseImmutableModel(BaseModel):
    # Immutable record
    model_config = ConfigDict(frozen=True)


class PermissionRow(BaseImmutableModel):
    # Unknown spreadsheet columns are dropped rather than rejected, since rows come from hand-edited sheets.
    model_config = ConfigDict(frozen=True, extra="ignore")

    username: str

    view_form: str = FALSE_MARKER
    edit_form: str = FALSE_MARKER
    manage_project: str = FALSE_MARKER
    add_submissions: str = FALSE_MARKER
    view_submissions: str = FALSE_MARKER
    edit_submissions: str = FALSE_MARKER
    delete_submissions: str = FALSE_MARKER
    validate_submissions: str = FALSE_MARKER

    partial_view: str = FALSE_MARKER
    partial_view_filter_field: str = ""
    partial_view_filter_value: str = ""
    partial_edit: str = FALSE_MARKER
    partial_edit_filter_field: str = ""
    partial_edit_filter_value: str = ""
    partial_delete: str = FALSE_MARKER
    partial_delete_filter_field: str = ""
    partial_delete_filter_value: str = ""
    partial_validate: str = FALSE_MARKER
    partial_validate_filter_field: str = ""
    partial_validate_filter_value: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def cells_as_str(cls, v: Any, info: ValidationInfo) -> Any:
        # JSON cells may be booleans or numbers; only the exact string "TRUE" enables a permission.
        if isinstance(v, (bool, int, float)):
            return str(v)
        if v is None and info.field_name != "username":
            return ""
        return v


class PartialPermissionAssignment(BaseImmutableModel):
    url: str
    # Each filter is a single-key object, {field: value}
    filters: list[dict[str, Any]] = []


class PermissionAssignment(BaseImmutableModel):
    # KoboToolbox returns extra keys (url, label); keep them so untouched assignments are re-submitted as received.
    model_config = ConfigDict(frozen=True, extra="allow")

    user: str
    permission: str
    partial_permissions: list[PartialPermissionAssignment] | None = None


class BulkAssignmentResult(BaseImmutableModel):
    ok: bool
    status: int
    data: Any = None


class _KoboTargetRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str = ""
    base_url: str = Field("", alias="baseUrl")
    asset_uid: str = Field("", alias="assetUid")

    def missing_fields(self) -> list[str]:
        return [
            name
            for name, value in (("token", self.token), ("baseUrl", self.base_url), ("assetUid", self.asset_uid))
            if not value
        ]


class ExportRequest(_KoboTargetRequest):
    owner: str | None = None


class UpdateRequest(_KoboTargetRequest):
    owner: str = ""
    users: list[PermissionRow] | None = None

    def missing_fields(self) -> list[str]:
        missing = super().missing_fields()
        if not self.owner:
            missing.append("owner")
        if self.users is None:
            missing.append("users")
        return missing


class UpdatePermissionsResponse(BaseModel):
    success: bool
    status: int
    message: str
    data: Any = None
