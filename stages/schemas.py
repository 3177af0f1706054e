"""Result shapes each stage's YAML payload must satisfy."""

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

_RESOURCE_NAME_RE = re.compile(r"^[a-z][a-z0-9_]*$")


class StageResult(BaseModel):
    # strict: a number or list where a string is expected is a violation, not coerced
    model_config = ConfigDict(strict=True)


class ResourceTypeResult(StageResult):
    resource_name: str = Field(description="Singular resource name, e.g. 'role' for 'roles'")
    go_type: str = Field(description="Full content of api/v1/{resource_name}_types.go")

    @field_validator("resource_name")
    @classmethod
    def _normalise_resource_name(cls, value):
        value = value.strip().lower()
        if not _RESOURCE_NAME_RE.match(value):
            raise ValueError(f"not a usable resource identifier: {value!r}")
        return value


class StorageInterfaceResult(StageResult):
    storage_interface_full: str = Field(description="Full replacement of pkg/storage/storage.go")


class StorageImplResult(StageResult):
    storage_impl_full: str = Field(description="Full replacement of pkg/storage/postgrest.go")


class ControllerResult(StageResult):
    controller_impl: str = Field(description="controllers/{resource_name}_controller.go")
    controller_test: str = Field(description="controllers/{resource_name}_controller_test.go")
