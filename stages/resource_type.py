"""Resource-type stage: SQL schema + state machine -> Go type file."""

from stages.base import BaseStage, tag
from stages.schemas import ResourceTypeResult


class ResourceTypeStage(BaseStage):
    """Names the resource and writes its api/v1 type definitions."""

    name = "resource_type"
    prompt_file = "resource_type.txt"
    result_model = ResourceTypeResult

    def build_user_message(self, sql_schema, state_machine):
        return "\n".join([
            tag("sql_schema", sql_schema),
            tag("state_machine", state_machine),
        ])
