"""Storage-implementation stage: adds the resource to pkg/storage/postgrest.go."""

from core.state import ModelPreferences
from stages.base import BaseStage, tag
from stages.schemas import StorageImplResult


class StorageImplStage(BaseStage):
    """Writes persistence code, so it asks for the stronger model."""

    name = "storage_impl"
    prompt_file = "storage_impl.txt"
    result_model = StorageImplResult
    model_preferences = ModelPreferences(intelligence_priority=1)

    def build_user_message(self, resource_name, current_storage_impl):
        return "\n".join([
            tag("resource_name", resource_name),
            tag("storage_impl", current_storage_impl),
        ])
