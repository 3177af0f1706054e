"""Storage-interface stage: adds the resource to pkg/storage/storage.go."""

from stages.base import BaseStage, tag
from stages.schemas import StorageInterfaceResult


class StorageInterfaceStage(BaseStage):
    name = "storage_interface"
    prompt_file = "storage_interface.txt"
    result_model = StorageInterfaceResult

    def build_user_message(self, resource_name, current_storage_interface):
        return "\n".join([
            tag("resource_name", resource_name),
            tag("storage_interface", current_storage_interface),
        ])
