"""Controller stage: the only stage that sees every earlier artifact."""

from stages.base import BaseStage, tag
from stages.schemas import ControllerResult


class ControllerStage(BaseStage):
    name = "controller"
    prompt_file = "controller.txt"
    result_model = ControllerResult

    def build_user_message(self, resource_name, go_type, state_machine,
                           storage_interface_full, storage_impl_full):
        return "\n".join([
            tag("resource_name", resource_name),
            tag("state_machine", state_machine),
            tag("resource_type", go_type),
            tag("storage_interface", storage_interface_full),
            tag("storage_impl", storage_impl_full),
        ])
