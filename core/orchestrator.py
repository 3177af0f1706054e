"""Pipeline orchestrator: resource type -> storage (interface + impl) -> controller."""

import asyncio
import logging

from core.state import FileEntry, PipelineState
from stages.controller import ControllerStage
from stages.resource_type import ResourceTypeStage
from stages.storage_impl import StorageImplStage
from stages.storage_interface import StorageInterfaceStage
from utils.llm import DirectSamplingChannel, build_gateway, get_client

logger = logging.getLogger(__name__)

STORAGE_INTERFACE_PATH = "pkg/storage/storage.go"
STORAGE_IMPL_PATH = "pkg/storage/postgrest.go"


def type_path(resource_name):
    return f"api/v1/{resource_name}_types.go"


def controller_path(resource_name):
    return f"controllers/{resource_name}_controller.go"


def controller_test_path(resource_name):
    return f"controllers/{resource_name}_controller_test.go"


def artifact_files(state: PipelineState) -> list[FileEntry]:
    """Map a completed accumulator onto the five generated files, in order."""
    name = state.resource_name
    return [
        FileEntry(path=type_path(name), content=state.go_type),
        FileEntry(path=STORAGE_INTERFACE_PATH, content=state.storage_interface_full),
        FileEntry(path=STORAGE_IMPL_PATH, content=state.storage_impl_full),
        FileEntry(path=controller_path(name), content=state.controller_impl),
        FileEntry(path=controller_test_path(name), content=state.controller_test),
    ]


class Orchestrator:
    """Runs the four stages in dependency order against one gateway.

    Storage interface and storage impl only need the resource name, so they
    are issued concurrently. The controller stage waits for both. Any stage
    failure propagates; a partial artifact set is never returned. The
    orchestrator does no file I/O: callers read the current storage sources
    and hand the generated files to the committer.
    """

    @classmethod
    def from_settings(cls, settings):
        """Build an orchestrator whose gateway backend follows settings.enable_sampling.

        With sampling on and no external host, requests are served by a
        DirectSamplingChannel in this process. The orchestrator owns the
        client it creates; call aclose() from the event loop that used it.
        """
        client = get_client(settings.api_key)
        channel = None
        if settings.enable_sampling:
            channel = DirectSamplingChannel(client, settings.cheap_model, settings.strong_model)
        return cls(build_gateway(settings, channel=channel, client=client), client=client)

    def __init__(self, gateway, client=None):
        self.gateway = gateway
        self.client = client
        self.resource_type = ResourceTypeStage()
        self.storage_interface = StorageInterfaceStage()
        self.storage_impl = StorageImplStage()
        self.controller = ControllerStage()

    async def run_state(self, request) -> PipelineState:
        state = PipelineState(request=request)
        try:
            state.status = "resource_type"
            typed = await self.resource_type.run(
                self.gateway,
                sql_schema=request.sql_schema,
                state_machine=request.state_machine,
            )
            state.resource_name = typed.resource_name
            state.go_type = typed.go_type

            state.status = "storage"
            interface, impl = await self._run_storage_stages(state.resource_name, request)
            state.storage_interface_full = interface.storage_interface_full
            state.storage_impl_full = impl.storage_impl_full

            state.status = "controller"
            controller = await self.controller.run(
                self.gateway,
                resource_name=state.resource_name,
                go_type=state.go_type,
                state_machine=request.state_machine,
                storage_interface_full=state.storage_interface_full,
                storage_impl_full=state.storage_impl_full,
            )
            state.controller_impl = controller.controller_impl
            state.controller_test = controller.controller_test
        except Exception:
            logger.error("Pipeline failed during stage group '%s'", state.status)
            state.status = "failed"
            raise

        state.files = artifact_files(state)
        state.status = "done"
        logger.info("Generated %d files for resource '%s'", len(state.files), state.resource_name)
        return state

    async def _run_storage_stages(self, resource_name, request):
        """Run both storage stages concurrently.

        When one fails the other is cancelled and awaited before the first
        error is re-raised, so no task outlives the pipeline.
        """
        tasks = [
            asyncio.create_task(self.storage_interface.run(
                self.gateway,
                resource_name=resource_name,
                current_storage_interface=request.current_storage_interface,
            )),
            asyncio.create_task(self.storage_impl.run(
                self.gateway,
                resource_name=resource_name,
                current_storage_impl=request.current_storage_impl,
            )),
        ]
        try:
            return await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def aclose(self):
        """Release the provider client, if this orchestrator owns one."""
        if self.client is not None:
            await self.client.close()
            self.client = None

    async def run(self, request) -> list[FileEntry]:
        """Run the whole pipeline and return the five generated files."""
        state = await self.run_state(request)
        return state.files

    async def generate_resource_type(self, sql_schema, state_machine):
        """Stage 1 alone. Returns (resource_name, type file)."""
        result = await self.resource_type.run(
            self.gateway, sql_schema=sql_schema, state_machine=state_machine,
        )
        return result.resource_name, FileEntry(
            path=type_path(result.resource_name), content=result.go_type,
        )

    async def generate_storage_interface(self, resource_name, current_storage_interface):
        result = await self.storage_interface.run(
            self.gateway,
            resource_name=resource_name,
            current_storage_interface=current_storage_interface,
        )
        return FileEntry(path=STORAGE_INTERFACE_PATH, content=result.storage_interface_full)

    async def generate_storage_impl(self, resource_name, current_storage_impl):
        result = await self.storage_impl.run(
            self.gateway,
            resource_name=resource_name,
            current_storage_impl=current_storage_impl,
        )
        return FileEntry(path=STORAGE_IMPL_PATH, content=result.storage_impl_full)
