"""Pipeline data models shared across all stages."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class GenerationRequest:
    sql_schema: str
    state_machine: str
    current_storage_interface: str = ""    # current pkg/storage/storage.go
    current_storage_impl: str = ""         # current pkg/storage/postgrest.go


@dataclass
class FileEntry:
    path: str           # relative to the code base, e.g. "api/v1/role_types.go"
    content: str


@dataclass(frozen=True)
class Message:
    role: str           # "user" or "assistant"
    text: str


@dataclass(frozen=True)
class ModelPreferences:
    """Selection hint passed along with an exchange. Priorities are 0..1."""

    intelligence_priority: float | None = None
    cost_priority: float | None = None
    speed_priority: float | None = None


@dataclass(frozen=True)
class ModelExchange:
    system_prompt: str
    messages: list[Message]
    max_tokens: int
    model_preferences: ModelPreferences | None = None


@dataclass
class PipelineState:
    """Accumulator threaded through the orchestrator, filled stage by stage."""

    request: GenerationRequest
    resource_name: str = ""
    go_type: str = ""
    storage_interface_full: str = ""
    storage_impl_full: str = ""
    controller_impl: str = ""
    controller_test: str = ""
    status: str = "pending"     # pending|resource_type|storage|controller|done|failed
    files: list[FileEntry] = field(default_factory=list)


@dataclass
class CommandResult:
    command: list[str]
    returncode: int
    stdout: str
    stderr: str


@dataclass
class BranchCommitJob:
    resource_name: str
    files: list[FileEntry]
    branch_name: str = ""
    phase: str = "resolve"      # resolve|reset|write|format|push|done|failed
