"""Error taxonomy for generation and commit failures.

Nothing here is retried by the pipeline itself. The only retry in the
system is the Anthropic SDK's own transient-failure retry.
"""


class CoderError(Exception):
    """Base class for every failure the pipeline surfaces to its caller."""


class AmbiguousOutput(CoderError):
    """Model output contained more than one ```yaml block."""

    def __init__(self, count):
        self.count = count
        super().__init__(
            f"Multiple YAML code blocks found in model output ({count} blocks)"
        )


class MalformedPayload(CoderError):
    """The candidate YAML payload could not be parsed."""

    def __init__(self, detail, payload):
        self.detail = detail
        self.payload = payload
        super().__init__(f"Failed to parse YAML: {detail}\n\n{payload}")


class SchemaViolation(CoderError):
    """A parsed stage result is missing fields or has fields of the wrong type."""

    def __init__(self, stage, missing=(), mistyped=(), detail=""):
        self.stage = stage
        self.missing = list(missing)
        self.mistyped = list(mistyped)
        parts = []
        if self.missing:
            parts.append(f"missing: {', '.join(self.missing)}")
        if self.mistyped:
            parts.append(f"mistyped: {', '.join(self.mistyped)}")
        if detail:
            parts.append(detail)
        super().__init__(f"Stage '{stage}' returned an invalid result ({'; '.join(parts)})")


class GenerationUnavailable(CoderError):
    """The model provider failed after its retry budget was exhausted."""


class BranchResolutionExhausted(CoderError):
    """No free branch name was found within the configured suffix range."""

    def __init__(self, base, attempts):
        self.base = base
        self.attempts = attempts
        super().__init__(
            f"No unused branch name for '{base}' after {attempts} attempts"
        )


class CommitStepFailed(CoderError):
    """A subprocess in the commit sequence exited non-zero."""

    def __init__(self, command, returncode, stdout="", stderr="", phase=""):
        self.command = list(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.phase = phase
        detail = (stderr or stdout or "no output").strip()
        super().__init__(
            f"'{' '.join(self.command)}' failed (exit {returncode}): {detail}"
        )
