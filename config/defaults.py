"""Default pipeline and commit settings."""

DEFAULTS = {
    "cheap_model": "claude-haiku-4-5-20251001",
    "strong_model": "claude-sonnet-4-5-20250929",
    "max_tokens": 32768,
    "max_retries": 5,            # handed to the Anthropic SDK, which owns the backoff
    "command_timeout": 300,
    "allowed_commands": ["git", "make"],
    "branch_prefix": "ai-impl",
    "max_branch_suffix": 100,
    "git_user_name": "neutree-ai-coder",
    "git_user_email": "neutree-ai-coder@arcfra.com",
    "format_commands": [["make", "mockgen"], ["make", "fmt"]],
    "commit_message": "feat: (ai-gen) impl the {resource_name} controller",
}
