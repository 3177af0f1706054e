"""Process-level settings, read once from the environment at startup."""

import os
from dataclasses import dataclass

from config.defaults import DEFAULTS


@dataclass(frozen=True)
class Settings:
    api_key: str = ""
    code_base: str = ""
    enable_sampling: bool = False
    cheap_model: str = DEFAULTS["cheap_model"]
    strong_model: str = DEFAULTS["strong_model"]
    port: int = 5001


def load_settings(environ=None) -> Settings:
    """Build Settings from environment variables.

    Entry points call this exactly once, after load_dotenv(). Everything
    downstream receives the resulting object instead of reading os.environ.
    """
    env = os.environ if environ is None else environ
    return Settings(
        api_key=env.get("ANTHROPIC_API_KEY", ""),
        code_base=env.get("CODE_BASE") or env.get("NEUTREE_CODE_BASE", ""),
        enable_sampling=env.get("ENABLE_SAMPLING") == "true",
        cheap_model=env.get("CODER_CHEAP_MODEL") or DEFAULTS["cheap_model"],
        strong_model=env.get("CODER_STRONG_MODEL") or DEFAULTS["strong_model"],
        port=int(env.get("PORT", 5001)),
    )
