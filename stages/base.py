"""Base class shared by the four generation stages."""

import logging
import os

from pydantic import ValidationError

from config.defaults import DEFAULTS
from core.errors import SchemaViolation
from core.state import Message, ModelExchange
from utils.parser import parse_yaml_message

logger = logging.getLogger(__name__)

_PROMPTS_DIR = os.path.join(os.path.dirname(__file__), "prompts")


def load_prompt(filename):
    with open(os.path.join(_PROMPTS_DIR, filename)) as f:
        return f.read()


def tag(name, value):
    """Wrap one input field in the <input_NAME> tags the prompts refer to."""
    return f"<input_{name}>\n{value}\n</input_{name}>"


def _violation_from(stage_name, error):
    missing, mistyped, details = [], [], []
    for item in error.errors():
        loc = ".".join(str(part) for part in item["loc"])
        if not loc:
            details.append(f"expected a mapping: {item['msg']}")
        elif item["type"] == "missing":
            missing.append(loc)
        else:
            mistyped.append(loc)
            details.append(f"{loc}: {item['msg']}")
    return SchemaViolation(stage_name, missing, mistyped, "; ".join(details))


class BaseStage:
    """Prompt -> gateway -> YAML extraction -> shape validation.

    Subclasses set the prompt file, the result model and, where the stage
    warrants it, model preferences, and implement build_user_message().
    """

    name = "base"
    prompt_file = ""
    result_model = None
    model_preferences = None

    def build_user_message(self, **inputs):
        raise NotImplementedError

    def build_exchange(self, **inputs):
        return ModelExchange(
            system_prompt=load_prompt(self.prompt_file),
            messages=[Message(role="user", text=self.build_user_message(**inputs))],
            max_tokens=DEFAULTS["max_tokens"],
            model_preferences=self.model_preferences,
        )

    def validate(self, payload):
        try:
            return self.result_model.model_validate(payload)
        except ValidationError as e:
            raise _violation_from(self.name, e) from e

    async def run(self, gateway, **inputs):
        logger.info("Stage %s: requesting generation", self.name)
        text = await gateway.send(self.build_exchange(**inputs))
        result = self.validate(parse_yaml_message(text))
        logger.info("Stage %s: done", self.name)
        return result
