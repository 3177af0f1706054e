"""Extract the single YAML payload from free-form model output."""

import re

import yaml

from core.errors import AmbiguousOutput, MalformedPayload

_YAML_BLOCK_RE = re.compile(r"```yaml\n(.*?)\n```", re.DOTALL)


def parse_yaml_message(text):
    """Parse the YAML document a model returned.

    If the text holds exactly one ```yaml fenced block, its inner text is the
    payload. If it holds none, the whole (trimmed) text is the payload, since
    models sometimes skip the fence. More than one block is ambiguous and is
    rejected before anything is parsed.

    Returns whatever yaml.safe_load produces; callers validate the shape.
    """
    blocks = _YAML_BLOCK_RE.findall(text)
    if len(blocks) > 1:
        raise AmbiguousOutput(len(blocks))

    payload = blocks[0].strip() if blocks else text.strip()

    try:
        return yaml.safe_load(payload)
    except (yaml.YAMLError, ValueError) as e:
        raise MalformedPayload(str(e), payload) from e
