"""
Content Loader — turns declarative unlock content into validated definitions.

Format (JSON, one object or a list of objects per file):

    {
      "id": "recipe_bone_sword",
      "display_name": "Bone Sword Recipe",
      "reward_id": "recipe:bone_sword",
      "condition": {"type": "and", "children": [
        {"type": "leaf", "check": {"kind": "threshold", "topic": "kills:goblin", "target": 10, "op": "Ge"}},
        {"type": "leaf", "check": {"kind": "completed", "topic": "research:bone_crafting"}}
      ]}
    }

Condition variants: "true" | "leaf" | "and" | "or" | "not".
Leaf kinds: "completed" | "threshold" (op defaults to "Ge").

All structural problems are detected here, never at signal time.
"""

import json
import logging
from pathlib import Path
from typing import Any, Iterable, List, Union

from pydantic import ValidationError

from unlock_kernel.models.unlock import UnlockDefinition

logger = logging.getLogger(__name__)

CONTENT_SUFFIX = ".unlock.json"


class ContentError(ValueError):
    """Raised when an unlock definition cannot be parsed."""

    def __init__(self, unlock_id: str, detail: str):
        self.unlock_id = unlock_id
        self.detail = detail
        super().__init__(f"Invalid unlock definition {unlock_id!r}: {detail}")


class DanglingConditionError(ContentError):
    """Raised when a condition tree is malformed (unknown variant, operator, missing child)."""
    pass


def _format_errors(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def parse_definition(data: Any) -> UnlockDefinition:
    """Validate one raw definition."""
    if not isinstance(data, dict):
        raise ContentError("<unknown>", f"expected an object, got {type(data).__name__}")

    unlock_id = str(data.get("id") or "<unknown>")
    try:
        return UnlockDefinition.model_validate(data)
    except ValidationError as exc:
        detail = _format_errors(exc)
        if any(err["loc"] and err["loc"][0] == "condition" for err in exc.errors()):
            raise DanglingConditionError(unlock_id, detail) from exc
        raise ContentError(unlock_id, detail) from exc


def parse_definitions(items: Iterable[Any]) -> List[UnlockDefinition]:
    """Validate a batch of raw definitions, stopping at the first bad one."""
    return [parse_definition(item) for item in items]


def _read_file(path: Path) -> List[UnlockDefinition]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ContentError(path.name, f"invalid JSON: {exc}") from exc

    items = raw if isinstance(raw, list) else [raw]
    return parse_definitions(items)


def load_definitions(path: Union[str, Path]) -> List[UnlockDefinition]:
    """
    Load definitions from a JSON file, or from every *.unlock.json file in a
    directory (sorted by name, so load order is stable).
    """
    path = Path(path)
    if path.is_dir():
        files = sorted(p for p in path.iterdir() if p.name.endswith(CONTENT_SUFFIX))
    else:
        files = [path]

    definitions: List[UnlockDefinition] = []
    for file in files:
        definitions.extend(_read_file(file))

    logger.info("Read %d unlock definitions from %s", len(definitions), path)
    return definitions


def dump_definition(definition: UnlockDefinition) -> dict:
    """Serialize a definition back to the content format."""
    return definition.model_dump(mode="json")
