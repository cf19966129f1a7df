"""``perch.toml`` scaffolding.

Renders every ``GeneratorConfig`` field with its help text and current
value. The field list and defaults come from the dataclass definition,
so the file always documents exactly the options perch accepts.
"""

import json
import logging
from dataclasses import fields
from enum import Enum
from pathlib import Path
from typing import Any

from perch.config import _MODE_FIELDS, GeneratorConfig, read_config_table
from perch.errors import ConfigurationError

logger = logging.getLogger("perch.publish")

HEADER = "# perch configuration. Run `perch publish` to refresh this file.\n"


def _toml_value(name: str, value: Any) -> str:
    if name in _MODE_FIELDS:
        return f"0o{value:o}"
    if value is None:
        return "false"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return json.dumps(value.value)
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, (str, Path)):
        return json.dumps(str(value))
    if name == "url_list":
        items = [
            _toml_value("", url) if method is None else f"[{json.dumps(url)}, {json.dumps(method.value)}]"
            for url, method in value
        ]
        return "[" + ", ".join(items) + "]"
    if isinstance(value, frozenset):
        value = sorted(value)
    return "[" + ", ".join(_toml_value("", item) for item in value) + "]"


def render_config(config: GeneratorConfig | None = None) -> str:
    """Render *config* (defaults when omitted) as a commented TOML document."""
    config = config or GeneratorConfig()
    lines = [HEADER]
    for f in fields(config):
        help_text = f.metadata.get("help")
        if help_text:
            lines.append(f"# {help_text}")
        lines.append(f"{f.name} = {_toml_value(f.name, getattr(config, f.name))}")
        lines.append("")
    return "\n".join(lines)


def merge_existing(path: Path) -> GeneratorConfig:
    """Current values from *path* on top of the defaults.

    A missing, unreadable, or invalid file is not an error: the
    defaults are used and a warning is logged.
    """
    if not path.is_file():
        return GeneratorConfig()
    try:
        return GeneratorConfig.from_mapping(read_config_table(path))
    except (OSError, ConfigurationError) as exc:
        logger.warning("Could not merge existing config %s, using defaults: %s", path, exc)
        return GeneratorConfig()


def publish_config(path: str | Path, *, new: bool = False) -> Path:
    """Write the config file at *path*.

    With ``new`` the file is rebuilt from defaults; otherwise values from
    an existing file are kept.
    """
    target = Path(path)
    if target.name == "pyproject.toml":
        msg = "perch publish writes a standalone file; add a [tool.perch] table to pyproject.toml by hand"
        raise ConfigurationError(msg)
    config = GeneratorConfig() if new else merge_existing(target)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(render_config(config), encoding="utf-8")
    logger.info("Create: %s", target)
    return target
