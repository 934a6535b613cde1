import os
from dataclasses import dataclass
from typing import Any, Literal

from pattern_categorizer.core import settings
from pattern_categorizer.logger import get_logger

ValueType = Literal["string", "int", "bool"]

logger = get_logger(__name__)


@dataclass(frozen=True)
class ConfigField:
    key: str
    label: str
    description: str
    value_type: ValueType = "string"
    options: tuple[str, ...] | None = None
    min_value: int | None = None
    restart_required: bool = False


CONFIG_FIELDS: tuple[ConfigField, ...] = (
    ConfigField(
        key="TIE_BREAK",
        label="Tie-break Policy",
        description="How rules with exactly equal scores are ordered: name, order or created.",
        options=settings.TIE_BREAK_CHOICES,
    ),
    ConfigField(
        key="TYPE_FILTER",
        label="Income/Expense Filter",
        description="Only score expense rules for debits and income rules for credits.",
        value_type="bool",
    ),
    ConfigField(
        key="RECATEGORIZE_CHUNK_SIZE",
        label="Re-categorize Chunk Size",
        description="Transactions scored per chunk during bulk re-categorization.",
        value_type="int",
        min_value=1,
    ),
    ConfigField(
        key="REGEX_CACHE_SIZE",
        label="Regex Cache Size",
        description="Compiled regex patterns kept in memory.",
        value_type="int",
        min_value=1,
        restart_required=True,
    ),
    ConfigField(
        key="LOG_LEVEL",
        label="Log Level",
        description="DEBUG, INFO, WARNING, ERROR or CRITICAL.",
        options=("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"),
        restart_required=True,
    ),
    ConfigField(
        key="LOG_DIR",
        label="Log Directory",
        description="Directory for app.log. Leave empty to log to stdout only.",
        restart_required=True,
    ),
)

CONFIG_TEMPLATE = """# Pattern Categorizer configuration
# These settings only take effect when the same environment variable is not set.
# Remove the leading "#" to enable a setting here.

# Tie-break for equal scores (name, order, created)
# TIE_BREAK:

# Score only rules matching the transaction's income/expense polarity (true/false)
# TYPE_FILTER:

# Transactions per chunk during bulk re-categorization (minimum 1)
# RECATEGORIZE_CHUNK_SIZE:

# Compiled regex cache size (minimum 1)
# REGEX_CACHE_SIZE:

# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
# LOG_LEVEL:

# Log directory (app.log)
# LOG_DIR:
"""

_FIELDS_BY_KEY = {field.key: field for field in CONFIG_FIELDS}


def get_config_path() -> str:
    config_path = settings.get_config_path()
    if config_path:
        return config_path
    return os.path.join(os.getcwd(), "config", settings.CONFIG_FILENAME)


def build_config_payload() -> dict[str, Any]:
    config_values = settings.read_config_file(get_config_path())
    fields: list[dict[str, Any]] = []
    for field in CONFIG_FIELDS:
        env_override = settings.is_env_override(field.key)
        fields.append({
            "key": field.key,
            "label": field.label,
            "description": field.description,
            "value": os.getenv(field.key, "") if env_override else config_values.get(field.key, ""),
            "options": field.options,
            "env_override": env_override,
            "restart_required": field.restart_required,
        })
    return {"config_path": get_config_path(), "fields": fields}


def validate_value(field: ConfigField, raw_value: str) -> tuple[str, str | None]:
    value = raw_value.strip()
    if not value:
        return "", None

    if "\n" in value or "\r" in value:
        return value, "Value must be a single line."

    if field.options:
        normalized = value.upper() if field.key == "LOG_LEVEL" else value.lower()
        if normalized not in field.options:
            return value, f"Must be one of: {', '.join(field.options)}."
        return normalized, None

    if field.value_type == "bool":
        normalized = value.lower()
        if normalized not in {"true", "false"}:
            return value, "Must be true or false."
        return normalized, None

    if field.value_type == "int":
        try:
            parsed = int(value)
        except ValueError:
            return value, "Must be a whole number."
        if field.min_value is not None and parsed < field.min_value:
            return value, f"Must be at least {field.min_value}."
        return str(parsed), None

    return value, None


def apply_config_updates(values: dict[str, str]) -> tuple[dict[str, str], dict[str, str]]:
    """Validate and persist updates; returns (errors, applied)."""
    errors: dict[str, str] = {}
    updates: dict[str, str] = {}

    for key, raw_value in values.items():
        field = _FIELDS_BY_KEY.get(key)
        if field is None:
            errors[key] = "Unknown setting."
            continue
        if settings.is_env_override(key):
            errors[key] = "Set via environment variable."
            continue
        cleaned, error = validate_value(field, raw_value)
        if error:
            errors[key] = error
            continue
        updates[key] = cleaned

    if errors:
        return errors, {}

    _write_config_file(updates)
    for key, value in updates.items():
        if value:
            os.environ[key] = value
        else:
            os.environ.pop(key, None)
    logger.info("[CONFIG] Updated: %s", ", ".join(sorted(updates)) or "nothing")
    return {}, updates


def _write_config_file(updates: dict[str, str]) -> None:
    config_path = get_config_path()
    config_dir = os.path.dirname(config_path)
    if config_dir:
        os.makedirs(config_dir, exist_ok=True)

    if os.path.exists(config_path):
        with open(config_path, encoding="utf-8") as handle:
            lines = handle.read().splitlines()
    else:
        lines = CONFIG_TEMPLATE.splitlines()

    key_indexes: dict[str, int] = {}
    for index, line in enumerate(lines):
        candidate = line.strip().lstrip("#").lstrip()
        if ":" not in candidate:
            continue
        key = candidate.split(":", 1)[0].strip()
        if key in updates and key not in key_indexes:
            key_indexes[key] = index

    for key, value in updates.items():
        new_line = f"{key}: {value}" if value else f"# {key}:"
        if key in key_indexes:
            lines[key_indexes[key]] = new_line
        else:
            lines.append(new_line)

    with open(config_path, "w", encoding="utf-8") as handle:
        handle.write("\n".join(lines).rstrip("\n") + "\n")


def apply_runtime_updates(app: Any, updates: dict[str, str]) -> None:
    state = getattr(app, "state", None)
    if state is None or not updates:
        return

    if {"TIE_BREAK", "TYPE_FILTER"} & updates.keys():
        engine = getattr(state, "engine", None)
        if engine is not None:
            engine.tie_break = settings.get_tie_break()
            engine.type_filter = settings.get_type_filter()
            logger.info(
                "[CONFIG] Engine now uses tie-break '%s', type filter %s.",
                engine.tie_break,
                engine.type_filter,
            )

    if "RECATEGORIZE_CHUNK_SIZE" in updates:
        manager = getattr(state, "recategorization_manager", None)
        if manager is not None:
            manager.chunk_size = settings.get_recategorize_chunk_size()
            logger.info("[CONFIG] Re-categorize chunk size set to %s.", manager.chunk_size)
