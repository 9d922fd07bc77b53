"""
YAML options file parser for lcmgen.

Parses an optional generator options file into a GenOptions dataclass.
Command-line flags are applied on top by the CLI.
"""

import yaml
from dataclasses import dataclass

from .schema import ValidationError

DEFAULT_MODULE = "lcmtypes"


@dataclass
class GenOptions:
    """Which backends to run and how to name their output."""
    python: bool = True
    python_module: str = DEFAULT_MODULE
    matlab: bool = False
    lazy: bool = False


def _section(data: dict, key: str) -> dict:
    """Return an optional mapping section, or {} if it is absent."""
    if key not in data or data[key] is None:
        return {}
    if not isinstance(data[key], dict):
        raise ValidationError(f"'{key}' section must be a mapping")
    return data[key]


def _flag(section: dict, key: str, default: bool, context: str) -> bool:
    if key not in section or section[key] is None:
        return default
    if not isinstance(section[key], bool):
        raise ValidationError(
            f"Field '{key}' in {context} section must be true or false")
    return section[key]


def parse_options_yaml(yaml_str: str) -> GenOptions:
    """Parse a YAML options string into GenOptions.

    An empty document yields the defaults.

    Raises:
        ValidationError: If the document is malformed or a field has the
            wrong type.
    """
    if not yaml_str or not yaml_str.strip():
        return GenOptions()

    try:
        data = yaml.safe_load(yaml_str)
    except yaml.YAMLError as e:
        raise ValidationError(f"Invalid YAML: {e}")

    if data is None:
        return GenOptions()
    if not isinstance(data, dict):
        raise ValidationError("YAML root must be a mapping")

    # ---- python section ----
    python_section = _section(data, "python")
    python = _flag(python_section, "enabled", True, "python")
    module = python_section.get("module")
    if module is None:
        module = DEFAULT_MODULE
    module = str(module)
    if not module.isidentifier():
        raise ValidationError(
            f"Field 'module' in python section must be a Python identifier, "
            f"got {module!r}")

    # ---- matlab section ----
    matlab_section = _section(data, "matlab")
    matlab = _flag(matlab_section, "enabled", False, "matlab")

    # ---- top-level flags ----
    lazy = _flag(data, "lazy", False, "root")

    return GenOptions(
        python=python,
        python_module=module,
        matlab=matlab,
        lazy=lazy,
    )
