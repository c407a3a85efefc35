"""
Rendering of command results for the terminal.
"""

import json
import pprint
from typing import Any, Optional

import yaml

OUTPUT_FORMATS = {
    'j': 'compact JSON',
    'k': 'indented JSON',
    'p': 'pprint',
    'y': 'YAML',
    'i': 'repr',
}


def _plain(value: Any) -> Any:
    """Convert result objects to builtins for serialisation."""
    if hasattr(value, 'to_dict'):
        return _plain(value.to_dict())
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


def format_output(value: Any, output_format: Optional[str] = None) -> str:
    """
    Render a result.

    Args:
        value: Command result
        output_format: One of OUTPUT_FORMATS, or None for human-readable text

    Raises:
        ValueError: For an unknown format
    """
    if output_format is None:
        return _human(value)

    value = _plain(value)
    if output_format == 'j':
        return json.dumps(value, default=str)
    elif output_format == 'k':
        return json.dumps(value, indent=2, default=str)
    elif output_format == 'p':
        return pprint.pformat(value)
    elif output_format == 'y':
        return yaml.safe_dump(value, default_flow_style=False, sort_keys=False).rstrip()
    elif output_format == 'i':
        return repr(value)
    raise ValueError(f"Unknown output format: {output_format!r}")


def _human(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'Yes' if value else 'No'
    if isinstance(value, (list, tuple)):
        return '\n'.join(_human(item) for item in value)
    if hasattr(value, 'ssid'):
        return f"{value.ssid}  ({value.signal_strength}, {value.security})"
    if isinstance(value, dict):
        return yaml.safe_dump(_plain(value), default_flow_style=False,
                              sort_keys=False).rstrip()
    return str(value)
