import os
from typing import Any

import yaml

DEFAULT_CONFIG_PATH = os.path.join('~', '.config', 'wifictl', 'config.yaml')


def resolve_config_path(path: str | None = None) -> str:
    cfg_path = path or os.environ.get('WIFICTL_CONFIG') or DEFAULT_CONFIG_PATH
    return os.path.abspath(os.path.expanduser(cfg_path))


def load_config(path: str | None = None) -> dict:
    cfg_path = resolve_config_path(path)
    if not os.path.exists(cfg_path):
        return {}
    with open(cfg_path, 'r', encoding='utf-8') as fh:
        return yaml.safe_load(fh) or {}


def get_setting(cfg: dict, key: str, default: Any = None) -> Any:
    """Look up a dotted key such as 'probe.command'."""
    node: Any = cfg
    for part in key.split('.'):
        if not isinstance(node, dict) or part not in node:
            return default
        node = node[part]
    return node
