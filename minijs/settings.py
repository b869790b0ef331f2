"""
Interpreter limits, persisted as INI like the rest of the project's settings.

    [jsmini]
    execLimit = 200000
    maxCallDepth = 200
    trace = False
"""
from __future__ import annotations
import configparser
import os
from typing import Any, Dict, Optional

INI_PATH = 'jsmini.ini'

# values are kept as strings, ConfigParser converts on read
DEFAULT_CONFIG = {
    'jsmini': {
        'execLimit': '200000',   # statements per interpreter; 0 disables the watchdog
        'maxCallDepth': '200',   # nested JS calls before RangeError
        'trace': 'False',        # periodic debug records on the 'jsmini' logger
    }
}


def load_config(ini_path: Optional[str] = None) -> configparser.ConfigParser:
    """Return a ConfigParser seeded with DEFAULT_CONFIG and overlaid with `ini_path` when it exists."""
    config = configparser.ConfigParser()
    config.read_dict(DEFAULT_CONFIG)
    path = ini_path or INI_PATH
    if os.path.isfile(path):
        config.read(path, encoding='utf-8')
    return config


def interpreter_limits(config: Optional[configparser.ConfigParser] = None) -> Dict[str, Any]:
    """Typed view of the [jsmini] section."""
    if config is None:
        config = load_config()
    section = 'jsmini'
    defaults = DEFAULT_CONFIG[section]
    return {
        'exec_limit': config.getint(section, 'execLimit', fallback=int(defaults['execLimit'])),
        'max_call_depth': config.getint(section, 'maxCallDepth', fallback=int(defaults['maxCallDepth'])),
        'trace': config.getboolean(section, 'trace', fallback=False),
    }
