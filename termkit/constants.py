"""Global constants for the termkit toolkit."""

import os
from pathlib import Path


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Directory paths
TERMKIT_ROOT = Path(__file__).resolve().parent.parent

# Toolkit home (supports TERMKIT_HOME env var, relative paths resolve against TERMKIT_ROOT)
_home_env = os.getenv("TERMKIT_HOME", "")
if _home_env:
    _home_path = Path(_home_env)
    TERMKIT_HOME = _home_path if _home_path.is_absolute() else (TERMKIT_ROOT / _home_path).resolve()
else:
    TERMKIT_HOME = TERMKIT_ROOT

# Plugin directories
PLUGINS_DIR = TERMKIT_HOME / "plugins"
BUNDLED_PLUGINS_DIR = TERMKIT_ROOT / "plugins" / "bundled"    # shipped with the toolkit
INSTALLED_PLUGINS_DIR = PLUGINS_DIR / "installed"             # installed via manage_plugins.py
PLUGIN_CONFIG_FILE = PLUGINS_DIR / "config.json"

# Extra plugin search paths, separated by os.pathsep
EXTRA_PLUGIN_PATHS = [
    Path(p) for p in os.getenv("TERMKIT_PLUGIN_PATHS", "").split(os.pathsep) if p.strip()
]

# Host behaviour
STRICT_CONFIG = _env_flag("TERMKIT_STRICT_CONFIG")
CASCADE_DISABLE = _env_flag("TERMKIT_CASCADE_DISABLE")
