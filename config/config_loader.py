# =========================================
# 📄 File: config/config_loader.py
# Purpose: Load YAML config (dev/prod), substitute ${ENV_VARS}, validate, and expose helpers
# =========================================

import os                      # Used to read ENV to pick dev/prod and to resolve ${VAR} placeholders
import re                      # Used to find and replace ${VAR} patterns inside YAML text
import sys                     # Used to exit early with a clear error message on invalid config
from typing import Dict, Any, Optional   # Type hints for better readability and tooling
import yaml                    # Safe YAML parsing (install: PyYAML)

CONFIG_DIR = os.path.dirname(os.path.abspath(__file__))   # YAML files live next to this module

REQUIRED_TOP = ["environment", "log_level", "mms_version_id", "who_icd11", "files"]
REQUIRED_API = ["auth_url", "client_id", "client_secret", "base_api_url", "release_id", "linearization"]
REQUIRED_FILES = ["input_codes", "output_sql"]


def _substitute_env_placeholders(yaml_text: str) -> str:
    """
    Replace ${VAR} placeholders in YAML text with their environment variable values.
    If an env var is missing, mark it as <MISSING:VAR> to fail validation cleanly.
    """
    pattern = re.compile(r"\$\{([^}^{]+)\}")
    def repl(match):
        var_name = match.group(1)                              # Extract VAR name from ${VAR}
        return os.getenv(var_name, f"<MISSING:{var_name}>")    # Return env value or a sentinel
    return pattern.sub(repl, yaml_text)


def _load_yaml_file(path: str) -> Dict[str, Any]:
    """
    Read a YAML file from disk, perform ${VAR} substitution, and parse it to a dict.
    """
    if not os.path.exists(path):
        print(f"❌ Configuration file not found: {path}")
        sys.exit(1)

    with open(path, "r", encoding="utf-8") as f:
        raw = f.read()

    substituted = _substitute_env_placeholders(raw)

    try:
        cfg = yaml.safe_load(substituted)
    except yaml.YAMLError as e:
        print(f"❌ YAML parsing error in {path}: {e}")
        sys.exit(1)

    if not isinstance(cfg, dict):                              # Empty file or a bare scalar
        print(f"❌ Configuration in {path} must be a mapping.")
        sys.exit(1)

    return cfg


def _missing_keys(section: Dict[str, Any], required, prefix: str = ""):
    """Keys absent, empty, or still holding a <MISSING:...> placeholder."""
    return [f"{prefix}{k}" for k in required
            if k not in section or section[k] in (None, "") or "MISSING:" in str(section[k])]


def _validate_config(cfg: Dict[str, Any]) -> None:
    """
    Validate presence of required keys and ensure no <MISSING:...> placeholders remain.
    """
    missing_top = _missing_keys(cfg, REQUIRED_TOP)
    if missing_top:
        print(f"❌ Missing top-level config keys: {', '.join(missing_top)}")
        sys.exit(1)

    # API credentials usually come from ${WHO_ICD11_CLIENT_ID}/${WHO_ICD11_CLIENT_SECRET}
    api = cfg.get("who_icd11") or {}
    missing_api = _missing_keys(api, REQUIRED_API, prefix="who_icd11.")
    if missing_api:
        print(f"❌ Missing/invalid WHO ICD-11 API config keys: {', '.join(missing_api)}")
        sys.exit(1)

    files = cfg.get("files") or {}
    missing_files = _missing_keys(files, REQUIRED_FILES, prefix="files.")
    if missing_files:
        print(f"❌ Missing file paths in config: {', '.join(missing_files)}")
        sys.exit(1)

    # The version id must match an existing HIS_TB_MMS_VERSION row, so it has to be an integer
    if isinstance(cfg["mms_version_id"], bool) or not isinstance(cfg["mms_version_id"], int):
        print(f"❌ mms_version_id must be an integer, got: {cfg['mms_version_id']!r}")
        sys.exit(1)


def get_config(env: Optional[str] = None, config_dir: Optional[str] = None) -> Dict[str, Any]:
    """
    Public API: pick env from ENV (default 'dev'), load YAML, validate, return dict.
    """
    env = (env or os.getenv("ENV", "dev")).lower()            # Choose 'dev' or 'prod'
    path = os.path.join(config_dir or CONFIG_DIR, f"{env}.yaml")   # Build path like config/dev.yaml
    cfg = _load_yaml_file(path)
    _validate_config(cfg)
    return cfg


def build_release_base_url(cfg: Dict[str, Any]) -> str:
    """
    Helper to build the release/linearization scoped API root, e.g.
    https://id.who.int/icd/release/11/2025-01/mms
    """
    api = cfg["who_icd11"] if "who_icd11" in cfg else cfg     # Accept full cfg or the API section
    base = str(api["base_api_url"]).rstrip("/")
    return f"{base}/release/{api['release_id']}/{api['linearization']}"
