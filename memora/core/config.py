import os
import yaml
import importlib
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from dotenv import load_dotenv

from .models import (
    ConfigContext, ModelsConfig, ExchangeConfig, SearchConfig, PathsConfig
)

logger = logging.getLogger("Memora.Config")

# Load environment variables from .env file
load_dotenv()

DEFAULT_CONFIG_FILENAME = "config.yaml"

ENV_OVERRIDES = {
    "MEMORA_EXCHANGE_API_URL": ("exchange", "api_url"),
    "MEMORA_LEDGER_PATH": ("paths", "ledger"),
    "MEMORA_LOG_DIR": ("paths", "logs"),
}

def load_yaml(path: Path) -> Dict[str, Any]:
    if path.exists():
        with open(path, "r") as f:
            return yaml.safe_load(f) or {}
    return {}

def _merge_dicts(base: Dict, update: Dict):
    """Recursively merge update dict into base dict."""
    for k, v in update.items():
        if isinstance(v, dict) and k in base and isinstance(base[k], dict):
            _merge_dicts(base[k], v)
        else:
            base[k] = v

def _apply_env_overrides(user_config: Dict[str, Any]) -> None:
    for env_var, (section, key) in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            _merge_dicts(user_config, {section: {key: value}})

def load_provider_config(provider_name: str, user_provider_config: Dict[str, Any]) -> Any:
    """
    Dynamically load a provider's configuration.

    Args:
        provider_name: The name of the provider (e.g., 'gemini').
        user_provider_config: The provider configuration from the user's config.yaml.

    Returns:
        Validated Pydantic model for the provider configuration, or the raw
        dict if the provider has no `Config` model.
    """
    try:
        module = importlib.import_module(f"memora.providers.{provider_name}")
    except ImportError:
        logger.warning(f"Provider '{provider_name}' not found; keeping raw configuration.")
        return user_provider_config

    config_model = getattr(module, "Config", None)
    if config_model is None:
        return user_provider_config
    return config_model(**(user_provider_config or {}))

def find_config_path(config_path: Optional[str] = None) -> Optional[Path]:
    """Explicit path, then ./config.yaml, then ~/.config/memora/config.yaml."""
    if config_path:
        return Path(config_path)

    cwd_config = Path(DEFAULT_CONFIG_FILENAME)
    home_config = Path.home() / ".config" / "memora" / DEFAULT_CONFIG_FILENAME
    if cwd_config.exists():
        return cwd_config
    if home_config.exists():
        return home_config
    return None

def load_config(config_path: Optional[str] = None) -> ConfigContext:
    """Load configuration from file and env vars."""
    user_config_path = find_config_path(config_path)
    user_config = load_yaml(user_config_path) if user_config_path else {}
    _apply_env_overrides(user_config)

    providers_config = {}
    user_providers_section = user_config.get("providers", {}) or {}
    active_providers = set(user_providers_section.keys()) | {"gemini"}
    for provider_name in active_providers:
        provider_conf_dict = user_providers_section.get(provider_name, {})
        providers_config[provider_name] = load_provider_config(provider_name, provider_conf_dict)

    return ConfigContext(
        debug=user_config.get("debug", False),
        models=ModelsConfig(**(user_config.get("models") or {})),
        exchange=ExchangeConfig(**(user_config.get("exchange") or {})),
        search=SearchConfig(**(user_config.get("search") or {})),
        paths=PathsConfig(**(user_config.get("paths") or {})),
        providers=providers_config,
    )
