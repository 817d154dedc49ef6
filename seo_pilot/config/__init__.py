from seo_pilot.config.loader import DEFAULT_CONFIG_FILE, load_config
from seo_pilot.config.schema import Config

__all__ = ["Config", "DEFAULT_CONFIG_FILE", "load_config"]
