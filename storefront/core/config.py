"""
Configuration management for the storefront cart core.

Loads settings from the YAML config file, then applies environment overrides
(a local .env file is honoured via python-dotenv).
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
import yaml

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()


def _project_root() -> Path:
    """Return project root (parent of storefront package)."""
    return Path(__file__).resolve().parent.parent.parent


DEFAULT_CONFIG_PATH = _project_root() / "config" / "default.yaml"


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class StorefrontConfig:
    """Configuration for the cart, cache and pricing layers."""

    log_level: str = "INFO"

    # Cache
    cache_enabled: bool = True          # False = local fallback map only
    redis_url: str = "redis://localhost:6379/0"
    cache_default_ttl: int = 300        # seconds
    cache_sweep_interval: int = 60      # seconds
    redis_socket_timeout: float = 2

    # Cart
    cart_session_timeout: int = 1800    # 30 minutes, sliding
    max_cart_items: int = 50            # distinct products
    max_cart_item_quantity: int = 50

    # Pricing
    free_shipping_threshold: float = 500
    flat_shipping_fee: float = 50
    cod_surcharge: float = 25
    tax_rate: float = 0.18
    currency_symbol: str = "₹"

    # Product / coupon lookups (SQLAlchemy URL); empty = caller supplies collaborators
    database_url: str = ""

    @classmethod
    def from_yaml(cls, config_path: Optional[Path] = None) -> "StorefrontConfig":
        """Load configuration from YAML file, then apply environment overrides."""
        path = config_path or DEFAULT_CONFIG_PATH
        data: Dict[str, Any] = {}
        if path.exists():
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}

        logging_config = data.get('logging', {})
        cache_config = data.get('cache', {})
        cart_config = data.get('cart', {})
        pricing_config = data.get('pricing', {})

        config = cls(
            log_level=logging_config.get('level', 'INFO'),
            cache_enabled=cache_config.get('enabled', True),
            redis_url=cache_config.get('redis_url', 'redis://localhost:6379/0'),
            cache_default_ttl=cache_config.get('default_ttl', 300),
            cache_sweep_interval=cache_config.get('sweep_interval', 60),
            redis_socket_timeout=cache_config.get('socket_timeout', 2),
            cart_session_timeout=cart_config.get('session_timeout', 1800),
            max_cart_items=cart_config.get('max_items', 50),
            max_cart_item_quantity=cart_config.get('max_item_quantity', 50),
            free_shipping_threshold=pricing_config.get('free_shipping_threshold', 500),
            flat_shipping_fee=pricing_config.get('flat_shipping_fee', 50),
            cod_surcharge=pricing_config.get('cod_surcharge', 25),
            tax_rate=pricing_config.get('tax_rate', 0.18),
            currency_symbol=pricing_config.get('currency_symbol', '₹'),
        )
        config.apply_env()
        return config

    def apply_env(self) -> None:
        """
        Override fields from the environment.

        Connection priority for the primary store:
        1. UPSTASH_REDIS_URL (cloud-hosted, rediss:// TLS)
        2. REDIS_URL
        """
        self.log_level = os.getenv("LOG_LEVEL", self.log_level)
        self.redis_url = os.getenv("UPSTASH_REDIS_URL") or os.getenv("REDIS_URL") or self.redis_url
        if os.getenv("CACHE_ENABLED") is not None:
            self.cache_enabled = _env_bool(os.environ["CACHE_ENABLED"])
        self.cache_default_ttl = int(os.getenv("CACHE_DEFAULT_TTL", self.cache_default_ttl))
        self.cache_sweep_interval = int(os.getenv("CACHE_SWEEP_INTERVAL", self.cache_sweep_interval))
        self.cart_session_timeout = int(os.getenv("CART_SESSION_TIMEOUT", self.cart_session_timeout))
        self.max_cart_items = int(os.getenv("MAX_CART_ITEMS", self.max_cart_items))
        self.max_cart_item_quantity = int(os.getenv("MAX_CART_ITEM_QUANTITY", self.max_cart_item_quantity))
        self.cod_surcharge = float(os.getenv("COD_SURCHARGE", self.cod_surcharge))
        self.database_url = os.getenv("DATABASE_URL", self.database_url)


# Global config instance
_config: Optional[StorefrontConfig] = None


def get_config() -> StorefrontConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = StorefrontConfig.from_yaml()
    return _config


def set_config(config: StorefrontConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
