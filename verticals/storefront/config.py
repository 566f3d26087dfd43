"""Storefront vertical configuration.

Re-exports StorefrontConfig from the patterns module with the instance the
resolution engine falls back to.
"""

from patterns.domain_config import StorefrontConfig

# Default configuration instance
config = StorefrontConfig.default()
