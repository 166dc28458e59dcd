"""Customizer chain and its built-in steps."""

from .base import LOWEST_PRECEDENCE, CustomizerChain, UserCustomizer
from .claims_mapping import ClaimsMappingCustomizer
from .create_account import CreateAccountCustomizer
from .roles_mappings import RolesMappingsCustomizer

__all__ = [
    "LOWEST_PRECEDENCE",
    "ClaimsMappingCustomizer",
    "CreateAccountCustomizer",
    "CustomizerChain",
    "RolesMappingsCustomizer",
    "UserCustomizer",
]
