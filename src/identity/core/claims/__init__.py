"""Claims extraction and role normalization."""

from .extractor import ClaimsExtractor, extract_expression
from .jsonpath import JsonPath
from .roles import RoleMappingPolicy, RoleNormalizer, strip_diacritics

__all__ = [
    "ClaimsExtractor",
    "JsonPath",
    "RoleMappingPolicy",
    "RoleNormalizer",
    "extract_expression",
    "strip_diacritics",
]
