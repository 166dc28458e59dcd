"""Typed extraction of string values from a federated claims payload."""

from collections.abc import Mapping
from functools import lru_cache
from typing import Any

from loguru import logger

from src.identity.core.claims.jsonpath import JsonPath, is_missing
from src.identity.core.exceptions import ClaimsTypeMismatch
from src.identity.runtime.config.config_data import ClaimsPathSpec


@lru_cache(maxsize=256)
def _compiled(expression: str) -> JsonPath:
    return JsonPath(expression)


def extract_expression(expression: str, claims: Mapping[str, Any]) -> list[str]:
    """Evaluate a single JSONPath expression.

    A single matched string is returned as a one-element list. Null values
    are skipped. Anything else that is not a string raises
    ``ClaimsTypeMismatch``: a wrongly configured path must not silently
    produce roles.
    """
    if not expression or not expression.strip():
        return []

    matched = _compiled(expression).read(claims)

    if is_missing(matched):
        logger.warning("JSONPath expression {} not found in claims", expression)
        return []
    if matched is None:
        logger.warning("The JSONPath expression {} evaluates to null", expression)
        return []

    values = matched if isinstance(matched, list) else [matched]
    if not values:
        logger.warning("JSONPath expression {} matched nothing in claims", expression)

    result = []
    for value in values:
        if value is None:
            continue
        if not isinstance(value, str):
            raise ClaimsTypeMismatch(expression, value)
        result.append(value)
    return result


class ClaimsExtractor:
    """Pulls strings out of claims payloads using a ``ClaimsPathSpec``.

    Stateless; a single instance can be shared across requests.
    """

    def extract(self, path_spec: ClaimsPathSpec, claims: Mapping[str, Any]) -> list[str]:
        """Concatenate the matches of every expression, in expression order."""
        values: list[str] = []
        for expression in path_spec.path:
            values.extend(extract_expression(expression, claims))
        return values

    def extract_first(
        self, path_spec: ClaimsPathSpec, claims: Mapping[str, Any]
    ) -> str | None:
        values = self.extract(path_spec, claims)
        return values[0] if values else None
