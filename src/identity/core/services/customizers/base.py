"""Ordered enrichment steps applied to a user draft after authentication."""

from __future__ import annotations

import sys
from abc import ABC, abstractmethod
from collections.abc import Iterable

from loguru import logger

from src.identity.core.exceptions import ConfigurationDefect
from src.identity.core.models.authentication import Authentication
from src.identity.core.models.user import UserDraft

# Priority of the step that must run after every other one.
LOWEST_PRECEDENCE = sys.maxsize


class UserCustomizer(ABC):
    """One step of the customizer chain.

    Lower ``order`` runs first. A step receives the draft produced by the
    previous one and returns the draft for the next. Raising aborts the
    chain.
    """

    order: int = 0

    @abstractmethod
    async def apply(self, auth: Authentication, draft: UserDraft) -> UserDraft:
        """Enrich ``draft`` for the authentication ``auth``."""


class CustomizerChain:
    """Runs customizers in a total, explicit priority order.

    The chain keeps no per-event state; it can be shared by concurrent
    requests.
    """

    def __init__(self, customizers: Iterable[UserCustomizer] = ()) -> None:
        ordered = sorted(customizers, key=lambda customizer: customizer.order)
        seen: dict[int, UserCustomizer] = {}
        for customizer in ordered:
            if customizer.order in seen:
                raise ConfigurationDefect(
                    f"{type(customizer).__name__} and {type(seen[customizer.order]).__name__} "
                    f"share priority {customizer.order}"
                )
            seen[customizer.order] = customizer
        self._customizers: tuple[UserCustomizer, ...] = tuple(ordered)

    @property
    def customizers(self) -> tuple[UserCustomizer, ...]:
        return self._customizers

    async def apply(self, auth: Authentication, draft: UserDraft) -> UserDraft:
        for customizer in self._customizers:
            logger.trace("Applying {} to {}", type(customizer).__name__, draft.identifier)
            draft = await customizer.apply(auth, draft)
        return draft
