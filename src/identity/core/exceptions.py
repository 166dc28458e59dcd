"""Errors raised while turning an authentication into a user identity."""


class IdentityError(Exception):
    """Base class for identity resolution failures."""


class ConfigurationDefect(IdentityError):
    """The pipeline is configured in a way it cannot safely run with."""


class ClaimsTypeMismatch(ConfigurationDefect):
    """A claims path matched something other than strings."""

    def __init__(self, expression: str, value: object) -> None:
        self.expression = expression
        self.value = value
        super().__init__(
            f"The JSONPath expression {expression} evaluates to "
            f"{type(value).__name__} instead of str. Value: {value!r}"
        )


class InvalidClaimsPath(ConfigurationDefect):
    """A configured JSONPath expression could not be parsed."""


class PendingApproval(IdentityError):
    """The account exists but still waits for moderator approval."""

    def __init__(self) -> None:
        super().__init__("Account is pending approval by an administrator")


class DirectoryUnavailable(IdentityError):
    """The account directory could not be reached; the request may be retried."""


class DuplicateKey(IdentityError):
    """An insert collided with an existing record's unique key."""


class IdentityInvariantViolation(IdentityError):
    """A draft reached the pipeline without the fields its origin guarantees."""


class ProviderError(IdentityError):
    """The identity provider rejected or failed the code exchange."""
