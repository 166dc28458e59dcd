from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, replace
from pathlib import Path

from loguru import logger
from pydantic import BaseModel

from src.identity.runtime.config.config_data import ConfigData
from src.identity.runtime.config.config_template import load_templated_yaml


@dataclass
class AppContext:
    """Application context containing configuration and other app-wide state."""

    config: ConfigData


def _load_default_config(path: Path) -> ConfigData:
    if not path.exists():
        logger.warning("{} not found, using default configuration", path)
        return ConfigData()
    return load_templated_yaml(path)


# Global configuration instance
_default_config = _load_default_config(Path("config.yaml"))
_default_context = AppContext(config=_default_config)


# Context variable for application context
_app_context: ContextVar[AppContext] = ContextVar(
    "app_context", default=_default_context
)


def get_context() -> AppContext:
    """Get the current application context.

    Returns:
        AppContext: The current application context containing configuration.
    """
    return _app_context.get()


def set_context(context: AppContext) -> Token[AppContext]:
    """Set the current application context.

    Args:
        context: AppContext instance to set as current.
    """
    return _app_context.set(context)


def _recursive_model_dump_exclude_unset(model: BaseModel) -> dict:
    """Recursively dump a Pydantic model keeping only explicitly set fields.

    Nested models are reduced the same way, so a partial override of a
    nested section leaves its sibling fields untouched when merged.
    """
    result = {}
    explicitly_set_fields = model.model_fields_set

    for field_name, field_info in model.__class__.model_fields.items():
        field_value = getattr(model, field_name)
        key = field_info.alias or field_name

        if isinstance(field_value, BaseModel):
            nested_result = _recursive_model_dump_exclude_unset(field_value)
            if nested_result:
                result[key] = nested_result
            elif field_name in explicitly_set_fields:
                result[key] = field_value.model_dump(by_alias=True)
        elif isinstance(field_value, dict):
            if field_name in explicitly_set_fields:
                result[key] = {
                    k: v.model_dump(by_alias=True, exclude_unset=True)
                    if isinstance(v, BaseModel)
                    else v
                    for k, v in field_value.items()
                }
        elif field_name in explicitly_set_fields:
            result[key] = field_value

    return result


def _recursive_dict_merge(base_dict: dict, override_dict: dict) -> dict:
    """Recursively merge two dictionaries, override values win."""
    result = base_dict.copy()

    for key, value in override_dict.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _recursive_dict_merge(result[key], value)
        else:
            result[key] = value

    return result


def _merge_configs(base_config: ConfigData, override_config: ConfigData) -> ConfigData:
    """Recursively merge two ConfigData instances.

    Values from override_config take precedence; nested configurations are
    merged field by field.
    """
    base_dict = base_config.model_dump(by_alias=True, exclude_unset=True)
    override_dict = _recursive_model_dump_exclude_unset(override_config)
    merged_dict = _recursive_dict_merge(base_dict, override_dict)
    return ConfigData.model_validate(merged_dict)


@contextmanager
def with_context(config_override: ConfigData | None = None):
    """Temporarily override the application configuration.

    The override is merged with the current context so that partial
    overrides inherit every value they do not set.

    Example:
        override = ConfigData(security=SecurityConfig(moderated_signup=True))
        with with_context(override):
            assert get_config().security.moderated_signup is True
    """
    if config_override is None:
        yield
        return

    if not isinstance(config_override, ConfigData):
        raise ValueError(
            f"config_override must be ConfigData, or None, got {type(config_override)}"
        )

    merged_config = _merge_configs(get_context().config, config_override)
    token = set_context(replace(get_context(), config=merged_config))
    try:
        yield
    finally:
        _app_context.reset(token)


@contextmanager
def use_config(config: ConfigData):
    """Temporarily replace the whole configuration, without merging."""
    token = set_context(replace(get_context(), config=config))
    try:
        yield config
    finally:
        _app_context.reset(token)


def set_config(config: ConfigData) -> None:
    """Replace the entire current configuration."""
    set_context(replace(get_context(), config=config))


def get_config() -> ConfigData:
    """Convenience function to get the current configuration.

    Returns:
        ConfigData: The current configuration from the app context.
    """
    return get_context().config
