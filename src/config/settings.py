"""
Configuration defaults and feature flags for Graphviz layout passes.

Defaults for LayoutConfig come from environment variables so a deployment can
point at a different Graphviz install or change the default algorithm without
code changes. Every layout call still receives its own immutable LayoutConfig;
the environment only decides what ``load_layout_config()`` starts from.

Usage:
    from src.config.settings import load_layout_config

    config = load_layout_config(algorithm="neato")
    result = layout_graph(graph, config)

Environment Variables:
    GRAPHVIZ_BINARY=/usr/bin/dot      - Graphviz executable
    GRAPHVIZ_ALGORITHM=dot            - Layout algorithm
    GRAPHVIZ_RANKDIR=LR               - Rank direction
    GRAPHVIZ_OVERLAP=false            - Overlap policy
    GRAPHVIZ_CONCENTRATE=true/false   - Merge parallel edges
    GRAPHVIZ_TIMEOUT=60|none          - Seconds before the engine is killed
    GRAPHVIZ_STRICT_EXIT=true/false   - Fail on any non-zero engine exit
"""

import os
from typing import Any, Dict

from src.models.layout_config import LayoutConfig


# Feature flags with environment variable overrides
FEATURE_FLAGS: Dict[str, bool] = {
    # Treat a non-zero engine exit as fatal even when output was produced
    'strict_engine_exit': os.getenv('GRAPHVIZ_STRICT_EXIT', 'false').lower() == 'true',
}

# LayoutConfig field -> environment variable
CONFIG_ENVIRONMENT: Dict[str, str] = {
    'binary': 'GRAPHVIZ_BINARY',
    'algorithm': 'GRAPHVIZ_ALGORITHM',
    'rank_dir': 'GRAPHVIZ_RANKDIR',
    'overlap': 'GRAPHVIZ_OVERLAP',
    'concentrate': 'GRAPHVIZ_CONCENTRATE',
    'timeout': 'GRAPHVIZ_TIMEOUT',
}

_NO_TIMEOUT = {'none', 'off', '0'}


def is_enabled(flag: str) -> bool:
    """
    Check if a feature flag is enabled.

    Args:
        flag: Feature flag name (e.g., 'strict_engine_exit')

    Returns:
        True if flag is enabled, False otherwise

    Raises:
        KeyError: If flag name is not recognized

    Example:
        >>> is_enabled('strict_engine_exit')
        False  # Default
    """
    if flag not in FEATURE_FLAGS:
        available = ', '.join(FEATURE_FLAGS.keys())
        raise KeyError(
            f"Unknown feature flag: '{flag}'. "
            f"Available flags: {available}"
        )

    return FEATURE_FLAGS[flag]


def get_all_flags() -> Dict[str, bool]:
    """
    Get all feature flags and their current state.

    Returns:
        Dictionary of flag names to boolean values
    """
    return FEATURE_FLAGS.copy()


def set_flag(flag: str, enabled: bool) -> None:
    """
    Programmatically set a feature flag (for testing only).

    Args:
        flag: Feature flag name
        enabled: True to enable, False to disable

    Warning:
        This is for testing only. In production, use environment variables.
    """
    if flag not in FEATURE_FLAGS:
        available = ', '.join(FEATURE_FLAGS.keys())
        raise KeyError(
            f"Unknown feature flag: '{flag}'. "
            f"Available flags: {available}"
        )

    FEATURE_FLAGS[flag] = enabled


def get_environment_defaults() -> Dict[str, Any]:
    """
    Read LayoutConfig defaults from the environment.

    Unset or empty variables are left out so the model defaults apply.
    ``GRAPHVIZ_TIMEOUT`` of ``none``, ``off`` or ``0`` disables the deadline.

    Returns:
        Dictionary of LayoutConfig field -> raw value
    """
    values: Dict[str, Any] = {}
    for field_name, variable in CONFIG_ENVIRONMENT.items():
        raw = os.getenv(variable)
        if raw is None or raw.strip() == '':
            continue
        raw = raw.strip()
        if field_name == 'timeout' and raw.lower() in _NO_TIMEOUT:
            values[field_name] = None
        else:
            values[field_name] = raw
    return values


def load_layout_config(**overrides: Any) -> LayoutConfig:
    """
    Build a LayoutConfig from environment defaults, flags and overrides.

    Args:
        **overrides: LayoutConfig fields that take precedence

    Returns:
        Validated LayoutConfig

    Raises:
        pydantic.ValidationError: If an environment value or override has the wrong type

    Example:
        >>> # After: export GRAPHVIZ_ALGORITHM=neato
        >>> load_layout_config().algorithm
        'neato'
    """
    values = get_environment_defaults()
    values['strict_exit_code'] = is_enabled('strict_engine_exit')
    values.update(overrides)
    return LayoutConfig(**values)
