"""Input validation utilities"""

import numbers

from flsimlab.exceptions import InvalidConfiguration
from flsimlab.types import FLMode, HyperParams


def _is_integer(value) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _is_real(value) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def validate_positive_int(value, name: str) -> int:
    """Validate a strictly positive integer setting"""
    if not _is_integer(value) or value <= 0:
        raise InvalidConfiguration(
            f"{name} must be a positive integer, got {value!r}",
            config_key=name,
            actual_value=value
        )
    return int(value)


def validate_learning_rate(lr) -> float:
    """Validate learning rate value"""
    if not _is_real(lr) or not lr > 0:
        raise InvalidConfiguration(
            f"learning_rate must be positive, got {lr!r}",
            config_key="learning_rate",
            actual_value=lr
        )
    return float(lr)


def validate_num_clients(count) -> int:
    """Validate client count"""
    return validate_positive_int(count, "num_clients")


def validate_total_rounds(rounds) -> int:
    """Validate number of rounds"""
    return validate_positive_int(rounds, "total_rounds")


def validate_hyper_params(params: HyperParams) -> HyperParams:
    """Validate all hyperparameters, returning a normalized copy"""
    return HyperParams(
        learning_rate=validate_learning_rate(params.learning_rate),
        local_epochs=validate_positive_int(params.local_epochs, "local_epochs"),
        batch_size=validate_positive_int(params.batch_size, "batch_size")
    )


def validate_mode(mode) -> FLMode:
    """Accept an FLMode or its string value"""
    if isinstance(mode, FLMode):
        return mode
    try:
        return FLMode(str(mode).lower())
    except ValueError:
        raise InvalidConfiguration(
            f"mode must be one of {[m.value for m in FLMode]}, got {mode!r}",
            config_key="mode",
            actual_value=mode
        ) from None


def validate_delay(value, name: str) -> float:
    """Validate a simulated delay in seconds"""
    if not _is_real(value) or value < 0:
        raise InvalidConfiguration(
            f"delay '{name}' must be a non-negative number, got {value!r}",
            config_key=name,
            actual_value=value
        )
    return float(value)


MAX_SEED = 2 ** 32


def validate_seed(seed):
    """Validate an optional RandomState seed"""
    if seed is None:
        return None
    if not _is_integer(seed) or not 0 <= seed < MAX_SEED:
        raise InvalidConfiguration(
            f"seed must be an integer in [0, 2**32), got {seed!r}",
            config_key="seed",
            actual_value=seed
        )
    return int(seed)
