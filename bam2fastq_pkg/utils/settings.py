"""
Base settings infrastructure for the converter.

Provides BaseSettings abstract base class with immutable update pattern,
dictionary serialization and name validation for frozen Settings dataclasses.

Features:
    - Immutable update pattern (Settings are frozen dataclasses)
    - Dictionary serialization (to_dict/from_dict)
    - Field name validation (prevents typos)
    - Pretty printing for inspection
"""

from dataclasses import asdict, fields, replace
from typing import Dict, Any
from abc import ABC


def _check_names(cls, names) -> None:
    valid_fields = {f.name for f in fields(cls)}
    unknown = set(names) - valid_fields
    if unknown:
        allowed = ', '.join(sorted(valid_fields))
        unknown_str = ', '.join(f"'{k}'" for k in sorted(unknown))
        raise ValueError(
            f"Unknown setting(s) {unknown_str} for {cls.__name__}. "
            f"Allowed settings: {allowed}"
        )


# ===== Base Settings Class =====
class BaseSettings(ABC):
    """
    Base class for converter settings.

    Subclasses are declared as ``@dataclass(frozen=True)``, so a settings value
    can be shared between the converter, the router and the CLI without any of
    them changing it under the others.

    Usage:
        settings = Bam2FastqConverter.Settings()

        # Update (returns new instance)
        new_settings = settings.update(strict=True, overwrite=True)

        # Convert to dict / load from dict
        settings_dict = settings.to_dict()
        settings = Bam2FastqConverter.Settings.from_dict({'strict': True})
    """

    def copy(self):
        """Return a copy of settings (frozen, so a shallow replace is enough)."""
        return replace(self)

    def update(self, **kwargs):
        """
        Return a new settings instance with the given fields changed.

        Args:
            **kwargs: Settings to update

        Returns:
            New settings instance with updated values

        Raises:
            ValueError: If an unknown setting name is provided

        Example:
            >>> settings = Bam2FastqConverter.Settings()
            >>> new_settings = settings.update(strict=True)
            >>> settings.strict  # Original unchanged
            False
            >>> new_settings.strict
            True
        """
        _check_names(type(self), kwargs.keys())
        return replace(self, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        """
        Create settings instance from dictionary.

        Args:
            data: Dictionary with settings

        Returns:
            New settings instance

        Raises:
            ValueError: If dictionary contains unknown settings
        """
        _check_names(cls, data.keys())
        return cls(**data)

    def __str__(self) -> str:
        lines = [f"{self.__class__.__name__}:"]
        for key, value in self.to_dict().items():
            lines.append(f"  {key}: {value}")
        return '\n'.join(lines)
