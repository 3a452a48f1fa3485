"""Structured exceptions raised by the deprisk core and its outer shell.

Every error carries the offending context (pattern text, package count,
identifier) so callers can render an actionable message without parsing the
exception text.
"""

from __future__ import annotations

from typing import Any, Optional


class DepRiskError(Exception):
    """Base exception for all deprisk errors."""

    error_code = "DEPRISK_ERROR"

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
        }


class ValidationError(DepRiskError):
    """Input rejected before any analysis runs."""

    error_code = "VALIDATION_ERROR"


class ConfigurationError(DepRiskError):
    """Caller configuration that cannot produce a meaningful analysis."""

    error_code = "CONFIGURATION_ERROR"


class InvalidIdentifier(ValidationError):
    error_code = "INVALID_IDENTIFIER"

    def __init__(self, field: str, value: str | None = None):
        super().__init__(
            f"Package {field} cannot be empty",
            context={"field": field, "value": value},
        )
        self.field = field
        self.value = value


class InvalidPattern(ValidationError):
    error_code = "INVALID_PATTERN"

    def __init__(self, pattern: str, reason: str = "Exclusion pattern cannot be empty"):
        super().__init__(reason, context={"pattern": pattern})
        self.pattern = pattern


class PatternTooLong(ValidationError):
    error_code = "PATTERN_TOO_LONG"

    def __init__(self, pattern: str, max_length: int):
        super().__init__(
            f"Exclusion pattern is too long ({len(pattern)} chars). Maximum: {max_length} chars",
            context={"pattern": pattern, "length": len(pattern), "max_length": max_length},
        )
        self.pattern = pattern
        self.max_length = max_length


class InvalidPatternCharacter(ValidationError):
    error_code = "INVALID_PATTERN_CHARACTER"

    def __init__(self, pattern: str, character: str):
        super().__init__(
            f"Exclusion pattern '{pattern}' contains invalid character '{character}'. "
            "Only alphanumeric characters, hyphens, underscores, dots, brackets and "
            "asterisks (*) are allowed.",
            context={"pattern": pattern, "character": character},
        )
        self.pattern = pattern
        self.character = character


class PatternTooBroad(ValidationError):
    error_code = "PATTERN_TOO_BROAD"

    def __init__(self, pattern: str):
        super().__init__(
            f"Exclusion pattern cannot contain only wildcards: '{pattern}'",
            context={"pattern": pattern},
        )
        self.pattern = pattern


class TooManyPatterns(ValidationError):
    error_code = "TOO_MANY_PATTERNS"

    def __init__(self, count: int, max_count: int):
        super().__init__(
            f"Too many exclusion patterns: {count} (maximum: {max_count})",
            context={"count": count, "max_count": max_count},
        )
        self.count = count
        self.max_count = max_count


class InvalidVulnerabilityRecord(ValidationError):
    error_code = "INVALID_VULNERABILITY_RECORD"

    def __init__(self, message: str, vulnerability_id: str | None = None):
        super().__init__(message, context={"id": vulnerability_id})
        self.vulnerability_id = vulnerability_id


class AllPackagesExcluded(ConfigurationError):
    error_code = "ALL_PACKAGES_EXCLUDED"

    def __init__(self, original_count: int):
        super().__init__(
            f"All {original_count} packages were excluded by the exclusion patterns; "
            "nothing is left to analyze",
            context={"original_count": original_count},
        )
        self.original_count = original_count


class ConflictingThresholds(ConfigurationError):
    error_code = "CONFLICTING_THRESHOLDS"

    def __init__(self, severity: object, score: object):
        super().__init__(
            "A severity threshold and a CVSS threshold cannot be used together",
            context={"severity": str(severity), "score": score},
        )


class InvalidThreshold(ConfigurationError):
    error_code = "INVALID_THRESHOLD"

    def __init__(self, value: object, reason: str):
        super().__init__(f"Invalid threshold {value!r}: {reason}", context={"value": value})
        self.value = value


class ConfigFileError(ConfigurationError):
    error_code = "CONFIG_FILE_ERROR"

    def __init__(self, path: object, details: str):
        super().__init__(
            f"Invalid config file {path}: {details}",
            context={"path": str(path), "details": details},
        )
        self.path = path
        self.details = details
