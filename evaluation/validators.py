"""Validators for caller input: debate creation requests and human messages."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from data.models import DebateMode, Position

logger = logging.getLogger(__name__)

RANDOM_POSITION = "random"


@dataclass
class ValidationResult:
    """Outcome of a validation check."""

    valid: bool
    issues: list[str]

    def __bool__(self) -> bool:
        return self.valid


class DebateValidator:
    """Validates caller input against configurable limits."""

    def __init__(
        self,
        max_topic_length: int = 500,
        max_message_length: int = 5000,
    ) -> None:
        self.max_topic_length = max_topic_length
        self.max_message_length = max_message_length

    def validate_create_request(
        self,
        mode: str | DebateMode | None,
        topic: str | None = None,
        human_position: str | Position | None = None,
    ) -> ValidationResult:
        """Check the arguments of a create call before anything is generated."""
        issues: list[str] = []

        valid_modes = [m.value for m in DebateMode]
        if not mode:
            issues.append(f"mode is required. Valid: {valid_modes}")
        elif mode not in valid_modes:
            issues.append(f"Unknown mode '{mode}'. Valid: {valid_modes}")

        if topic and len(topic.strip()) > self.max_topic_length:
            issues.append(
                f"Topic too long ({len(topic.strip())} chars, "
                f"maximum {self.max_topic_length})"
            )

        if human_position:
            valid_positions = [p.value for p in Position] + [RANDOM_POSITION]
            if human_position not in valid_positions:
                issues.append(
                    f"Unknown position '{human_position}'. Valid: {valid_positions}"
                )
            elif mode == DebateMode.MODEL_VS_MODEL.value and human_position != RANDOM_POSITION:
                issues.append("human_position only applies to human_vs_model debates")

        if issues:
            logger.warning("Create request rejected: %s", "; ".join(issues))
        return ValidationResult(valid=len(issues) == 0, issues=issues)

    def validate_message(self, text: str | None) -> ValidationResult:
        """Check a human debate message."""
        issues: list[str] = []

        content = (text or "").strip()
        if not content:
            issues.append("Message is empty")
        elif len(content) > self.max_message_length:
            issues.append(
                f"Message too long ({len(content)} chars, "
                f"maximum {self.max_message_length})"
            )

        if issues:
            logger.warning("Message rejected: %s", "; ".join(issues))
        return ValidationResult(valid=len(issues) == 0, issues=issues)

    def validate_username(self, username: str | None) -> ValidationResult:
        issues: list[str] = []
        name = (username or "").strip()
        if not name:
            issues.append("Username is required")
        elif len(name) > 64:
            issues.append(f"Username too long ({len(name)} chars, maximum 64)")
        return ValidationResult(valid=len(issues) == 0, issues=issues)
