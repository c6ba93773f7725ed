"""Settings module for the editing engine."""

from dataclasses import dataclass, field
import json
import os
from typing import Dict


# Input rule groups that can be switched on and off, in the order they are evaluated
INPUT_RULE_GROUPS = (
    "heading",
    "list",
    "code_block",
    "blockquote",
    "mark",
    "link",
    "auto_link",
    "horizontal_rule",
    "arrow",
    "task_list",
)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class DocmarkSettings:
    """
    Settings for editing sessions and the command line tool.
    """
    history_depth: int = 100  # Maximum number of undo steps kept
    input_rules: Dict[str, bool] = field(default_factory=dict)
    log_level: str = "INFO"

    @classmethod
    def create_default(cls) -> "DocmarkSettings":
        """Create a new DocmarkSettings object with every input rule group enabled."""
        return cls(
            history_depth=100,
            input_rules={group: True for group in INPUT_RULE_GROUPS},
            log_level="INFO"
        )

    def rule_enabled(self, group: str) -> bool:
        """
        Check whether an input rule group is enabled.

        Args:
            group: Name of the rule group

        Returns:
            True unless the group has been switched off
        """
        return self.input_rules.get(group, True)

    @classmethod
    def load(cls, path: str) -> "DocmarkSettings":
        """
        Load settings from file.

        Values that are missing or of the wrong type keep their defaults.

        Args:
            path: Path to the settings file

        Returns:
            DocmarkSettings object with loaded values

        Raises:
            json.JSONDecodeError: If file contains invalid JSON
            OSError: If the file cannot be read
        """
        # Start with default settings
        settings = cls.create_default()

        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
            if not isinstance(data, dict):
                return settings

            history_depth = data.get("historyDepth", settings.history_depth)
            if isinstance(history_depth, int) and not isinstance(history_depth, bool) and history_depth >= 0:
                settings.history_depth = history_depth

            input_rules = data.get("inputRules", {})
            if isinstance(input_rules, dict):
                for group, enabled in input_rules.items():
                    if group in INPUT_RULE_GROUPS and isinstance(enabled, bool):
                        settings.input_rules[group] = enabled

            log_level = str(data.get("logLevel", settings.log_level)).upper()
            if log_level in LOG_LEVELS:
                settings.log_level = log_level

        return settings

    def save(self, path: str) -> None:
        """
        Save settings to file.

        Args:
            path: Path to save the settings file

        Raises:
            OSError: If there's an issue creating the directory or writing the file
        """
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        data = {
            "historyDepth": self.history_depth,
            "inputRules": dict(self.input_rules),
            "logLevel": self.log_level,
        }

        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=4)
