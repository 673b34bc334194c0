"""
Configuration — loads settings from .block_editor.yaml, environment variables,
and built-in defaults (in that priority order: CLI args > env > YAML > defaults).
"""

import os

import yaml

from .editing.types import FeedbackConfig, ParserConfig, SearchConfig, SessionConfig


_DEFAULTS = {
    "fuzzy_threshold": 0.8,
    "enable_fuzzy_matching": True,
    "max_search_iterations": 10000,
    "track_issues": True,
    "extract_inline_content": True,
    "feedback": {
        "include_parser_feedback": True,
        "include_locator_feedback": True,
        "include_ui_summary": True,
        "include_session_summary": True,
        "include_final_diff": True,
    },
    "review": "auto",
    "log_dir": ".block_editor/logs",
    "metrics_enabled": False,
}

# Config file search locations
_CONFIG_FILENAMES = [".block_editor.yaml", ".block_editor.yml"]

_REVIEW_MODES = ("auto", "console", "textual")


def _find_config_file(explicit_path: str | None = None) -> str | None:
    """Find the config file. Checks explicit path, CWD, then user home."""
    if explicit_path:
        if os.path.isfile(explicit_path):
            return explicit_path
        return None

    search_dirs = [os.getcwd(), os.path.expanduser("~")]
    for d in search_dirs:
        for name in _CONFIG_FILENAMES:
            path = os.path.join(d, name)
            if os.path.isfile(path):
                return path
    return None


def _load_yaml(path: str) -> dict:
    """Load YAML file, returns empty dict on failure."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return {}


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Editor configuration.

    Settings are resolved in priority order:
    1. CLI arguments (handled by caller)
    2. Environment variables
    3. .block_editor.yaml config file
    4. Built-in defaults
    """

    def __init__(self, yaml_data: dict | None = None):
        yd = yaml_data or {}

        # Helper: env var > yaml > default
        def _get(env_key: str, yaml_key: str, default, cast=str):
            env_val = os.getenv(env_key)
            if env_val is not None:
                return cast(env_val)
            yaml_val = yd.get(yaml_key)
            if yaml_val is not None:
                return cast(yaml_val)
            return default

        def _get_bool(env_key: str, yaml_key: str, default: bool) -> bool:
            env_val = os.getenv(env_key)
            if env_val is not None:
                return _parse_bool(env_val)
            yaml_val = yd.get(yaml_key)
            if yaml_val is not None:
                return bool(yaml_val)
            return default

        self.FUZZY_THRESHOLD = _get("BLOCK_EDITOR_FUZZY_THRESHOLD", "fuzzy_threshold",
                                    _DEFAULTS["fuzzy_threshold"], cast=float)
        self.ENABLE_FUZZY_MATCHING = _get_bool("BLOCK_EDITOR_ENABLE_FUZZY",
                                               "enable_fuzzy_matching",
                                               _DEFAULTS["enable_fuzzy_matching"])
        self.MAX_SEARCH_ITERATIONS = _get("BLOCK_EDITOR_MAX_SEARCH_ITERATIONS",
                                          "max_search_iterations",
                                          _DEFAULTS["max_search_iterations"], cast=int)

        self.TRACK_ISSUES = _get_bool("BLOCK_EDITOR_TRACK_ISSUES", "track_issues",
                                      _DEFAULTS["track_issues"])
        self.EXTRACT_INLINE_CONTENT = _get_bool("BLOCK_EDITOR_EXTRACT_INLINE",
                                                "extract_inline_content",
                                                _DEFAULTS["extract_inline_content"])

        # Report sections
        feedback_section = yd.get("feedback", {}) if isinstance(yd.get("feedback"), dict) else {}
        self.FEEDBACK: dict[str, bool] = {}
        for key, default in _DEFAULTS["feedback"].items():
            self.FEEDBACK[key] = bool(feedback_section.get(key, default))
        env_final_diff = os.getenv("BLOCK_EDITOR_INCLUDE_FINAL_DIFF")
        if env_final_diff is not None:
            self.FEEDBACK["include_final_diff"] = _parse_bool(env_final_diff)

        self.REVIEW = _get("BLOCK_EDITOR_REVIEW", "review", _DEFAULTS["review"])
        if self.REVIEW not in _REVIEW_MODES:
            self.REVIEW = _DEFAULTS["review"]

        self.LOG_DIR = _get("BLOCK_EDITOR_LOG_DIR", "log_dir", _DEFAULTS["log_dir"])
        self.METRICS_ENABLED = _get_bool("BLOCK_EDITOR_METRICS", "metrics_enabled",
                                         _DEFAULTS["metrics_enabled"])

    def session_config(self) -> SessionConfig:
        """Build the SessionConfig consumed by EditSession."""
        return SessionConfig(
            parser=ParserConfig(
                track_issues=self.TRACK_ISSUES,
                extract_inline_content=self.EXTRACT_INLINE_CONTENT,
            ),
            locator=SearchConfig(
                fuzzy_threshold=self.FUZZY_THRESHOLD,
                enable_fuzzy_matching=self.ENABLE_FUZZY_MATCHING,
                max_search_iterations=self.MAX_SEARCH_ITERATIONS,
            ),
            feedback=FeedbackConfig(**self.FEEDBACK),
        )

    @classmethod
    def load(cls, config_path: str | None = None) -> "Config":
        """Load config from YAML file (if found) + env vars + defaults."""
        path = _find_config_file(config_path)
        yaml_data = _load_yaml(path) if path else {}
        return cls(yaml_data)
