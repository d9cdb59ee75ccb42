import json
import logging
import os
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_VIEWER = "lnav"


class Config:
    """
    Settings for a jenkwatch run, read from an optional JSON file and then
    overridden by the environment.
    """

    _env = {
        "user": "JENKINS_USER",
        "key": "JENKINS_KEY",
        "insecure": "JENKWATCH_INSECURE",
        "viewer": "JENKWATCH_VIEWER",
        "timeout": "JENKWATCH_TIMEOUT",
        "poll_interval": "JENKWATCH_POLL_INTERVAL",
    }

    _booleans = ("insecure",)
    _numbers = ("timeout", "poll_interval")

    _required = ("user", "key")

    def __init__(self, filename: Optional[str] = None, environ=None):
        self.filename = filename
        self.environ = os.environ if environ is None else environ
        self.store: Dict[str, Any] = {}

    def load_config(self) -> Dict[str, Any]:
        """
        Load config from file and environment
        :return: the settings, keyed by name
        """
        self.store = {"viewer": DEFAULT_VIEWER, "insecure": False}
        if self.filename:
            self._load_from_file(self.filename)
        self._update_config_from_environment()
        self._coerce()
        return self.store

    def _load_from_file(self, filename: str):
        logger.debug("Loading settings from %s", filename)
        with open(filename) as f:
            settings = json.load(f)
        if not isinstance(settings, dict):
            raise ValueError(f"{filename} must hold a JSON object")
        self.store.update(settings)

    def _update_config_from_environment(self):
        from_env = {}
        for key, variable in self._env.items():
            env = self.environ.get(variable)
            if env:
                from_env[key] = env
        self.store.update(from_env)

    def _coerce(self):
        for key in self._booleans:
            value = self.store.get(key)
            if isinstance(value, str):
                self.store[key] = value.strip().lower() in ("1", "true", "yes", "on")
        for key in self._numbers:
            value = self.store.get(key)
            if value is None or value == "":
                self.store[key] = None
                continue
            try:
                self.store[key] = float(value)
            except (TypeError, ValueError) as e:
                raise ValueError(f"{key} must be a number, got {value!r}") from e

    @classmethod
    def missing(cls, store: Dict[str, Any]) -> List[str]:
        """Return the environment variables of every required setting not set."""
        return [cls._env[key] for key in cls._required if not store.get(key)]
