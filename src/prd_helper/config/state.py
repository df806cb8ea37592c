"""
Persisted user state.

The only state kept between runs is whether the user accepted the
data-sharing disclosure for the AI pass. It lives in ``state.json`` next
to the configuration file. A missing or unreadable file means "not
accepted"; the flag is only ever written with the same value, so two
concurrent writers cannot disagree.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from prd_helper.config.loader import _get_config_directory


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


STATE_FILENAME = "state.json"
CONSENT_KEY = "ai_consent"


class ConsentStore:
    """Read and write the one-time AI data-sharing consent flag."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path or _get_config_directory() / STATE_FILENAME

    def _read(self) -> Dict[str, Any]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable state file %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Each writer gets its own temporary file; the last replace wins.
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=self.path.parent, prefix=".state-", suffix=".tmp", delete=False
        ) as handle:
            json.dump(data, handle, indent=2)
        try:
            os.replace(handle.name, self.path)
        except OSError:
            Path(handle.name).unlink(missing_ok=True)
            raise

    def has_consent(self) -> bool:
        return self._read().get(CONSENT_KEY) is True

    def grant(self) -> None:
        """Persist the accepted consent."""
        data = self._read()
        data[CONSENT_KEY] = True
        self._write(data)
        logger.debug("Stored AI consent in %s", self.path)

    def reset(self) -> None:
        """Forget any previously accepted consent."""
        data = self._read()
        if data.pop(CONSENT_KEY, None) is not None:
            self._write(data)
            logger.debug("Cleared AI consent in %s", self.path)
