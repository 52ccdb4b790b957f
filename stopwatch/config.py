import logging
import os
import sys
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from dotenv import load_dotenv

from stopwatch.formatting import DEFAULT_FORMATTING_MODE, FormattingMode
from stopwatch.stopwatch import Stopwatch

LOG_FORMAT = '%(asctime)s - [%(levelname)s] %(module)s.%(funcName)s - %(message)s'
DEFAULT_LOG_LEVEL = "INFO"


@dataclass(frozen=True)
class Settings:
    formatting_mode: FormattingMode = DEFAULT_FORMATTING_MODE
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None, override: bool = False) -> "Settings":
        """Read STOPWATCH_* settings from the environment, loading a .env file first."""
        load_dotenv(dotenv_path, override=override)

        return cls(
            formatting_mode=FormattingMode.coerce(os.getenv("STOPWATCH_FORMATTING_MODE")),
            log_level=(os.getenv("STOPWATCH_LOG_LEVEL") or DEFAULT_LOG_LEVEL).strip().upper(),
        )

    @property
    def level(self) -> int:
        level = logging.getLevelName(self.log_level)
        if not isinstance(level, int):
            logging.warning(f"Unknown log level {self.log_level!r}, using {DEFAULT_LOG_LEVEL}")
            return logging.INFO
        return level


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.level,
                        format=LOG_FORMAT,
                        stream=sys.stdout)


def new_from_settings(settings: Settings, offset: timedelta = timedelta(0), active: bool = True) -> Stopwatch:
    return Stopwatch(offset, active, formatting_mode=settings.formatting_mode)
