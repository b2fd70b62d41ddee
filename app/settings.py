from __future__ import annotations

import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel


DEFAULT_REQUIRED_SECTIONS = 'memory.md:Enterprise Patterns,memory.md:Lightning Web Components,memory.md:Governor Limits,memory.md:Security,memory.md:Testing'


class Settings(BaseModel):
    APP_ENV: str = 'dev'
    LOG_LEVEL: str = 'INFO'
    DEBUG_STEPS: bool = False

    BUNDLE_DIR: str = 'bundle'
    REQUIRED_SECTIONS: list[str] = []
    STRICT_DEFAULT: bool = False
    PROMPT_MAX_CHARS: int = 60000

    MAX_UPLOAD_MB: int = 5
    MAX_UPLOAD_FILES: int = 20

    ANTHROPIC_API_KEY: str = ''
    ANTHROPIC_MODEL: str = 'claude-sonnet-4-6'
    ANTHROPIC_HTTP_TIMEOUT_S: int = 60
    ANTHROPIC_MAX_RETRIES: int = 0
    ANTHROPIC_MAX_TOKENS: int = 1024

    @property
    def MAX_UPLOAD_BYTES(self) -> int:
        return int(self.MAX_UPLOAD_MB) * 1024 * 1024


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return str(v).strip().lower() in {'1', 'true', 'yes', 'on'}


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or str(v).strip() == '':
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_list(name: str, default: str = '') -> list[str]:
    v = os.getenv(name, default)
    return [item.strip() for item in str(v).split(',') if item.strip()]


@lru_cache
def get_settings() -> Settings:
    load_dotenv(dotenv_path='.env')
    data = {
        'APP_ENV': os.getenv('APP_ENV', 'dev'),
        'LOG_LEVEL': os.getenv('LOG_LEVEL', 'INFO'),
        'DEBUG_STEPS': _env_bool('DEBUG_STEPS', False),
        'BUNDLE_DIR': os.getenv('BUNDLE_DIR', 'bundle'),
        'REQUIRED_SECTIONS': _env_list('REQUIRED_SECTIONS', DEFAULT_REQUIRED_SECTIONS),
        'STRICT_DEFAULT': _env_bool('STRICT_DEFAULT', False),
        'PROMPT_MAX_CHARS': _env_int('PROMPT_MAX_CHARS', 60000),
        'MAX_UPLOAD_MB': _env_int('MAX_UPLOAD_MB', 5),
        'MAX_UPLOAD_FILES': _env_int('MAX_UPLOAD_FILES', 20),
        'ANTHROPIC_API_KEY': os.getenv('ANTHROPIC_API_KEY', ''),
        'ANTHROPIC_MODEL': os.getenv('ANTHROPIC_MODEL', 'claude-sonnet-4-6'),
        'ANTHROPIC_HTTP_TIMEOUT_S': _env_int('ANTHROPIC_HTTP_TIMEOUT_S', 60),
        'ANTHROPIC_MAX_RETRIES': _env_int('ANTHROPIC_MAX_RETRIES', 0),
        'ANTHROPIC_MAX_TOKENS': _env_int('ANTHROPIC_MAX_TOKENS', 1024),
    }
    return Settings(**data)
