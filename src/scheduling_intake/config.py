import os
import threading
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from dotenv import dotenv_values

from .domain.errors import ConfigError
from .logging import get_logger
from .paths import find_project_root, var_dir

log = get_logger("config")

GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"

BACKENDS = ("gemini", "openai", "ollama")

_DEFAULT_MODELS = {
    "gemini": "gemini-2.5-flash",
    "openai": "gpt-4o-mini",
    "ollama": "llama3.1",
}

_DEFAULT_BASE_URLS: Dict[str, Optional[str]] = {
    "gemini": GEMINI_OPENAI_BASE_URL,
    "openai": None,
    "ollama": "http://localhost:11434",
}

_KEY_NAMES = {
    "gemini": "GEMINI_API_KEY",
    "openai": "OPENAI_API_KEY",
}


def _find_upwards(start_dir: str, filename: str) -> Optional[str]:
    """Return first matching file found when walking up from start_dir.

    This makes running tools from subdirectories (e.g., `src/`) still find
    repository-level config files like `.env`.
    """
    d = os.path.abspath(start_dir or ".")
    while True:
        candidate = os.path.join(d, filename)
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(d)
        if parent == d:
            return None
        d = parent


def _read_dotenv(dotenv_dir: str) -> Dict[str, str]:
    """Read the nearest .env without mutating the process environment."""
    path = _find_upwards(dotenv_dir, ".env")
    if not path:
        log.debug(f"No .env found starting from: {os.path.abspath(dotenv_dir)}")
        return {}
    values = {k: v.strip() for k, v in dotenv_values(path).items() if v is not None}
    log.debug(f"Loaded {len(values)} key(s) from .env at {path}")
    return values


def _lookup(env: Mapping[str, str], dotenv: Mapping[str, str], key: str) -> Optional[str]:
    v = env.get(key)
    if v and v.strip():
        return v.strip()
    v = dotenv.get(key) or dotenv.get(key.lower())
    return v.strip() if v else None


def _int_setting(raw: Optional[str], *, key: str, default: int, minimum: int) -> int:
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigError(f"{key} must be >= {minimum}, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    """Process-wide, read-only configuration for the extraction pipeline."""

    backend: str
    model: str
    api_key: Optional[str]
    base_url: Optional[str]
    timeout_seconds: int = 60
    retry_attempts: int = 1
    ocr_lang: str = "eng"
    ocr_target_width: int = 1000
    work_dir: Optional[str] = None

    def __repr__(self) -> str:
        key = "set" if self.api_key else "unset"
        return (
            f"Settings(backend={self.backend!r}, model={self.model!r}, api_key=<{key}>, "
            f"base_url={self.base_url!r}, timeout_seconds={self.timeout_seconds}, "
            f"retry_attempts={self.retry_attempts}, ocr_lang={self.ocr_lang!r}, "
            f"ocr_target_width={self.ocr_target_width}, work_dir={self.work_dir!r})"
        )

    __str__ = __repr__


def load_settings(dotenv_dir: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from the environment, falling back to the nearest .env."""
    base_dir = dotenv_dir or os.getcwd()
    env = os.environ if environ is None else environ
    dotenv = _read_dotenv(base_dir)

    backend = (_lookup(env, dotenv, "SCHEDULER_BACKEND") or "gemini").lower()
    if backend not in BACKENDS:
        raise ConfigError(f"Unknown SCHEDULER_BACKEND={backend!r}; expected one of {', '.join(BACKENDS)}")

    api_key = None
    key_name = _KEY_NAMES.get(backend)
    if key_name:
        api_key = _lookup(env, dotenv, key_name)
        if not api_key:
            raise ConfigError(f"{key_name} missing in env/.env; required for backend '{backend}'")
        log.info(f"Loaded {key_name} for backend '{backend}'")

    work_dir = _lookup(env, dotenv, "SCHEDULER_WORK_DIR")
    if not work_dir:
        work_dir = os.path.join(var_dir(find_project_root(base_dir)), "tmp")

    return Settings(
        backend=backend,
        model=_lookup(env, dotenv, "SCHEDULER_MODEL") or _DEFAULT_MODELS[backend],
        api_key=api_key,
        base_url=_lookup(env, dotenv, "SCHEDULER_BASE_URL") or _DEFAULT_BASE_URLS[backend],
        timeout_seconds=_int_setting(
            _lookup(env, dotenv, "SCHEDULER_TIMEOUT"), key="SCHEDULER_TIMEOUT", default=60, minimum=1
        ),
        retry_attempts=_int_setting(
            _lookup(env, dotenv, "SCHEDULER_RETRY_ATTEMPTS"), key="SCHEDULER_RETRY_ATTEMPTS", default=1, minimum=1
        ),
        ocr_lang=_lookup(env, dotenv, "OCR_LANG") or "eng",
        ocr_target_width=_int_setting(
            _lookup(env, dotenv, "OCR_TARGET_WIDTH"), key="OCR_TARGET_WIDTH", default=1000, minimum=1
        ),
        work_dir=work_dir,
    )


_SETTINGS: Optional[Settings] = None
_SETTINGS_LOCK = threading.Lock()


def init_settings(dotenv_dir: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Initialise process-wide settings once; later calls return the same object."""
    global _SETTINGS
    with _SETTINGS_LOCK:
        if _SETTINGS is None:
            _SETTINGS = load_settings(dotenv_dir, environ)
            log.info(f"Settings initialised: {_SETTINGS}")
        return _SETTINGS


def get_settings() -> Settings:
    if _SETTINGS is None:
        raise ConfigError("Settings not initialised; call init_settings() at startup")
    return _SETTINGS


def _reset_settings() -> None:
    """Forget the cached settings (tests only)."""
    global _SETTINGS
    with _SETTINGS_LOCK:
        _SETTINGS = None
