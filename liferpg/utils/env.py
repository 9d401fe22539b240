'''Environment loading.

The first existing file wins: ``ENV_FILE`` if set, otherwise ``.env.prod`` or
``.env.local`` depending on ``ENV``, otherwise a plain ``.env``.
'''

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

PROD_ENVS = {'prod', 'production'}


def _find_project_root(start: Optional[Path] = None) -> Path:
    start = start or Path(__file__).resolve()
    current = start if start.is_dir() else start.parent
    while current.parent != current:
        if (current / 'pyproject.toml').exists() or (current / '.git').exists():
            return current
        current = current.parent
    return start if start.is_dir() else start.parent


def env_file_candidates(root: Path) -> list[Path]:
    explicit = os.getenv('ENV_FILE')
    if explicit:
        path = Path(explicit)
        return [path if path.is_absolute() else root / path]

    env = (os.getenv('ENV') or 'local').lower()
    name = '.env.prod' if env in PROD_ENVS else '.env.local'
    return [root / name, root / '.env']


def load_env(override: bool = False) -> Optional[Path]:
    '''Load the first env file found; returns its path, or None if none exists.'''
    for path in env_file_candidates(_find_project_root()):
        if path.exists():
            load_dotenv(dotenv_path=path, override=override)
            logger.debug(f'Loaded environment from {path}')
            return path
    return None


def require_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f'{name} not set in environment or .env')
    return value


def env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default
