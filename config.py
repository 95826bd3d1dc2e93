"""
config.py — Runtime settings for the itinerary job service.

All secrets come from the environment (or a .env file beside the code during
local development).  Nothing else in the service reads os.environ: the
Settings object is built once here and passed into TokenProvider,
FirestoreClient and GenerationClient explicitly.

Environment variables
---------------------
  FIRESTORE_PROJECT_ID   Google Cloud project holding the Firestore database
  GOOGLE_CLIENT_EMAIL    service-account email (JWT issuer)
  GOOGLE_PRIVATE_KEY     service-account PEM private key (\\n escapes allowed)
  ANTHROPIC_API_KEY      key for the generative model
  LLM_MODEL              model name            (default claude-haiku-4-5-20251001)
  FIRESTORE_COLLECTION   collection for jobs   (default itineraries)
  CORS_ORIGINS           comma-separated list  (default *)
  HTTP_TIMEOUT           seconds               (default 10)
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

BASE_DIR = os.path.dirname(__file__)

DEFAULT_LLM_MODEL  = 'claude-haiku-4-5-20251001'
DEFAULT_COLLECTION = 'itineraries'


@dataclass(frozen=True)
class Settings:
    project_id:   str = ''
    client_email: str = ''
    private_key:  str = ''
    llm_api_key:  str = ''
    llm_model:    str = DEFAULT_LLM_MODEL
    collection:   str = DEFAULT_COLLECTION
    cors_origins: list[str] = field(default_factory=lambda: ['*'])
    http_timeout: float = 10.0

    def __repr__(self):
        # Keep key material out of logs and tracebacks.
        return (f'Settings(project_id={self.project_id!r}, client_email={self.client_email!r}, '
                f'llm_model={self.llm_model!r}, collection={self.collection!r})')


def _normalise_pem(value: str) -> str:
    """Turn literal '\\n' sequences (single-line secret stores) into newlines."""
    return value.replace('\\n', '\n').strip()


def load_settings(env_file: str | None = None) -> Settings:
    """Build Settings from the environment, loading .env first if present."""
    load_dotenv(env_file or os.path.join(BASE_DIR, '.env'), override=True)

    origins = [
        o.strip()
        for o in os.getenv('CORS_ORIGINS', '*').split(',')
        if o.strip()
    ]
    try:
        timeout = float(os.getenv('HTTP_TIMEOUT', '10'))
    except ValueError:
        logger.warning('HTTP_TIMEOUT is not a number — using 10 seconds')
        timeout = 10.0

    settings = Settings(
        project_id   = os.getenv('FIRESTORE_PROJECT_ID', '').strip(),
        client_email = os.getenv('GOOGLE_CLIENT_EMAIL', '').strip(),
        private_key  = _normalise_pem(os.getenv('GOOGLE_PRIVATE_KEY', '')),
        llm_api_key  = os.getenv('ANTHROPIC_API_KEY', '').strip(),
        llm_model    = os.getenv('LLM_MODEL', DEFAULT_LLM_MODEL).strip() or DEFAULT_LLM_MODEL,
        collection   = os.getenv('FIRESTORE_COLLECTION', DEFAULT_COLLECTION).strip() or DEFAULT_COLLECTION,
        cors_origins = origins or ['*'],
        http_timeout = timeout,
    )

    missing = [name for name, value in (
        ('FIRESTORE_PROJECT_ID', settings.project_id),
        ('GOOGLE_CLIENT_EMAIL',  settings.client_email),
        ('GOOGLE_PRIVATE_KEY',   settings.private_key),
        ('ANTHROPIC_API_KEY',    settings.llm_api_key),
    ) if not value]
    if missing:
        logger.warning('Missing configuration: %s — dependent calls will fail', ', '.join(missing))

    return settings
