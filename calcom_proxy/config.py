"""
Cal.com proxy configuration. Values come from the environment; no secrets in this file.
"""
import os
from dataclasses import dataclass

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import serialization

from calcom_proxy.errors import ConfigurationError

PORT = int(os.environ.get("PORT", "4000"))
HOST = os.environ.get("HOST", "0.0.0.0")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "info")

# Upstream scheduling API
CALCOM_API_BASE = os.environ.get("CALCOM_API_BASE", "https://api.cal.com/v2").rstrip("/")

# Credential store; any SQLAlchemy URL works, SQLite by default
DATABASE_URL = os.environ.get("CALCOM_PROXY_DATABASE_URL", "sqlite:///./calcom_proxy.db")

# Firebase ID tokens are signed with Google's securetoken keys
FIREBASE_JWKS_URI = os.environ.get(
    "FIREBASE_JWKS_URI",
    "https://www.googleapis.com/service_accounts/v1/jwk/securetoken@system.gserviceaccount.com",
)
FIREBASE_ISSUER_PREFIX = "https://securetoken.google.com/"

CORS_ALLOW_ORIGINS = [
    o.strip() for o in os.environ.get("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()
]


@dataclass(frozen=True)
class ServiceAccount:
    project_id: str
    client_email: str
    private_key: str

    @property
    def issuer(self) -> str:
        return f"{FIREBASE_ISSUER_PREFIX}{self.project_id}"


def load_service_account(environ=None) -> ServiceAccount:
    """
    Read the identity-provider service account from the environment.
    Raises ConfigurationError if any field is missing or the private key is not a PEM key.
    """
    env = os.environ if environ is None else environ
    project_id = env.get("FIREBASE_PROJECT_ID", "").strip()
    client_email = env.get("FIREBASE_CLIENT_EMAIL", "").strip()
    private_key = env.get("FIREBASE_PRIVATE_KEY", "")
    missing = [
        name
        for name, value in (
            ("FIREBASE_PROJECT_ID", project_id),
            ("FIREBASE_CLIENT_EMAIL", client_email),
            ("FIREBASE_PRIVATE_KEY", private_key.strip()),
        )
        if not value
    ]
    if missing:
        raise ConfigurationError(f"Missing Firebase Admin configuration: {', '.join(missing)}")

    # Keys pasted into .env files usually carry escaped newlines
    private_key = private_key.replace("\\n", "\n")
    try:
        serialization.load_pem_private_key(private_key.encode("utf-8"), password=None, backend=default_backend())
    except (ValueError, TypeError) as e:
        raise ConfigurationError(f"FIREBASE_PRIVATE_KEY is not a valid PEM private key: {e}") from e
    return ServiceAccount(project_id=project_id, client_email=client_email, private_key=private_key)
