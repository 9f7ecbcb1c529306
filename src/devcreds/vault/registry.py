# Vault - Well-Known Credentials
#
# The fixed set of credential keys that developer tooling expects,
# with the environment variable each one materializes into.

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

# Categories, in setup-walkthrough order
GITHUB = "github"
CLOUD = "cloud"
DATABASE = "database"
API_KEYS = "api_keys"


@dataclass(frozen=True)
class CredentialSpec:
    """One well-known credential: store key, env var and prompt metadata."""

    key: str
    env_var: str
    description: str
    category: str
    secret: bool = False
    default: Optional[str] = None


WELL_KNOWN_CREDENTIALS: Tuple[CredentialSpec, ...] = (
    # GitHub
    CredentialSpec("github_username", "GITHUB_USERNAME", "GitHub Username", GITHUB),
    CredentialSpec("github_token", "GITHUB_TOKEN", "GitHub Personal Access Token", GITHUB, secret=True),
    CredentialSpec("github_default_org", "GITHUB_DEFAULT_ORG", "Default GitHub Organization", GITHUB),
    # Cloud providers
    CredentialSpec("aws_access_key_id", "AWS_ACCESS_KEY_ID", "AWS Access Key ID", CLOUD),
    CredentialSpec("aws_secret_access_key", "AWS_SECRET_ACCESS_KEY", "AWS Secret Access Key", CLOUD, secret=True),
    CredentialSpec("aws_region", "AWS_DEFAULT_REGION", "AWS Default Region", CLOUD, default="us-east-1"),
    CredentialSpec("gcp_project_id", "GCP_PROJECT_ID", "GCP Project ID", CLOUD),
    CredentialSpec("azure_subscription_id", "AZURE_SUBSCRIPTION_ID", "Azure Subscription ID", CLOUD),
    # Databases
    CredentialSpec("postgresql_url", "DATABASE_URL", "PostgreSQL Connection URL", DATABASE),
    CredentialSpec("redis_url", "REDIS_URL", "Redis Connection URL", DATABASE, default="redis://localhost:6379"),
    CredentialSpec("mongodb_url", "MONGODB_URL", "MongoDB Connection URL", DATABASE),
    # API keys
    CredentialSpec("openai_api_key", "OPENAI_API_KEY", "OpenAI API Key", API_KEYS, secret=True),
    CredentialSpec("anthropic_api_key", "ANTHROPIC_API_KEY", "Anthropic API Key", API_KEYS, secret=True),
    CredentialSpec("docker_username", "DOCKER_USERNAME", "Docker Hub Username", API_KEYS),
    CredentialSpec("docker_password", "DOCKER_PASSWORD", "Docker Hub Password", API_KEYS, secret=True),
)

WELL_KNOWN_KEYS: Tuple[str, ...] = tuple(spec.key for spec in WELL_KNOWN_CREDENTIALS)

_BY_KEY: Dict[str, CredentialSpec] = {spec.key: spec for spec in WELL_KNOWN_CREDENTIALS}


def get_spec(key: str) -> Optional[CredentialSpec]:
    """Registry entry for ``key``, or None for ad-hoc keys."""
    return _BY_KEY.get(key)


def by_category(category: str) -> Tuple[CredentialSpec, ...]:
    return tuple(spec for spec in WELL_KNOWN_CREDENTIALS if spec.category == category)
